from functools import wraps

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from livequiz import get_runner
from livequiz.api.quiz import quiz_error_response
from livequiz.errors import AdminRequired, QuizError, ValidationError
from livequiz.models import ROLE_ADMIN
from livequiz.store import DocumentStore, QUESTIONS, USERS

admin = Blueprint('admin', __name__)
admin.register_error_handler(QuizError, quiz_error_response)


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_admin:
            raise AdminRequired()
        return view(*args, **kwargs)
    return wrapper


def question_payload(q):
    """Admin view of a question, including the correct answer."""
    return {
        'id': q['id'],
        'text': q['text'],
        'options': q['options'],
        'correctAnswer': q['correct_answer'],
        'timeLimit': q['time_limit'],
        'isActive': q['is_active'],
        'createdBy': q['created_by'],
    }


def validate_question(data, existing=None):
    """Translate and check a question body; returns store fields.

    With ``existing`` set, only the keys present in ``data`` are checked
    (partial update), against the stored question where they interact.
    """
    cfg = current_app.config
    partial = existing is not None
    fields = {}

    if 'text' in data or not partial:
        text = (data.get('text') or '').strip()
        if not text:
            raise ValidationError('Question text is required')
        fields['text'] = text

    if 'options' in data or not partial:
        options = data.get('options')
        if not isinstance(options, list) or not 2 <= len(options) <= 6:
            raise ValidationError('Questions need between 2 and 6 options')
        if any(not isinstance(o, str) or not o.strip() for o in options):
            raise ValidationError('Options must be non-empty strings')
        fields['options'] = [o.strip() for o in options]

    options = fields.get('options', existing['options'] if partial else [])
    if 'correctAnswer' in data or not partial or 'options' in fields:
        correct = data.get('correctAnswer', existing['correct_answer'] if partial else None)
        if isinstance(correct, bool) or not isinstance(correct, int) or not 0 <= correct < len(options):
            raise ValidationError('correctAnswer must index one of the options')
        fields['correct_answer'] = correct

    if 'timeLimit' in data or not partial:
        limit = data.get('timeLimit', cfg.get('DEFAULT_TIME_LIMIT_SEC', 60))
        lo = int(cfg.get('MIN_TIME_LIMIT_SEC', 10))
        hi = int(cfg.get('MAX_TIME_LIMIT_SEC', 300))
        if isinstance(limit, bool) or not isinstance(limit, int) or not lo <= limit <= hi:
            raise ValidationError(f'timeLimit must be between {lo} and {hi} seconds')
        fields['time_limit'] = limit

    if 'isActive' in data:
        fields['is_active'] = bool(data['isActive'])
    return fields


# ---- Quiz control ----

@admin.route('/quiz/start', methods=['POST'])
def start_quiz():
    data = request.get_json(silent=True) or {}
    if current_user.is_authenticated:
        if not current_user.is_admin:
            raise AdminRequired()
        admin_id = current_user.id
    else:
        if data.get('adminId') is None:
            raise AdminRequired()
        account = DocumentStore().get(USERS, data['adminId'])
        if account.get('role') != ROLE_ADMIN:
            raise AdminRequired()
        admin_id = account['id']
    session = get_runner().start(admin_id)
    return jsonify({'success': True, 'message': 'Quiz started successfully', 'sessionId': session['id']})


@admin.route('/quiz/stop', methods=['POST'])
@admin_required
def stop_quiz():
    stopped = get_runner().stop()
    message = 'Quiz stopped successfully' if stopped else 'No active quiz to stop'
    return jsonify({'success': True, 'message': message, 'stopped': stopped})


@admin.route('/quiz/next', methods=['POST'])
@admin_required
def next_question():
    payload = get_runner().advance()
    return jsonify({'success': True, 'question': payload, 'status': get_runner().status()})


@admin.route('/quiz/status', methods=['GET'])
@admin_required
def quiz_status():
    runner = get_runner()
    data = runner.status()
    data['participants'] = runner.participant_list()
    return jsonify({'success': True, 'data': data})


# ---- Question authoring ----

@admin.route('/questions', methods=['GET'])
@admin_required
def list_questions():
    questions = DocumentStore().list(QUESTIONS)
    return jsonify({'success': True, 'data': [question_payload(q) for q in questions]})


@admin.route('/questions', methods=['POST'])
@admin_required
def create_question():
    fields = validate_question(request.get_json(silent=True) or {})
    fields['created_by'] = current_user.id
    created = DocumentStore().create(QUESTIONS, fields)
    current_app.logger.info(f"[question-created] id={created['id']} by={current_user.username}")
    return jsonify({'success': True, 'data': question_payload(created)}), 201


@admin.route('/questions/<int:question_id>', methods=['GET'])
@admin_required
def get_question(question_id):
    return jsonify({'success': True, 'data': question_payload(DocumentStore().get(QUESTIONS, question_id))})


@admin.route('/questions/<int:question_id>', methods=['PUT'])
@admin_required
def update_question(question_id):
    store = DocumentStore()
    existing = store.get(QUESTIONS, question_id)
    fields = validate_question(request.get_json(silent=True) or {}, existing=existing)
    updated = store.update(QUESTIONS, question_id, fields) if fields else existing
    return jsonify({'success': True, 'data': question_payload(updated)})


@admin.route('/questions/<int:question_id>', methods=['DELETE'])
@admin_required
def delete_question(question_id):
    DocumentStore().delete(QUESTIONS, question_id)
    return jsonify({'success': True, 'message': 'Question deleted'})
