from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from livequiz import get_runner
from livequiz.errors import QuizError
from livequiz.store import DocumentStore, QUESTIONS, RESPONSES

quiz = Blueprint('quiz', __name__)


def quiz_error_response(exc: QuizError):
    return jsonify(exc.to_dict()), exc.status_code


quiz.register_error_handler(QuizError, quiz_error_response)


def public_question(q):
    """Question as shown to participants: never includes the correct answer."""
    return {
        'id': q['id'],
        'text': q['text'],
        'options': q['options'],
        'timeLimit': q['time_limit'],
    }


@quiz.route('/current-status', methods=['GET'])
def current_status():
    return jsonify({'success': True, 'data': get_runner().status()})


@quiz.route('/current-question', methods=['GET'])
@login_required
def current_question():
    runner = get_runner()
    status = runner.status()
    if not status['isActive']:
        return jsonify({'success': True, 'data': {'hasActiveQuiz': False, 'message': 'No active quiz session'}})

    live = runner.live_question()
    if live is None:
        return jsonify({'success': True, 'data': {
            'hasActiveQuiz': True,
            'question': None,
            'message': 'Waiting for next question...',
        }})
    if live['timeExpired']:
        return jsonify({'success': True, 'data': {
            'hasActiveQuiz': True,
            'question': None,
            'timeExpired': True,
            'message': 'Question time has expired. Waiting for next question...',
        }})

    answered = DocumentStore().list(RESPONSES, {'user_id': current_user.id, 'question_id': live['id']}, limit=1)
    return jsonify({'success': True, 'data': {
        'hasActiveQuiz': True,
        'question': live,
        'hasAnswered': bool(answered),
        'questionStartTime': live['startTime'],
    }})


@quiz.route('/answer', methods=['POST'])
@login_required
def submit_answer():
    data = request.get_json(silent=True) or {}
    result = get_runner().record_answer(
        current_user.id, current_user.username, data.get('questionId'), data.get('selectedAnswer'),
    )
    return jsonify({'success': True, 'data': result})


@quiz.route('/leaderboard', methods=['GET'])
def leaderboard():
    return jsonify({'success': True, 'data': get_runner().leaderboard()})


@quiz.route('/questions', methods=['GET'])
def list_questions():
    questions = DocumentStore().list(QUESTIONS, {'is_active': True})
    return jsonify({'success': True, 'data': [public_question(q) for q in questions]})
