from flask import current_app, request
from flask_socketio import emit

from livequiz import get_runner, socketio
from livequiz.errors import QuizError
from livequiz.services.quiz import broadcast as events


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore[attr-defined]


def _emit_error(exc: QuizError) -> None:
    emit(events.ERROR, {'message': exc.message, 'code': exc.code})


def _user_id_from(data, key):
    # Clients send either the bare id or {"<key>": id}
    if isinstance(data, dict):
        return data.get(key)
    return data


def handle_connect():
    emit('connected', {'message': 'Connected to /ws', 'connectionId': _get_sid()})


def handle_disconnect(*args):
    get_runner().disconnect(_get_sid())


def handle_join_quiz(data):
    user_id = _user_id_from(data, 'userId')
    if user_id is None:
        emit(events.ERROR, {'message': 'userId is required', 'code': 'ValidationError'})
        return
    try:
        participant = get_runner().join(_get_sid(), user_id)
    except QuizError as exc:
        current_app.logger.warning(f"[join-error] user={user_id} code={exc.code}")
        emit(events.ERROR, {'message': 'Failed to join quiz', 'code': exc.code})
        return
    except Exception:
        current_app.logger.exception(f"[join-error] user={user_id}")
        emit(events.ERROR, {'message': 'Failed to join quiz', 'code': 'StoreUnavailable'})
        return
    emit('joined', {'room': events.PARTICIPANTS_ROOM, 'userId': participant.user_id, 'username': participant.username})


def handle_submit_answer(data):
    data = data or {}
    try:
        get_runner().submit_answer(_get_sid(), data.get('questionId'), data.get('selectedAnswer'))
    except QuizError as exc:
        _emit_error(exc)
    except Exception:
        current_app.logger.exception('[answer-error] unexpected failure')
        emit(events.ERROR, {'message': 'Failed to submit answer', 'code': 'StoreUnavailable'})


def handle_admin_join(data):
    admin_id = _user_id_from(data, 'adminId')
    if admin_id is None:
        emit(events.ERROR, {'message': 'adminId is required', 'code': 'ValidationError'})
        return
    try:
        get_runner().admin_join(_get_sid(), admin_id)
    except QuizError as exc:
        current_app.logger.warning(f"[admin-join-error] admin={admin_id} code={exc.code}")
        if exc.code == 'NotFound':
            emit(events.ERROR, {'message': 'Failed to join as admin', 'code': exc.code})
        else:
            _emit_error(exc)
        return
    emit('joined', {'room': events.ADMINS_ROOM})


def handle_force_next_question(*args):
    try:
        get_runner().force_advance(_get_sid())
    except QuizError as exc:
        _emit_error(exc)
    except Exception:
        current_app.logger.exception('[force-next-error] unexpected failure')
        emit(events.ERROR, {'message': 'Failed to advance quiz', 'code': 'StoreUnavailable'})


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the quiz namespace."""
    ns = events.NAMESPACE
    socketio.on_event('connect', handle_connect, namespace=ns)
    socketio.on_event('disconnect', handle_disconnect, namespace=ns)
    socketio.on_event(events.JOIN_QUIZ, handle_join_quiz, namespace=ns)
    socketio.on_event(events.SUBMIT_ANSWER, handle_submit_answer, namespace=ns)
    socketio.on_event(events.ADMIN_JOIN, handle_admin_join, namespace=ns)
    socketio.on_event(events.FORCE_NEXT_QUESTION, handle_force_next_question, namespace=ns)
    socketio.on_event('ping', handle_ping, namespace=ns)
