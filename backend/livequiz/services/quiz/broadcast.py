"""Realtime channel: event names, rooms and the Socket.IO binding."""

from typing import Any, Dict

NAMESPACE = '/ws'
PARTICIPANTS_ROOM = 'participants'
ADMINS_ROOM = 'admins'

# server -> client
QUIZ_STARTED = 'quiz-started'
NEW_QUESTION = 'new-question'
ANSWER_RESULT = 'answer-result'
QUESTION_ENDED = 'question-ended'
LEADERBOARD_UPDATE = 'leaderboard-update'
QUIZ_ENDED = 'quiz-ended'
ERROR = 'error'

# client -> server
JOIN_QUIZ = 'join-quiz'
SUBMIT_ANSWER = 'submit-answer'
ADMIN_JOIN = 'admin-join'
FORCE_NEXT_QUESTION = 'force-next-question'


class SocketIOBroadcaster:
    """Fire-and-forget emitter bound to one Socket.IO namespace.

    Room broadcasts aimed at participants are mirrored to the admins room so
    dashboards follow the same event stream.
    """

    def __init__(self, socketio, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def broadcast(self, event: str, payload: Dict[str, Any], room: str = PARTICIPANTS_ROOM) -> None:
        rooms = [PARTICIPANTS_ROOM, ADMINS_ROOM] if room == PARTICIPANTS_ROOM else [room]
        self.socketio.emit(event, payload, to=rooms, namespace=self.namespace)

    def send(self, connection_id: str, event: str, payload: Dict[str, Any]) -> None:
        self.socketio.emit(event, payload, to=connection_id, namespace=self.namespace)

    def subscribe(self, connection_id: str, room: str) -> None:
        self.socketio.server.enter_room(connection_id, room, namespace=self.namespace)

    def unsubscribe(self, connection_id: str, room: str) -> None:
        self.socketio.server.leave_room(connection_id, room, namespace=self.namespace)

    def is_subscribed(self, connection_id: str, room: str) -> bool:
        return room in (self.socketio.server.rooms(connection_id, namespace=self.namespace) or [])
