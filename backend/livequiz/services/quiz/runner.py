"""The quiz run state machine.

One ``QuizRunner`` exists per application. It owns the authoritative
in-memory view of the running quiz (which question is live, since when and
for how long), arms the question timers and fans events out through the
broadcaster. The document store only keeps a log of what happened.

Phases::

    idle -> awaiting_next_question -> question_live -> question_grace_period
                       ^                                       |
                       +---------------------------------------+
    (questions exhausted or stop) -> idle
"""

import logging
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from livequiz.errors import (
    AdminRequired,
    AlreadyActive,
    ConstraintViolation,
    DuplicateAnswer,
    NoActiveQuestion,
    NoActiveSession,
    NoQuestionsAvailable,
    NotJoined,
    QuizError,
    StaleQuestion,
    TimeExceeded,
    ValidationError,
)
from livequiz.models import ROLE_ADMIN
from livequiz.store import QUESTIONS, RESPONSES, SESSIONS, USERS, DocumentStore
from . import broadcast as events
from .leaderboard import entry_payload, recompute, top_n
from .scoring import calculate_score

IDLE = 'idle'
AWAITING_NEXT_QUESTION = 'awaiting_next_question'
QUESTION_LIVE = 'question_live'
QUESTION_GRACE_PERIOD = 'question_grace_period'


def iso_timestamp(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _same_id(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _coerce_answer(selected_answer) -> int:
    if isinstance(selected_answer, bool):
        raise ValidationError('selectedAnswer must be an integer option index')
    try:
        return int(selected_answer)
    except (TypeError, ValueError):
        raise ValidationError('selectedAnswer must be an integer option index')


@dataclass
class Participant:
    user_id: int
    username: str
    connection_id: str

    def to_dict(self):
        return {'userId': self.user_id, 'username': self.username, 'connectionId': self.connection_id}


class QuizRunState:
    """Mutable state of the current run. Replaced wholesale on reset."""

    def __init__(self):
        self.phase = IDLE
        self.session_id = None
        self.question_order: List[Dict[str, Any]] = []
        self.question_index = 0
        self.current_question: Optional[Dict[str, Any]] = None
        self.current_question_number = 0
        self.current_question_started_at: Optional[float] = None
        self.current_question_time_limit: Optional[float] = None
        self.pending_timer = None

    def clear_live_question(self):
        self.current_question = None
        self.current_question_started_at = None
        self.current_question_time_limit = None

    @property
    def current_question_id(self):
        return self.current_question['id'] if self.current_question else None

    @property
    def total_questions(self) -> int:
        return len(self.question_order)


class QuizRunner:

    def __init__(
        self,
        store: DocumentStore,
        broadcaster,
        scheduler,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
        lead_in_sec: float = 3,
        grace_sec: float = 5,
        leaderboard_limit: int = 20,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.lead_in_sec = lead_in_sec
        self.grace_sec = grace_sec
        self.leaderboard_limit = leaderboard_limit
        self.rng = rng or random.Random()
        self.state = QuizRunState()
        self.participants: Dict[Any, Participant] = {}
        self._lock = threading.RLock()
        self._timer_seq = 0

    @classmethod
    def from_app(cls, app, store, broadcaster, scheduler, clock=None):
        cfg = app.config
        return cls(
            store,
            broadcaster,
            scheduler,
            clock=clock or time.time,
            logger=app.logger,
            lead_in_sec=float(cfg.get('QUIZ_LEAD_IN_SEC', 3)),
            grace_sec=float(cfg.get('QUESTION_GRACE_SEC', 5)),
            leaderboard_limit=int(cfg.get('LEADERBOARD_BROADCAST_LIMIT', 20)),
        )

    # ---- Timer handles ----

    def _cancel_pending_timer(self) -> None:
        self._timer_seq += 1
        if self.state.pending_timer is not None:
            self.state.pending_timer.cancel()
            self.state.pending_timer = None

    def _arm(self, delay: float, callback, label: str) -> None:
        self._cancel_pending_timer()
        token = (self.state.session_id, self.state.question_index, self._timer_seq)
        self.state.pending_timer = self.scheduler.call_later(delay, callback, token, label=label)
        self.logger.info(
            f"[timer-set] session={self.state.session_id} label={label} index={self.state.question_index} delay={delay}s"
        )

    def _claim_timer(self, token, label: str) -> bool:
        """Accept a firing timer only if it is still the one armed for this run."""
        current = (self.state.session_id, self.state.question_index, self._timer_seq)
        if token != current:
            self.logger.info(f"[timer-abort] label={label} token={token} current={current}")
            return False
        self.logger.info(f"[timer-fire] session={self.state.session_id} label={label} index={self.state.question_index}")
        self.state.pending_timer = None
        return True

    def _on_advance_timer(self, token) -> None:
        with self._lock:
            if self._claim_timer(token, 'advance'):
                self.advance()

    def _on_question_timer(self, token) -> None:
        with self._lock:
            if self._claim_timer(token, 'question-timeout'):
                self.handle_timeout()

    # ---- Lifecycle ----

    def start(self, admin_id) -> Dict[str, Any]:
        with self._lock:
            try:
                if self.state.session_id is not None:
                    raise AlreadyActive()
                questions = self.store.list(QUESTIONS, {'is_active': True})
                if not questions:
                    raise NoQuestionsAvailable()
                order = list(questions)
                self.rng.shuffle(order)
                session = self.store.create(SESSIONS, {'started_at': self.clock(), 'created_by': admin_id})
            except QuizError as exc:
                self.logger.warning(f"[quiz-start-error] admin={admin_id} code={exc.code} {exc.message}")
                raise
            except Exception:
                self.logger.exception(f"[quiz-start-error] admin={admin_id}")
                raise

            state = QuizRunState()
            state.session_id = session['id']
            state.question_order = order
            state.phase = AWAITING_NEXT_QUESTION
            self.state = state

            self.broadcaster.broadcast(events.QUIZ_STARTED, {
                'sessionId': state.session_id,
                'totalQuestions': state.total_questions,
                'message': 'Quiz started! First question coming up...',
            })
            self._arm(self.lead_in_sec, self._on_advance_timer, 'lead-in')
            self.logger.info(
                f"[quiz-start] session={state.session_id} admin={admin_id} questions={state.total_questions}"
            )
            return session

    def advance(self) -> Optional[Dict[str, Any]]:
        """Dispatch the next question, or end the quiz when none are left.

        Returns the broadcast question payload, or None when the quiz ended.
        """
        with self._lock:
            state = self.state
            if state.session_id is None:
                raise NoActiveSession()
            self._cancel_pending_timer()

            if state.question_index >= state.total_questions:
                self.end()
                return None

            question = state.question_order[state.question_index]
            try:
                self.store.update(SESSIONS, state.session_id, {'current_question_id': question['id']})
            except Exception:
                self.logger.exception(
                    f"[advance-error] session={state.session_id} index={state.question_index} question={question['id']}"
                )
                state.clear_live_question()
                state.phase = AWAITING_NEXT_QUESTION
                raise

            state.current_question = question
            state.current_question_number = state.question_index + 1
            state.current_question_started_at = self.clock()
            state.current_question_time_limit = float(question['time_limit'])
            state.phase = QUESTION_LIVE
            payload = self._question_payload()
            self.broadcaster.broadcast(events.NEW_QUESTION, payload)
            state.question_index += 1
            self._arm(state.current_question_time_limit, self._on_question_timer, 'question-timeout')
            self.logger.info(
                f"[question-sent] session={state.session_id} number={payload['questionNumber']}/{payload['totalQuestions']} "
                f"question={question['id']} text={question['text'][:50]!r}"
            )
            return payload

    def handle_timeout(self) -> None:
        with self._lock:
            state = self.state
            if state.phase != QUESTION_LIVE:
                return
            self.broadcaster.broadcast(events.QUESTION_ENDED, {
                'questionId': state.current_question_id,
                'questionNumber': state.current_question_number,
                'totalQuestions': state.total_questions,
            })
            state.clear_live_question()
            state.phase = QUESTION_GRACE_PERIOD
            self.logger.info(
                f"[question-ended] session={state.session_id} number={state.current_question_number}/{state.total_questions}"
            )
            self._arm(self.grace_sec, self._on_advance_timer, 'grace')

    def end(self) -> None:
        with self._lock:
            session_id = self.state.session_id
            if session_id is None:
                return
            self._cancel_pending_timer()
            try:
                final = [entry_payload(e) for e in top_n(self.store, session_id)]
            except Exception:
                self.logger.exception(f"[quiz-end-error] session={session_id}")
                raise
            total = self.state.total_questions
            self.broadcaster.broadcast(events.QUIZ_ENDED, {
                'sessionId': session_id,
                'finalLeaderboard': final,
                'totalQuestions': total,
                'message': 'Quiz completed! Thanks for participating!',
                'wasForceEnded': False,
            })
            self._reset()
            self.logger.info(
                f"[quiz-end] session={session_id} questions={total} participants={len(self.participants)}"
            )

    def stop(self) -> bool:
        with self._lock:
            session_id = self.state.session_id
            if session_id is None:
                self.logger.info('[quiz-stop] no active quiz to stop')
                return False
            self.broadcaster.broadcast(events.QUIZ_ENDED, {
                'sessionId': session_id,
                'message': 'Quiz stopped by administrator',
                'wasForceEnded': True,
            })
            self._reset()
            self.logger.info(f"[quiz-stop] session={session_id} stopped by admin")
            return True

    def _reset(self) -> None:
        self._cancel_pending_timer()
        self.state = QuizRunState()

    # ---- Connections ----

    def join(self, connection_id: str, user_id) -> Participant:
        user = self.store.get(USERS, user_id)
        with self._lock:
            participant = Participant(user['id'], user['username'], connection_id)
            self.participants[user['id']] = participant
            self.broadcaster.subscribe(connection_id, events.PARTICIPANTS_ROOM)
            if self.state.phase == QUESTION_LIVE:
                self.broadcaster.send(connection_id, events.NEW_QUESTION, self._question_payload())
        self.logger.info(f"[join] user={participant.username} connection={connection_id}")
        return participant

    def admin_join(self, connection_id: str, admin_id) -> Dict[str, Any]:
        user = self.store.get(USERS, admin_id)
        if user.get('role') != ROLE_ADMIN:
            raise AdminRequired()
        self.broadcaster.subscribe(connection_id, events.ADMINS_ROOM)
        self.logger.info(f"[admin-join] admin={user['username']} connection={connection_id}")
        return user

    def force_advance(self, connection_id: str) -> Optional[Dict[str, Any]]:
        if not self.broadcaster.is_subscribed(connection_id, events.ADMINS_ROOM):
            raise AdminRequired()
        self.logger.info(f"[force-next] connection={connection_id}")
        return self.advance()

    def disconnect(self, connection_id: str) -> List[Participant]:
        with self._lock:
            gone = [p for p in self.participants.values() if p.connection_id == connection_id]
            for p in gone:
                del self.participants[p.user_id]
        for p in gone:
            self.logger.info(f"[disconnect] user={p.username} connection={connection_id}")
        return gone

    def participant_for(self, connection_id: str) -> Optional[Participant]:
        with self._lock:
            for p in self.participants.values():
                if p.connection_id == connection_id:
                    return p
        return None

    # ---- Answers ----

    def submit_answer(self, connection_id: str, question_id, selected_answer) -> Dict[str, Any]:
        participant = self.participant_for(connection_id)
        if participant is None:
            raise NotJoined()
        result = self.record_answer(participant.user_id, participant.username, question_id, selected_answer)
        self.broadcaster.send(connection_id, events.ANSWER_RESULT, {
            'isCorrect': result['isCorrect'],
            'score': result['score'],
            'responseTime': result['responseTime'],
            'message': result['message'],
        })
        return result

    def record_answer(self, user_id, username: str, question_id, selected_answer) -> Dict[str, Any]:
        """Validate, score and persist one answer for an identified user.

        Shared by the socket and HTTP paths so both reject and score alike.
        """
        with self._lock:
            state = self.state
            if state.phase != QUESTION_LIVE:
                raise NoActiveQuestion()
            session_id = state.session_id
            live_question_id = state.current_question_id
            started_at = state.current_question_started_at
            time_limit = state.current_question_time_limit

        # Elapsed wall time decides, not whether the timer has fired yet
        response_time = self.clock() - started_at
        if response_time > time_limit:
            raise TimeExceeded()
        if not _same_id(question_id, live_question_id):
            raise StaleQuestion()
        selected = _coerce_answer(selected_answer)

        # Check-then-create; the unique (user_id, question_id) constraint backs it up
        if self.store.list(RESPONSES, {'user_id': user_id, 'question_id': live_question_id}, limit=1):
            raise DuplicateAnswer()
        question = self.store.get(QUESTIONS, live_question_id)
        is_correct = selected == question['correct_answer']
        score = calculate_score(is_correct, response_time, time_limit)
        response_time_ms = int(round(response_time * 1000))
        try:
            response = self.store.create(RESPONSES, {
                'user_id': user_id,
                'session_id': session_id,
                'question_id': live_question_id,
                'selected_answer': selected,
                'is_correct': is_correct,
                'response_time_ms': response_time_ms,
                'score': score,
            })
        except ConstraintViolation:
            raise DuplicateAnswer()

        self.logger.info(
            f"[answer] session={session_id} user={username} question={live_question_id} "
            f"correct={is_correct} score={score} time_ms={response_time_ms}"
        )
        self._refresh_leaderboard(user_id, username, session_id)
        return {
            'responseId': response['id'],
            'isCorrect': is_correct,
            'score': score,
            'responseTime': response_time_ms,
            'message': f'Correct! +{score} points' if is_correct else 'Incorrect answer',
        }

    def _refresh_leaderboard(self, user_id, username: str, session_id) -> None:
        # A missed refresh heals on the next recompute, so store errors stop here
        try:
            recompute(self.store, user_id, username, session_id)
            entries = top_n(self.store, session_id, self.leaderboard_limit)
        except QuizError as exc:
            self.logger.error(f"[leaderboard-error] session={session_id} user={user_id} code={exc.code} {exc.message}")
            return
        self.broadcaster.broadcast(events.LEADERBOARD_UPDATE, {'entries': [entry_payload(e) for e in entries]})

    # ---- Read-only views ----

    def _question_payload(self) -> Dict[str, Any]:
        state = self.state
        q = state.current_question
        return {
            'id': q['id'],
            'text': q['text'],
            'options': list(q['options']),
            'timeLimit': q['time_limit'],
            'questionNumber': state.current_question_number,
            'totalQuestions': state.total_questions,
            'startTime': iso_timestamp(state.current_question_started_at),
        }

    def live_question(self) -> Optional[Dict[str, Any]]:
        """Snapshot of the live question for polling clients, or None."""
        with self._lock:
            if self.state.phase != QUESTION_LIVE:
                return None
            payload = self._question_payload()
            started_at = self.state.current_question_started_at
            time_limit = self.state.current_question_time_limit
        elapsed = self.clock() - started_at
        payload['remainingTime'] = max(0.0, time_limit - elapsed)
        payload['timeExpired'] = elapsed > time_limit
        return payload

    def status(self) -> Dict[str, Any]:
        with self._lock:
            state = self.state
            return {
                'isActive': state.session_id is not None,
                'currentSessionId': state.session_id,
                'currentQuestionId': state.current_question_id,
                'questionStartTime': iso_timestamp(state.current_question_started_at),
                'participantCount': len(self.participants),
                'phase': state.phase,
                'questionNumber': state.current_question_number,
                'totalQuestions': state.total_questions,
            }

    def leaderboard(self, limit=None) -> List[Dict[str, Any]]:
        with self._lock:
            session_id = self.state.session_id
        if session_id is None:
            return []
        return [entry_payload(e) for e in top_n(self.store, session_id, limit)]

    def participant_list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [p.to_dict() for p in self.participants.values()]
