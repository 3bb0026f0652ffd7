import os
import random
import sys
import pytest

# Ensure the backend root (containing the `livequiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from livequiz import create_app, db, get_runner, socketio
from livequiz.models import Question, ROLE_ADMIN, ROLE_STUDENT, User
from livequiz.services.quiz.broadcast import NAMESPACE, PARTICIPANTS_ROOM
from livequiz.services.quiz.scheduler import ScheduledCall


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    ALLOWED_ORIGINS = ['http://localhost:5173']
    QUIZ_LEAD_IN_SEC = 3
    QUESTION_GRACE_SEC = 5
    LEADERBOARD_BROADCAST_LIMIT = 20
    MIN_TIME_LIMIT_SEC = 10
    MAX_TIME_LIMIT_SEC = 300
    DEFAULT_TIME_LIMIT_SEC = 60
    ADMIN_KEY = 'test-admin-key'
    TIMER_HEARTBEAT_SEC = 0


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now


class ManualScheduler:
    """Scheduler whose timers only fire when the test moves the clock."""

    def __init__(self, clock):
        self.clock = clock
        self.calls = []

    def call_later(self, delay, callback, *args, label=''):
        handle = ScheduledCall(delay, label)
        handle.due = self.clock.now + delay
        self.calls.append((handle, callback, args))
        return handle

    def pending(self):
        return [h for h, _, _ in self.calls if h.pending]

    def tick(self, seconds):
        target = self.clock.now + seconds
        while True:
            due = [c for c in self.calls if c[0].pending and c[0].due <= target]
            if not due:
                break
            handle, callback, args = min(due, key=lambda c: (c[0].due, c[0].id))
            self.clock.now = max(self.clock.now, handle.due)
            handle.fired = True
            callback(*args)
        self.clock.now = target


class NoShuffle(random.Random):
    def shuffle(self, x, *args, **kwargs):
        return None


class RecordingBroadcaster:
    def __init__(self):
        self.sent = []
        self.rooms = {}

    def broadcast(self, event, payload, room=PARTICIPANTS_ROOM):
        self.sent.append((room, event, payload))

    def send(self, connection_id, event, payload):
        self.sent.append((connection_id, event, payload))

    def subscribe(self, connection_id, room):
        self.rooms.setdefault(connection_id, set()).add(room)

    def unsubscribe(self, connection_id, room):
        self.rooms.get(connection_id, set()).discard(room)

    def is_subscribed(self, connection_id, room):
        return room in self.rooms.get(connection_id, set())

    def events(self, name, target=None):
        return [p for t, e, p in self.sent if e == name and (target is None or t == target)]

    def names(self, target=PARTICIPANTS_ROOM):
        return [e for t, e, _ in self.sent if t == target]


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture()
def flask_app(scheduler, clock):
    application = create_app(TestConfig, scheduler=scheduler, clock=clock)
    get_runner(application).rng = NoShuffle()
    with application.app_context():
        # Ensure models are imported so tables are created
        import livequiz.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def runner(flask_app):
    return get_runner(flask_app)


@pytest.fixture()
def recorder(runner):
    rec = RecordingBroadcaster()
    runner.broadcaster = rec
    return rec


@pytest.fixture()
def make_user(flask_app):
    def _make(username, role=ROLE_STUDENT, password='password'):
        user = User(username=username, email=f'{username}@example.com', role=role)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture()
def admin_user(make_user):
    return make_user('admin', role=ROLE_ADMIN)


@pytest.fixture()
def make_question(flask_app):
    def _make(text, options=('A', 'B', 'C', 'D'), correct=0, time_limit=10, is_active=True):
        q = Question(text=text, options=list(options), correct_answer=correct, time_limit=time_limit, is_active=is_active)
        db.session.add(q)
        db.session.commit()
        return q
    return _make


@pytest.fixture()
def two_questions(make_question):
    a = make_question('Question A', correct=1, time_limit=10)
    b = make_question('Question B', correct=2, time_limit=10)
    return a, b


@pytest.fixture()
def login(client):
    def _login(username, password='password'):
        res = client.post('/api/auth/login', json={'username': username, 'password': password})
        assert res.status_code == 200
        return res.get_json()['user']
    return _login


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for c in clients:
        try:
            c.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()
