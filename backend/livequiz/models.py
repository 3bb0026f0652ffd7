from livequiz import db, bcrypt
from flask_login import UserMixin
import json
import time

ROLE_ADMIN = 'admin'
ROLE_STUDENT = 'student'


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_STUDENT)  # student, admin
    created_at = db.Column(db.Float, nullable=False, default=time.time)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'created_at': self.created_at,
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    text = db.Column(db.Text, nullable=False)
    options_json = db.Column('options', db.Text, nullable=False, default='[]')  # JSON-encoded list of strings
    correct_answer = db.Column(db.Integer, nullable=False)
    time_limit = db.Column(db.Integer, nullable=False, default=60)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.Float, nullable=False, default=time.time)

    @property
    def options(self):
        try:
            return json.loads(self.options_json or '[]')
        except ValueError:
            return []

    @options.setter
    def options(self, value):
        self.options_json = json.dumps(list(value or []))

    def to_dict(self):
        return {
            'id': self.id,
            'text': self.text,
            'options': self.options,
            'correct_answer': self.correct_answer,
            'time_limit': self.time_limit,
            'is_active': self.is_active,
            'created_by': self.created_by,
            'created_at': self.created_at,
        }


class QuizSession(db.Model):
    """Log record of one quiz run. The in-memory runner is authoritative while it is alive."""
    __tablename__ = 'quiz_session'
    id = db.Column(db.Integer, primary_key=True)
    started_at = db.Column(db.Float, nullable=False, default=time.time)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    # Mirror of the live question, for visibility after a crash or restart
    current_question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'started_at': self.started_at,
            'created_by': self.created_by,
            'current_question_id': self.current_question_id,
        }


class Response(db.Model):
    __tablename__ = 'response'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'question_id', name='uq_response_user_question'),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey('quiz_session.id'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False)
    selected_answer = db.Column(db.Integer, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    response_time_ms = db.Column(db.Integer, nullable=False, default=0)
    score = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.Float, nullable=False, default=time.time)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'session_id': self.session_id,
            'question_id': self.question_id,
            'selected_answer': self.selected_answer,
            'is_correct': self.is_correct,
            'response_time_ms': self.response_time_ms,
            'score': self.score,
            'created_at': self.created_at,
        }


class LeaderboardEntry(db.Model):
    __tablename__ = 'leaderboard_entry'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'session_id', name='uq_leaderboard_user_session'),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    username = db.Column(db.String(64), nullable=False)
    session_id = db.Column(db.Integer, db.ForeignKey('quiz_session.id'), nullable=False, index=True)
    total_score = db.Column(db.Integer, nullable=False, default=0)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    average_response_time_ms = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'username': self.username,
            'session_id': self.session_id,
            'total_score': self.total_score,
            'correct_answers': self.correct_answers,
            'total_questions': self.total_questions,
            'average_response_time_ms': self.average_response_time_ms,
        }
