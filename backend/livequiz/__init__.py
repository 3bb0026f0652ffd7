from flask import Flask, current_app, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def get_runner(flask_app=None):
    """Return the application's QuizRunner."""
    return (flask_app or current_app).extensions['quiz_runner']


def create_app(config_class=Config, scheduler=None, clock=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('ALLOWED_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One runner per app; handlers reach it through app.extensions
    from livequiz.store import DocumentStore
    from livequiz.services.quiz.broadcast import SocketIOBroadcaster
    from livequiz.services.quiz.runner import QuizRunner
    from livequiz.services.quiz.scheduler import SocketIOScheduler
    flask_app.extensions['quiz_runner'] = QuizRunner.from_app(
        flask_app,
        DocumentStore(),
        SocketIOBroadcaster(socketio),
        scheduler or SocketIOScheduler(socketio, flask_app),
        clock=clock,
    )

    # Import and register blueprints here
    from livequiz.routes import auth
    flask_app.register_blueprint(auth, url_prefix='/api/auth')

    from livequiz.api.quiz import quiz
    flask_app.register_blueprint(quiz, url_prefix='/api/quiz')

    from livequiz.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    @flask_app.route('/health')
    def health():
        return jsonify({'status': 'ok', 'quiz': get_runner(flask_app).status()})

    # Register Socket.IO event handlers
    from livequiz.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # Flask-Login user loader
    from livequiz.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'User not authenticated', 'code': 'Unauthorized'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from livequiz.models import Question, ROLE_ADMIN
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            admin_user = User(username='admin', email='admin@example.com', role=ROLE_ADMIN)
            admin_user.set_password('password')
            db.session.add(admin_user)
            # Seed students
            for u in ['student1', 'student2', 'student3']:
                user = User(username=u, email=f'{u}@example.com')
                user.set_password('password')
                db.session.add(user)
            db.session.flush()

            samples = [
                ('What is 2 + 2?', ['3', '4', '5', '22'], 1, 20),
                ('Which planet is known as the Red Planet?', ['Venus', 'Jupiter', 'Mars'], 2, 30),
                ('Which language is this server written in?', ['Go', 'Python', 'Rust', 'Java'], 1, 15),
            ]
            for text, options, correct, limit in samples:
                db.session.add(Question(
                    text=text, options=options, correct_answer=correct,
                    time_limit=limit, created_by=admin_user.id,
                ))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
