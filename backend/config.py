import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///livequiz.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma separated list of browser origins allowed for CORS and Socket.IO
    ALLOWED_ORIGINS = [
        o.strip() for o in os.environ.get(
            'ALLOWED_ORIGINS',
            'http://localhost:3000,http://localhost:5173,http://localhost:19006',
        ).split(',') if o.strip()
    ]
    # Quiz pacing (seconds)
    QUIZ_LEAD_IN_SEC = float(os.environ.get('QUIZ_LEAD_IN_SEC', '3'))
    QUESTION_GRACE_SEC = float(os.environ.get('QUESTION_GRACE_SEC', '5'))
    # Number of leaderboard rows pushed with every leaderboard-update
    LEADERBOARD_BROADCAST_LIMIT = int(os.environ.get('LEADERBOARD_BROADCAST_LIMIT', '20'))
    # Question authoring bounds
    MIN_TIME_LIMIT_SEC = int(os.environ.get('MIN_TIME_LIMIT_SEC', '10'))
    MAX_TIME_LIMIT_SEC = int(os.environ.get('MAX_TIME_LIMIT_SEC', '300'))
    DEFAULT_TIME_LIMIT_SEC = int(os.environ.get('DEFAULT_TIME_LIMIT_SEC', '60'))
    # Shared key required to register an admin account. Unset disables admin registration.
    ADMIN_KEY = os.environ.get('ADMIN_KEY')
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
