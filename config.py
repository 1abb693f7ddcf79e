import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///scorekeeper.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Session store backend: 'sql' (durable) or 'memory' (volatile)
    SESSION_STORE = os.environ.get('SESSION_STORE', 'sql')
    # Upper bound on waiting for the store's writer lock (seconds)
    STORE_LOCK_TIMEOUT_SEC = float(os.environ.get('STORE_LOCK_TIMEOUT_SEC', '5'))
    # Level for the 'scorekeeper' logger (the Flask app logger)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Comma-separated list of origins allowed to talk to the API / socket
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173'
        ).split(',') if o.strip()
    ]
