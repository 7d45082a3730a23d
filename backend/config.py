import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///pokerledger.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma separated list of frontend origins allowed by CORS / Socket.IO
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173'
        ).split(',') if o.strip()
    ]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    # Room codes
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    ROOM_CODE_MAX_ATTEMPTS = int(os.environ.get('ROOM_CODE_MAX_ATTEMPTS', '100'))
    # Login sessions (seconds)
    SESSION_TTL_SEC = int(os.environ.get('SESSION_TTL_SEC', str(30 * 24 * 3600)))
    IDENTITY_TOKEN_MAX_AGE_SEC = int(os.environ.get('IDENTITY_TOKEN_MAX_AGE_SEC', '3600'))
    # Shown in the settlement summary
    CURRENCY_SYMBOL = os.environ.get('CURRENCY_SYMBOL', '₪')
