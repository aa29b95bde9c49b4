import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///studyroom.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [o for o in os.environ.get('CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173').split(',') if o]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    # Pomodoro phase lengths (milliseconds)
    WORK_DURATION_MS = int(os.environ.get('WORK_DURATION_MS', '1500000'))
    BREAK_DURATION_MS = int(os.environ.get('BREAK_DURATION_MS', '300000'))
    # Cadence of room_state re-broadcasts while a timer runs (seconds). 0 disables.
    RESYNC_INTERVAL_SEC = int(os.environ.get('RESYNC_INTERVAL_SEC', '5'))
    # 'database' keeps timers and scores across restarts; 'memory' drops them with the room
    ROOM_PERSISTENCE = os.environ.get('ROOM_PERSISTENCE', 'database')
    # 'background' sleeps in Socket.IO background tasks; 'manual' waits for run_due()
    ROOM_SCHEDULER = os.environ.get('ROOM_SCHEDULER', 'background')
    DEFAULT_ROOM_ID = os.environ.get('DEFAULT_ROOM_ID', 'default')
    DEFAULT_DISPLAY_NAME = os.environ.get('DEFAULT_DISPLAY_NAME', 'Guest')
