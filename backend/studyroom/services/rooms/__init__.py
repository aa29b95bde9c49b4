"""Room coordination services: membership, signaling relay and pomodoro.

Transport-agnostic: socket handlers and HTTP routes hand connections and
decoded messages to the registry and rooms defined here.
"""

from .phase_timer import BREAK, WORK
from .persistence import DatabasePersistence, NullPersistence
from .registry import RoomRegistry
from .room import Room, RoomFullError
from .scheduler import BackgroundScheduler, ManualScheduler, now_ms


def build_registry(app) -> RoomRegistry:
    """Build the room registry from the app config."""
    from studyroom import socketio

    config = app.config
    if config.get('ROOM_SCHEDULER') == 'manual':
        scheduler = ManualScheduler()
    else:
        scheduler = BackgroundScheduler(socketio, clock=now_ms, logger=app.logger)

    if config.get('ROOM_PERSISTENCE') == 'database':
        persistence = DatabasePersistence(app)
    else:
        persistence = NullPersistence()

    return RoomRegistry(
        scheduler=scheduler,
        persistence=persistence,
        clock=now_ms,
        durations={
            WORK: int(config.get('WORK_DURATION_MS', 1500000)),
            BREAK: int(config.get('BREAK_DURATION_MS', 300000)),
        },
        default_name=config.get('DEFAULT_DISPLAY_NAME', 'Guest'),
        logger=app.logger,
    )
