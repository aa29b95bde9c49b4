import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from .connection import Connection
from .persistence import NullPersistence
from .phase_timer import DEFAULT_DURATIONS_MS
from .room import Room, RoomFullError
from .scheduler import now_ms


class RoomRegistry:
    """Rooms by id, created on first reference and dropped once empty.

    Admission and eviction both run under the registry lock (then the
    room lock), so a connection can never land in a room that is being
    evicted.
    """

    def __init__(
        self,
        scheduler,
        persistence=None,
        clock: Callable[[], int] = now_ms,
        durations: Optional[Dict[str, int]] = None,
        default_name: str = 'Guest',
        logger=None,
    ):
        self.scheduler = scheduler
        self.persistence = persistence or NullPersistence()
        self.clock = clock
        self.durations = dict(durations or DEFAULT_DURATIONS_MS)
        self.default_name = default_name
        self.logger = logger or logging.getLogger(__name__)
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def get_or_create(self, room_id: str) -> Room:
        with self._lock:
            return self._get_or_create(room_id)

    def get(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_id)

    def attach(self, room_id: str, connection: Connection) -> Tuple[Room, bool]:
        """Reserve a slot for ``connection``; the flag is False when the room is full."""
        with self._lock:
            room = self._get_or_create(room_id)
            try:
                room.admit(connection)
            except RoomFullError:
                return room, False
            return room, True

    def evict_if_empty(self, room_id: str) -> bool:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None or not room.is_empty():
                return False
            del self._rooms[room_id]
            room.close()
            self.logger.info(f"[room-evict] room={room_id} rooms={len(self._rooms)}")
            return True

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    def resync_running(self) -> int:
        return sum(1 for room in self.rooms() if room.resync())

    def __contains__(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def _get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is not None:
            return room
        room = Room(
            room_id,
            scheduler=self.scheduler,
            clock=self.clock,
            persistence=self.persistence,
            durations=self.durations,
            default_name=self.default_name,
            logger=self.logger,
        )
        room.restore()
        self._rooms[room_id] = room
        self.logger.info(f"[room-create] room={room_id} rooms={len(self._rooms)}")
        return room
