import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from . import protocol
from .connection import Connection, broadcast
from .ledger import ScoreLedger
from .persistence import NullPersistence
from .phase_timer import DEFAULT_DURATIONS_MS, WORK, PhaseTimer

MAX_PARTICIPANTS = 2
ROOM_FULL_CLOSE_CODE = 4409

OFFERER = 'offerer'
ANSWERER = 'answerer'


class RoomFullError(Exception):
    """Raised when a connection asks for a slot in a room with none left."""

    def __init__(self, room_id: str):
        super().__init__(f"room {room_id} is full")
        self.room_id = room_id


class Participant:
    def __init__(self, connection: Connection):
        self.connection = connection
        self.name: Optional[str] = None
        self.role: Optional[str] = None
        self.join_seq: Optional[int] = None

    @property
    def id(self) -> str:
        return self.connection.id

    def to_dict(self, ledger: ScoreLedger) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'points': ledger.points(self.name),
        }


class Room:
    """Membership, signaling relay and the shared pomodoro for one room.

    Every public method takes the room lock, so inbound messages and timer
    wakes are applied one at a time and each broadcast reflects a single
    consistent snapshot. Slots are held by connections; a slot's
    participant becomes visible once it has sent ``join_room``.
    """

    def __init__(
        self,
        room_id: str,
        scheduler,
        clock: Callable[[], int],
        persistence=None,
        durations: Optional[Dict[str, int]] = None,
        default_name: str = 'Guest',
        logger=None,
    ):
        self.room_id = room_id
        self.participants: List[Participant] = []
        self.timer = PhaseTimer()
        self.ledger = ScoreLedger()
        self.closed = False
        self._scheduler = scheduler
        self._clock = clock
        self._persistence = persistence or NullPersistence()
        self._durations = dict(durations or DEFAULT_DURATIONS_MS)
        self._default_name = default_name
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._wake_token = None
        self._join_seq = 0

    # ---- lifecycle ----

    def restore(self) -> None:
        """Load persisted timer and scores; re-arm the wake if the timer runs."""
        loaded = self._persistence.load(self.room_id)
        if not loaded:
            return
        timer, scores = loaded
        with self._lock:
            self.timer = timer
            self.ledger = ScoreLedger(scores)
            if timer.is_running:
                self._schedule_wake(timer.end_at)
        self._logger.info(
            f"[room-restore] room={self.room_id} phase={timer.phase} running={timer.is_running} end_at={timer.end_at} names={len(scores)}"
        )

    def close(self) -> None:
        with self._lock:
            self.closed = True
            self._cancel_wake()

    def admit(self, connection: Connection) -> Participant:
        with self._lock:
            participant = self._find(connection)
            if participant is not None:
                return participant
            if self.closed or len(self.participants) >= MAX_PARTICIPANTS:
                raise RoomFullError(self.room_id)
            participant = Participant(connection)
            self.participants.append(participant)
            self._logger.info(
                f"[room-admit] room={self.room_id} conn={connection.id} slots={len(self.participants)}/{MAX_PARTICIPANTS}"
            )
            return participant

    def is_member(self, connection: Connection) -> bool:
        with self._lock:
            return self._find(connection) is not None

    def is_empty(self) -> bool:
        with self._lock:
            return not self.participants

    # ---- inbound protocol ----

    def handle_message(self, connection: Connection, message: Dict[str, Any]) -> None:
        msg_type = message.get('type')
        if msg_type == protocol.JOIN_ROOM:
            self.join(connection, message.get('name'))
        elif msg_type in protocol.RELAY_TYPES:
            self.relay(connection, message)
        elif msg_type == protocol.POMODORO_START:
            if self._is_joined(connection):
                self.start_timer()
        elif msg_type == protocol.POMODORO_RESET:
            if self._is_joined(connection):
                self.reset_timer()
        else:
            self._logger.debug(f"[drop] room={self.room_id} conn={connection.id} type={msg_type}")

    def join(self, connection: Connection, name: Any) -> Optional[Participant]:
        with self._lock:
            try:
                participant = self._require_slot(connection)
            except RoomFullError:
                self._reject(connection)
                return None

            if participant.name is None:
                self._join_seq += 1
                participant.join_seq = self._join_seq
            participant.name = self._normalize_name(name)
            if self.ledger.register(participant.name):
                self._persist()

            named = self._named()
            if len(named) == 1:
                self._send(participant.connection, {'type': protocol.WAITING_FOR_PEER})
            elif len(named) == MAX_PARTICIPANTS and any(p.role is None for p in named):
                self._assign_roles(named)
            self._logger.info(
                f"[room-join] room={self.room_id} conn={connection.id} name={participant.name} named={len(named)}"
            )
            self.broadcast_state()
            return participant

    def relay(self, sender: Connection, message: Dict[str, Any]) -> int:
        with self._lock:
            if not self._is_joined(sender):
                return 0
            targets = [p.connection for p in self._named() if p.connection is not sender]
            return broadcast(targets, message, self._logger)

    def leave(self, connection: Connection) -> bool:
        with self._lock:
            participant = self._find(connection)
            if participant is None:
                return False
            self.participants.remove(participant)
            for other in self.participants:
                other.role = None
            self._logger.info(
                f"[room-leave] room={self.room_id} conn={connection.id} name={participant.name} remaining={len(self.participants)}"
            )
            self.broadcast({'type': protocol.PEER_LEFT})
            self.broadcast_state()
            return True

    # ---- timer ----

    def start_timer(self) -> bool:
        with self._lock:
            if not self.timer.start(self._clock(), self._durations):
                return False
            self._persist()
            self._schedule_wake(self.timer.end_at)
            self._logger.info(
                f"[timer-start] room={self.room_id} phase={self.timer.phase} end_at={self.timer.end_at}"
            )
            self.broadcast_state()
            return True

    def reset_timer(self) -> None:
        with self._lock:
            self.timer.reset()
            self._persist()
            self._cancel_wake()
            self._logger.info(f"[timer-reset] room={self.room_id}")
            self.broadcast_state()

    def on_wake(self) -> None:
        with self._lock:
            timer = self.timer
            if self.closed or not timer.is_running or timer.end_at is None:
                return
            now = self._clock()
            if not timer.is_due(now):
                # Woke early: wait for the same deadline again
                self._schedule_wake(timer.end_at)
                return

            expired = timer.advance(now, self._durations)
            if expired == WORK:
                self.ledger.award_all(p.name for p in self._named())
            self._persist()
            self._schedule_wake(timer.end_at)
            self._logger.info(
                f"[timer-fire] room={self.room_id} expired={expired} next={timer.phase} end_at={timer.end_at}"
            )
            self.broadcast_state()

    def resync(self) -> bool:
        with self._lock:
            if not self.timer.is_running:
                return False
            self.broadcast_state()
            return True

    # ---- views and broadcast ----

    def participants_view(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [p.to_dict(self.ledger) for p in self._named()]

    def state_message(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'type': protocol.ROOM_STATE,
                'participants': self.participants_view(),
                'pomodoro': self.timer.to_dict(),
            }

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'roomId': self.room_id,
                'slots': len(self.participants),
                'participants': self.participants_view(),
                'pomodoro': self.timer.to_dict(),
                'scores': self.ledger.snapshot(),
            }

    def broadcast(self, message: Dict[str, Any]) -> int:
        with self._lock:
            return broadcast([p.connection for p in self.participants], message, self._logger)

    def broadcast_state(self) -> int:
        with self._lock:
            return self.broadcast(self.state_message())

    # ---- internals (call with the lock held) ----

    def _find(self, connection: Connection) -> Optional[Participant]:
        for participant in self.participants:
            if participant.connection is connection:
                return participant
        return None

    def _named(self) -> List[Participant]:
        return [p for p in self.participants if p.name is not None]

    def _is_joined(self, connection: Connection) -> bool:
        with self._lock:
            participant = self._find(connection)
            return participant is not None and participant.name is not None

    def _require_slot(self, connection: Connection) -> Participant:
        # Slots are handed out by the registry; a stranger here was turned away there
        participant = self._find(connection)
        if participant is None:
            raise RoomFullError(self.room_id)
        return participant

    def _reject(self, connection: Connection) -> None:
        self._logger.info(f"[room-full] room={self.room_id} conn={connection.id}")
        self._send(connection, {'type': protocol.ROOM_FULL})
        try:
            connection.close(ROOM_FULL_CLOSE_CODE, 'Room full')
        except Exception as exc:
            self._logger.warning(f"[close-fail] room={self.room_id} conn={connection.id} error={exc}")

    def _assign_roles(self, named: List[Participant]) -> None:
        first, second = sorted(named, key=lambda p: p.join_seq)
        first.role = OFFERER
        second.role = ANSWERER
        self._send(first.connection, {'type': protocol.READY, 'role': OFFERER})
        self._send(second.connection, {'type': protocol.READY, 'role': ANSWERER})
        self._logger.info(
            f"[room-ready] room={self.room_id} offerer={first.id} answerer={second.id}"
        )

    def _normalize_name(self, name: Any) -> str:
        text = '' if name is None else str(name)
        return text.strip() or self._default_name

    def _send(self, connection: Connection, message: Dict[str, Any]) -> None:
        broadcast([connection], message, self._logger)

    def _persist(self) -> None:
        self._persistence.save(self.room_id, self.timer, self.ledger.snapshot())

    def _schedule_wake(self, at_ms: int) -> None:
        self._cancel_wake()
        self._wake_token = self._scheduler.schedule_wake(at_ms, self.on_wake)

    def _cancel_wake(self) -> None:
        if self._wake_token is not None:
            self._scheduler.cancel(self._wake_token)
            self._wake_token = None
