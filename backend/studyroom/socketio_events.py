import threading
from typing import Dict, Optional

from flask import current_app, request

from studyroom import socketio
from studyroom.services.rooms import Room, RoomRegistry
from studyroom.services.rooms.connection import SocketIOConnection
from studyroom.services.rooms.protocol import CONNECTED, JOIN_ROOM, parse_frame

# Per-socket context, keyed by Socket.IO sid
_connections: Dict[str, SocketIOConnection] = {}
_sid_to_room: Dict[str, Room] = {}
# Room ids asked for at connect time by sockets that found no free slot
_sid_to_pending_room_id: Dict[str, str] = {}

_resync_lock = threading.Lock()
_resync_started = False


def _registry() -> RoomRegistry:
    return current_app.extensions['room_registry']


def _get_sid() -> str:
    return request.sid  # type: ignore


def _attach(connection: SocketIOConnection, room_id: str) -> Room:
    """Ask the registry for a slot; only admitted sockets are bound to the room."""
    room, admitted = _registry().attach(room_id, connection)
    if admitted:
        _sid_to_pending_room_id.pop(connection.sid, None)
        _sid_to_room[connection.sid] = room
    else:
        _sid_to_pending_room_id[connection.sid] = room_id
        current_app.logger.info(f"[room-overflow] room={room_id} conn={connection.id}")
    return room


def handle_connect(auth=None):
    connection = SocketIOConnection(socketio, _get_sid(), request.namespace)
    _connections[connection.sid] = connection
    connection.send({'type': CONNECTED, 'clientId': connection.id})
    _ensure_resync_task(current_app._get_current_object())

    # Path-style routing: the room is known before join_room, reserve the slot now
    room_id = request.args.get('room') or (auth.get('room') if isinstance(auth, dict) else None)
    if isinstance(room_id, str) and room_id.strip():
        room = _attach(connection, room_id.strip())
        if room.is_member(connection):
            room.broadcast_state()


def handle_disconnect(reason=None):
    sid = _get_sid()
    connection = _connections.pop(sid, None)
    room = _sid_to_room.pop(sid, None)
    _sid_to_pending_room_id.pop(sid, None)
    if connection is None or room is None:
        return
    if room.leave(connection):
        _registry().evict_if_empty(room.room_id)


def handle_message(data):
    connection = _connections.get(_get_sid())
    if connection is None:
        return
    message = parse_frame(data)
    if message is None:
        current_app.logger.debug(f"[drop] conn={connection.id} malformed frame")
        return

    room: Optional[Room] = _sid_to_room.get(connection.sid)
    if room is None and message['type'] == JOIN_ROOM:
        room_id = _sid_to_pending_room_id.get(connection.sid)
        if room_id is None:
            default_room = current_app.config.get('DEFAULT_ROOM_ID', 'default')
            room_id = str(message.get('roomId') or default_room).strip() or default_room
        # A socket turned away earlier retries here; the room may have a free slot now
        room = _attach(connection, room_id)
    if room is None:
        current_app.logger.debug(f"[drop] conn={connection.id} type={message['type']} before join")
        return
    room.handle_message(connection, message)


# ---- periodic room_state resync ----

def _ensure_resync_task(app, sio=socketio) -> bool:
    global _resync_started
    interval = int(app.config.get('RESYNC_INTERVAL_SEC', 5))
    if app.config.get('TESTING') or interval <= 0:
        return False
    with _resync_lock:
        if _resync_started:
            return False
        _resync_started = True
    sio.start_background_task(_resync_loop, app, interval, sio)
    return True


def _resync_loop(app, interval: int, sio=socketio) -> None:
    registry = app.extensions['room_registry']
    while True:
        sio.sleep(interval)
        try:
            registry.resync_running()
        except Exception:
            app.logger.exception('[resync-error] room_state resync failed')


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the room namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('message', handle_message, namespace=namespace)
