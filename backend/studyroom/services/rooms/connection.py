import uuid
from typing import Any, Dict, Iterable, Optional

from .protocol import encode_frame

NORMAL_CLOSURE = 1000


class Connection:
    """One duplex channel to a client, as seen by a room.

    Each connection gets a fresh session id that is never reused, so a
    client that reconnects shows up as a new participant.
    """

    def __init__(self, connection_id: Optional[str] = None):
        self.id = connection_id or str(uuid.uuid4())
        self.closed = False
        self.close_code = None
        self.close_reason = None

    def send(self, message: Dict[str, Any]) -> None:
        raise NotImplementedError

    def close(self, code: int = NORMAL_CLOSURE, reason: str = '') -> None:
        raise NotImplementedError


class SocketIOConnection(Connection):
    """Connection backed by a Flask-SocketIO session id."""

    def __init__(self, sio, sid: str, namespace: str = '/ws'):
        super().__init__()
        self._sio = sio
        self.sid = sid
        self.namespace = namespace

    def send(self, message: Dict[str, Any]) -> None:
        self._sio.send(encode_frame(message), to=self.sid, namespace=self.namespace)

    def close(self, code: int = NORMAL_CLOSURE, reason: str = '') -> None:
        # Socket.IO has no close codes; keep them for logs and callers
        self.closed = True
        self.close_code = code
        self.close_reason = reason
        self._sio.server.disconnect(self.sid, namespace=self.namespace)


def broadcast(connections: Iterable[Connection], message: Dict[str, Any], logger=None) -> int:
    """Best-effort send to every connection; returns how many sends succeeded."""
    delivered = 0
    for connection in connections:
        try:
            connection.send(message)
            delivered += 1
        except Exception as exc:
            if logger is not None:
                logger.warning(
                    f"[send-fail] conn={connection.id} type={message.get('type')} error={exc}"
                )
    return delivered
