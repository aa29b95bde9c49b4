"""Wire vocabulary for the room socket: one JSON object per text frame."""
import json
from typing import Any, Dict, Optional

# client -> server
JOIN_ROOM = 'join_room'
WEBRTC_OFFER = 'webrtc_offer'
WEBRTC_ANSWER = 'webrtc_answer'
WEBRTC_ICE = 'webrtc_ice'
POMODORO_START = 'pomodoro_start'
POMODORO_RESET = 'pomodoro_reset'

RELAY_TYPES = frozenset({WEBRTC_OFFER, WEBRTC_ANSWER, WEBRTC_ICE})

# server -> client
CONNECTED = 'connected'
ROOM_FULL = 'room_full'
WAITING_FOR_PEER = 'waiting_for_peer'
READY = 'ready'
ROOM_STATE = 'room_state'
PEER_LEFT = 'peer_left'


def encode_frame(message: Dict[str, Any]) -> str:
    return json.dumps(message, separators=(',', ':'))


def parse_frame(raw: Any) -> Optional[Dict[str, Any]]:
    """Decode an inbound frame, or return None when it should be dropped.

    Accepts JSON text (str or UTF-8 bytes) or an already-decoded dict.
    Anything that is not an object with a string ``type`` is rejected.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError:
            return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, dict):
        return None
    if not isinstance(raw.get('type'), str) or not raw['type']:
        return None
    return raw
