from flask import Blueprint, jsonify, current_app

from studyroom.services.rooms.phase_timer import PhaseTimer

rooms = Blueprint('rooms', __name__)


def _registry():
    return current_app.extensions['room_registry']


@rooms.route('', methods=['GET'])
def list_rooms():
    """
    Lists the rooms currently held in memory.
    """
    return jsonify([room.summary() for room in _registry().rooms()]), 200


@rooms.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    """
    Returns the room_state body for a room, falling back to persisted
    timer and scores when nobody is connected.
    """
    registry = _registry()
    room = registry.get(room_id)
    if room is not None:
        return jsonify(room.summary()), 200

    timer, scores = registry.persistence.load(room_id) or (PhaseTimer(), {})
    return jsonify({
        'roomId': room_id,
        'slots': 0,
        'participants': [],
        'pomodoro': timer.to_dict(),
        'scores': scores,
    }), 200
