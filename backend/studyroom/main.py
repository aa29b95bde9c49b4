from flask import Blueprint, jsonify, current_app

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({
        'message': 'Welcome to the study room server!',
        'socket_namespace': current_app.config.get('SOCKETIO_NAMESPACE', '/ws'),
    })
