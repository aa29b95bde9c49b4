from conftest import FakeConnection


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert res.get_json()['socket_namespace'] == '/ws'


def test_list_rooms(flask_app, client):
    registry = flask_app.extensions['room_registry']
    conn = FakeConnection()
    room, _ = registry.attach('den', conn)
    room.join(conn, 'Alice')

    res = client.get('/api/rooms')
    assert res.status_code == 200
    rooms = res.get_json()
    assert [r['roomId'] for r in rooms] == ['den']
    assert rooms[0]['slots'] == 1
    assert rooms[0]['participants'][0]['name'] == 'Alice'


def test_live_room_state(flask_app, client):
    registry = flask_app.extensions['room_registry']
    conn = FakeConnection()
    room, _ = registry.attach('den', conn)
    room.join(conn, 'Alice')
    room.start_timer()

    state = client.get('/api/rooms/den/state').get_json()
    assert state['pomodoro']['isRunning'] is True
    assert state['scores'] == {'Alice': 0}


def test_persisted_state_after_eviction(flask_app, client):
    registry = flask_app.extensions['room_registry']
    conn = FakeConnection()
    room, _ = registry.attach('den', conn)
    room.join(conn, 'Alice')
    room.start_timer()
    room.leave(conn)
    registry.evict_if_empty('den')

    state = client.get('/api/rooms/den/state').get_json()
    assert state['slots'] == 0
    assert state['participants'] == []
    assert state['pomodoro']['isRunning'] is True
    assert state['scores'] == {'Alice': 0}


def test_unknown_room_state_is_idle(client):
    state = client.get('/api/rooms/nowhere/state').get_json()
    assert state['pomodoro'] == {'isRunning': False, 'phase': 'work', 'endAt': None}
    assert state['scores'] == {}
