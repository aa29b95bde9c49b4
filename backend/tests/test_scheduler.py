import pytest

from conftest import T0, FakeClock

from studyroom.services.rooms import BackgroundScheduler, ManualScheduler
from studyroom.services.rooms.protocol import encode_frame, parse_frame


class DeferredSocketIO:
    """Stands in for Flask-SocketIO: tasks run when asked, sleep moves the clock."""

    def __init__(self, clock):
        self.clock = clock
        self.tasks = []
        self.slept = []

    def start_background_task(self, target, *args):
        self.tasks.append((target, args))

    def sleep(self, seconds):
        self.slept.append(seconds)
        self.clock.advance(int(seconds * 1000))

    def run_all(self):
        tasks, self.tasks = self.tasks, []
        for target, args in tasks:
            target(*args)


def test_background_wake_sleeps_until_deadline():
    clock = FakeClock()
    sio = DeferredSocketIO(clock)
    fired = []
    scheduler = BackgroundScheduler(sio, clock=clock)

    scheduler.schedule_wake(T0 + 2500, lambda: fired.append(clock()))
    sio.run_all()

    assert sio.slept == [1.0, 1.0, 0.5]
    assert fired == [T0 + 2500]


def test_background_wake_cancelled_never_fires():
    clock = FakeClock()
    sio = DeferredSocketIO(clock)
    fired = []
    scheduler = BackgroundScheduler(sio, clock=clock)

    token = scheduler.schedule_wake(T0 + 2500, lambda: fired.append(True))
    scheduler.cancel(token)
    sio.run_all()

    assert fired == []
    assert sio.slept == []


def test_background_wake_swallows_callback_error():
    clock = FakeClock()
    sio = DeferredSocketIO(clock)
    scheduler = BackgroundScheduler(sio, clock=clock)

    def boom():
        raise RuntimeError('wake failed')

    scheduler.schedule_wake(T0, boom)
    sio.run_all()


def test_manual_scheduler_runs_only_due_wakes():
    scheduler = ManualScheduler()
    fired = []
    scheduler.schedule_wake(T0 + 10, lambda: fired.append('a'))
    scheduler.schedule_wake(T0 + 20, lambda: fired.append('b'))
    cancelled = scheduler.schedule_wake(T0 + 5, lambda: fired.append('c'))
    scheduler.cancel(cancelled)

    assert scheduler.run_due(T0 + 15) == 1
    assert fired == ['a']
    assert scheduler.pending() == [T0 + 20]
    assert scheduler.run_next() is True
    assert scheduler.run_next() is False
    assert fired == ['a', 'b']


@pytest.mark.parametrize('raw', [
    '{not json',
    '[]',
    '"join_room"',
    '{"name": "Alice"}',
    '{"type": ""}',
    '{"type": 3}',
    b'\xff\xfe',
    None,
    42,
])
def test_parse_frame_rejects(raw):
    assert parse_frame(raw) is None


def test_parse_frame_accepts_text_bytes_and_dicts():
    message = {'type': 'join_room', 'name': 'Alice'}
    assert parse_frame(encode_frame(message)) == message
    assert parse_frame(encode_frame(message).encode('utf-8')) == message
    assert parse_frame(message) is message
