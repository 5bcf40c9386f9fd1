# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from signsync import create_app
from signsync.config.config import Config


# ---------------------------------------------------------------------
# Scheduler / clock doubles
# ---------------------------------------------------------------------

class _Handle:
    def __init__(self, due, seq, fn, args):
        self.due = due
        self.seq = seq
        self.fn = fn
        self.args = args
        self.cancelled = False


class ManualScheduler:
    """Deterministic scheduler: callbacks run only when time is advanced."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = 0

    def call_later(self, delay, fn, *args):
        handle = _Handle(self.now + max(delay, 0), self._seq, fn, args)
        self._seq += 1
        self._queue.append(handle)
        return handle

    def cancel(self, handle):
        if handle is not None:
            handle.cancelled = True

    @property
    def pending(self):
        return [h for h in self._queue if not h.cancelled]

    def run_pending(self):
        self.advance(0)

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self._queue if not h.cancelled and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            self._queue.remove(handle)
            self.now = max(self.now, handle.due)
            handle.fn(*handle.args)
        self._queue = [h for h in self._queue if not h.cancelled]
        self.now = target


class FakeClock:
    def __init__(self, start=1_700_000_000_000):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, amount):
        self.value += amount


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


# ---------------------------------------------------------------------
# Transport doubles
# ---------------------------------------------------------------------

class _FakeEngine:
    def __init__(self):
        self.disconnected = []

    def disconnect(self, sid, namespace=None):
        self.disconnected.append(sid)


class FakeSocketIO:
    """Records emits per room; sids listed in fail_for raise on emit."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.server = _FakeEngine()

    def emit(self, event, data, room=None, **kwargs):
        if room in self.fail_for:
            raise ConnectionResetError(f"socket {room} closed")
        self.sent.append((room, event, data))

    def messages_for(self, sid):
        return [data for room, _event, data in self.sent if room == sid]


@pytest.fixture
def fake_socketio():
    return FakeSocketIO()


class FakeStreamApi:
    """Serves /stream responses from a list of items with scripted failures."""

    def __init__(self, items=None, failures=None, looping=True):
        self.items = list(items or [])
        self.failures = dict(failures or {})
        self.looping = looping
        self.calls = []
        self.status = {'hasContent': False, 'contentHash': None, 'itemCount': 0}
        self.status_error = None
        self.events = []
        self.events_calls = []

    def get_stream(self, screen_id, index=0):
        self.calls.append(index)
        failure = self.failures.get(index)
        if isinstance(failure, list):
            if failure:
                raise failure.pop(0)
        elif failure is not None:
            raise failure

        if not self.items:
            return {'screenId': screen_id, 'hasContent': False, 'totalItems': 0, 'currentIndex': 0}
        total = len(self.items)
        current = index % total
        response = {
            'screenId': screen_id,
            'hasContent': True,
            'currentItem': self.items[current],
            'totalItems': total,
            'currentIndex': current,
            'isLooping': self.looping
        }
        if total > 1:
            response['nextItem'] = self.items[(current + 1) % total]
        return response

    def get_content_status(self, screen_id):
        if self.status_error is not None:
            raise self.status_error
        return dict(self.status)

    def get_change_events(self, since=0):
        self.events_calls.append(since)
        return [event for event in self.events if event['timestamp'] > since]


class FakePlayer:
    def __init__(self):
        self.played = []
        self.stopped = 0
        self.released = False
        self.fail_with = {}

    def play(self, item):
        failure = self.fail_with.get(item['name'])
        if failure is not None:
            raise failure
        self.played.append(item['name'])

    def stop(self):
        self.stopped += 1

    def release(self):
        self.released = True


def make_items(*names, kind='video', duration=None):
    return [
        {'id': name, 'name': name, 'url': f'/media/f/{name}', 'type': kind, 'duration': duration}
        for name in names
    ]


@pytest.fixture
def stream_api():
    return FakeStreamApi


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def items():
    return make_items


# ---------------------------------------------------------------------
# Application fixtures
# ---------------------------------------------------------------------

@pytest.fixture
def data_dirs(tmp_path, monkeypatch):
    data_dir = tmp_path / 'data'
    media_root = data_dir / 'media'
    media_root.mkdir(parents=True)
    (media_root / 'uploads').mkdir()

    monkeypatch.setenv('SIGNSYNC_DATA_DIR', str(data_dir))
    monkeypatch.setenv('SIGNSYNC_MEDIA_ROOT', str(media_root))
    monkeypatch.delenv('UPLOAD_FOLDER', raising=False)
    monkeypatch.delenv('SIGNSYNC_LOG_DIR', raising=False)
    monkeypatch.delenv('SIGNSYNC_PLAYLISTS_FILE', raising=False)
    monkeypatch.delenv('SIGNSYNC_EVENTS_FILE', raising=False)
    monkeypatch.setenv('SOCKETIO_ASYNC_MODE', 'threading')
    monkeypatch.setenv('FOLDER_MONITOR_INTERVAL', '0')
    monkeypatch.setenv('SOCKET_INACTIVITY_TIMEOUT', '0')
    monkeypatch.setenv('FINGERPRINT_CACHE_TTL', '60')
    return {
        'data_dir': data_dir,
        'media_root': media_root,
        'uploads': media_root / 'uploads',
        'playlists_file': data_dir / 'playlists.json',
        'events_file': data_dir / 'refresh-events.json'
    }


def write_playlists(path, playlists):
    path.write_text(json.dumps(playlists, ensure_ascii=False), encoding='utf-8')


def write_media(folder, *names, content=b'data'):
    folder.mkdir(parents=True, exist_ok=True)
    for name in names:
        (folder / name).write_bytes(content)


@pytest.fixture
def playlist_writer():
    return write_playlists


@pytest.fixture
def media_writer():
    return write_media


@pytest.fixture
def app(data_dirs):
    application = create_app(Config())
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def socket_client(app):
    from signsync.extensions import socketio

    clients = []

    def connect(role='screen', screen_id=None):
        query = f'type={role}'
        if screen_id:
            query += f'&screenId={screen_id}'
        test_client = socketio.test_client(app, query_string=query)
        clients.append(test_client)
        return test_client

    yield connect

    for test_client in clients:
        if test_client.is_connected():
            test_client.disconnect()


def hub_messages(test_client):
    """Hub payloads received by a Flask-SocketIO test client."""
    messages = []
    for packet in test_client.get_received():
        if packet['name'] != 'message':
            continue
        args = packet['args']
        messages.append(args[0] if isinstance(args, list) else args)
    return messages


@pytest.fixture
def received():
    return hub_messages
