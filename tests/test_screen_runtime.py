# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from signsync.errors import ConnectionLost
from signsync.player.screen import ScreenConfig, ScreenRuntime


class FakePush:
    def __init__(self, refusals=0):
        self.refusals = refusals
        self.attempts = 0
        self.connected = False
        self.reports = []
        self.disconnected = False

    def connect(self):
        self.attempts += 1
        if self.refusals > 0:
            self.refusals -= 1
            raise ConnectionLost('server unreachable')
        self.connected = True

    def disconnect(self):
        self.disconnected = True

    def report_status(self, status):
        self.reports.append(status)
        return self.connected


def status(content_hash, count=1):
    return {'hasContent': count > 0, 'contentHash': content_hash, 'itemCount': count}


@pytest.fixture
def runtime_setup(stream_api, items, player, scheduler):
    api = stream_api(items('a.mp4', 'b.mp4'))
    api.status = status('h1', 2)
    push = FakePush()
    config = ScreenConfig(server_url='http://server:5000', screen_id='CAS',
                          content_poll_interval=30, change_log_poll_interval=60)
    runtime = ScreenRuntime(config, player=player, api_client=api, scheduler=scheduler, push_channel=push)
    return runtime, api, push


def test_start_plays_and_reports_state(runtime_setup, player, scheduler):
    runtime, _api, push = runtime_setup
    runtime.start()
    scheduler.run_pending()

    assert player.played == ['a.mp4']
    assert push.connected is True
    assert push.reports[-1]['status'] == 'playing'


def test_push_hint_reloads_when_fingerprint_changes(runtime_setup, player, scheduler, items):
    runtime, api, _push = runtime_setup
    runtime.start()
    scheduler.run_pending()

    api.items = items('new.mp4')
    api.status = status('h2', 1)
    runtime._on_push_hint({'type': 'content-updated'})
    scheduler.run_pending()

    assert player.played == ['a.mp4', 'new.mp4']


def test_push_hint_without_change_does_not_reload(runtime_setup, player, scheduler):
    runtime, _api, _push = runtime_setup
    runtime.start()
    scheduler.run_pending()

    runtime._on_push_hint({'type': 'refresh'})
    scheduler.run_pending()

    assert player.played == ['a.mp4']


def test_polling_detects_change_without_push(stream_api, items, player, scheduler):
    api = stream_api(items('a.mp4'))
    api.status = status('h1')
    config = ScreenConfig(server_url='http://server', screen_id='CAS', content_poll_interval=30)
    runtime = ScreenRuntime(config, player=player, api_client=api, scheduler=scheduler,
                            push_channel=FakePush(refusals=100))
    runtime.start()
    scheduler.run_pending()

    api.items = items('b.mp4')
    api.status = status('h2')
    scheduler.advance(30)

    assert player.played == ['a.mp4', 'b.mp4']


def test_change_log_events_trigger_fingerprint_check(runtime_setup, player, scheduler, items):
    runtime, api, _push = runtime_setup
    runtime.start()
    scheduler.run_pending()

    api.events = [{'type': 'files-uploaded', 'timestamp': 10, 'data': {}}]
    api.items = items('c.mp4', 'd.mp4')
    api.status = status('h3', 2)
    # Fingerprint poll at 30s would also catch it, so fire the change log poll directly
    runtime.change_log_poller.poll()

    assert runtime.content_poller.last_status['contentHash'] == 'h3'
    scheduler.run_pending()
    assert player.played[-1] == 'c.mp4'


def test_push_connection_is_retried_until_it_succeeds(stream_api, items, player, scheduler):
    push = FakePush(refusals=2)
    config = ScreenConfig(server_url='http://server', screen_id='CAS', push_connect_delay=3)
    runtime = ScreenRuntime(config, player=player, api_client=stream_api(items('a.mp4')),
                            scheduler=scheduler, push_channel=push)

    runtime.start()
    assert push.connected is False

    scheduler.advance(3)
    assert push.attempts == 2
    scheduler.advance(3)

    assert push.attempts == 3
    assert push.connected is True
    scheduler.advance(60)
    assert push.attempts == 3


def test_push_connection_attempts_are_bounded(stream_api, items, player, scheduler):
    push = FakePush(refusals=100)
    config = ScreenConfig(server_url='http://server', screen_id='CAS',
                          push_connect_attempts=5, push_connect_delay=3)
    runtime = ScreenRuntime(config, player=player, api_client=stream_api(items('a.mp4')),
                            scheduler=scheduler, push_channel=push)

    runtime.start()
    scheduler.advance(600)

    assert push.attempts == 5
    assert player.played == ['a.mp4']


def test_stop_cancels_pending_push_retry(stream_api, items, player, scheduler):
    push = FakePush(refusals=100)
    config = ScreenConfig(server_url='http://server', screen_id='CAS')
    runtime = ScreenRuntime(config, player=player, api_client=stream_api(items('a.mp4')),
                            scheduler=scheduler, push_channel=push)
    runtime.start()
    runtime.stop()

    scheduler.advance(60)

    assert push.attempts == 1


def test_stop_releases_everything(runtime_setup, player, scheduler):
    runtime, _api, push = runtime_setup
    runtime.start()
    scheduler.run_pending()

    runtime.stop()

    assert player.released is True
    assert player.stopped == 1
    assert push.disconnected is True
    assert runtime.content_poller.running is False


def test_config_from_env_requires_screen_id(monkeypatch):
    monkeypatch.delenv('SIGNSYNC_SCREEN_ID', raising=False)
    with pytest.raises(ValueError):
        ScreenConfig.from_env()

    monkeypatch.setenv('SIGNSYNC_SCREEN_ID', 'CAS')
    monkeypatch.setenv('CONTENT_POLL_INTERVAL', '15')
    monkeypatch.setenv('PUSH_ENABLED', 'false')
    config = ScreenConfig.from_env()
    assert config.screen_id == 'CAS'
    assert config.content_poll_interval == 15.0
    assert config.push_enabled is False
