# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from signsync.services.sockets.hub import BroadcastHub


@pytest.fixture
def hub(fake_socketio, clock):
    return BroadcastHub(fake_socketio, clock=clock)


# ---------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------

def test_register_greets_client(hub, fake_socketio, clock):
    client_id = hub.register('sid-1', 'screen', 'A')

    greeting = fake_socketio.messages_for('sid-1')[0]
    assert greeting['type'] == 'connected'
    assert greeting['clientId'] == client_id
    assert greeting['timestamp'] == clock()
    assert 'serverTime' in greeting


def test_unknown_role_defaults_to_screen(hub):
    hub.register('sid-1', 'projector', 'A')
    assert hub.get_stats()['screens'] == 1


def test_disconnect_is_idempotent(hub):
    hub.register('sid-1', 'screen', 'A')

    assert hub.on_disconnect('sid-1') is not None
    assert hub.on_disconnect('sid-1') is None
    assert hub.get_stats()['total'] == 0


# ---------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------

def test_content_update_reaches_screens_and_admins(hub, fake_socketio):
    hub.register('a', 'screen', 'A')
    hub.register('b', 'screen', 'B')
    hub.register('adm', 'admin')

    counts = hub.notify_content_update('playlist-updated', {'playlistId': 'p1'})
    assert counts == {'screenCount': 2, 'adminCount': 1}

    message = fake_socketio.messages_for('b')[-1]
    assert message['type'] == 'content-updated'
    assert message['kind'] == 'playlist-updated'
    assert message['playlistId'] == 'p1'

    hub.on_disconnect('a')
    assert hub.notify_content_update('content-updated') == {'screenCount': 1, 'adminCount': 1}


def test_payload_cannot_override_message_type(hub, fake_socketio):
    hub.register('a', 'screen', 'A')
    hub.notify_content_update('files-uploaded', {'type': 'refresh'})
    assert fake_socketio.messages_for('a')[-1]['type'] == 'content-updated'


def test_failing_socket_does_not_block_others(hub, fake_socketio):
    hub.register('a', 'screen', 'A')
    hub.register('b', 'screen', 'B')
    hub.register('c', 'screen', 'C')
    fake_socketio.fail_for.add('b')

    delivered = hub.broadcast_to_screens({'type': 'content-updated'})

    assert delivered == 2
    assert fake_socketio.messages_for('c')[-1] == {'type': 'content-updated'}


def test_broadcast_can_exclude_screen(hub):
    hub.register('a', 'screen', 'A')
    hub.register('b', 'screen', 'B')
    assert hub.broadcast_to_screens({'type': 'x'}, exclude_screen_id='A') == 1


def test_screen_refresh_targets_one_screen(hub, fake_socketio):
    hub.register('a', 'screen', 'A')
    hub.register('b', 'screen', 'B')
    hub.register('adm', 'admin')

    counts = hub.notify_screen_refresh('A', 'Lobby')

    assert counts == {'screenCount': 1, 'adminCount': 1}
    assert fake_socketio.messages_for('a')[-1]['type'] == 'refresh'
    assert fake_socketio.messages_for('b')[-1]['type'] == 'connected'
    assert fake_socketio.messages_for('adm')[-1]['screenName'] == 'Lobby'


# ---------------------------------------------------------------------
# Inbound messages
# ---------------------------------------------------------------------

def test_ping_answers_pong(hub, fake_socketio):
    hub.register('a', 'screen', 'A')
    hub.handle_message('a', {'type': 'ping'})
    assert fake_socketio.messages_for('a')[-1]['type'] == 'pong'


def test_json_string_messages_are_accepted(hub, fake_socketio):
    hub.register('a', 'screen', 'A')
    hub.handle_message('a', '{"type": "ping"}')
    assert fake_socketio.messages_for('a')[-1]['type'] == 'pong'


def test_screen_status_is_relayed_to_admins(hub, fake_socketio):
    hub.register('a', 'screen', 'A')
    hub.register('adm', 'admin')

    hub.handle_message('a', {'type': 'screen-status', 'status': {'status': 'playing'}})

    update = fake_socketio.messages_for('adm')[-1]
    assert update['type'] == 'screen-status-update'
    assert update['screenId'] == 'A'
    assert update['status'] == {'status': 'playing'}


@pytest.mark.parametrize('raw', ['{oops', 42, ['ping'], {'no': 'type'}, None])
def test_malformed_messages_are_dropped(hub, fake_socketio, raw):
    hub.register('a', 'screen', 'A')
    sent_before = len(fake_socketio.sent)

    hub.handle_message('a', raw)

    assert len(fake_socketio.sent) == sent_before
    assert hub.get_stats()['total'] == 1


# ---------------------------------------------------------------------
# Stats and inactivity
# ---------------------------------------------------------------------

def test_stats_and_connection_lookup(hub):
    hub.register('a', 'screen', 'A')
    hub.register('a2', 'screen', 'A')
    hub.register('b', 'screen', 'B')
    hub.register('adm', 'admin')

    assert hub.get_stats() == {'total': 4, 'screens': 3, 'admins': 1, 'screenIds': ['A', 'B']}
    assert hub.is_screen_connected('A') is True
    assert hub.is_screen_connected('Z') is False


def test_sweep_drops_inactive_clients(hub, fake_socketio, clock):
    hub.register('a', 'screen', 'A')
    hub.register('b', 'screen', 'B')
    clock.advance(50_000)
    hub.handle_message('b', {'type': 'ping'})
    clock.advance(20_000)

    removed = hub.sweep_inactive(60_000)

    assert removed == ['a']
    assert fake_socketio.server.disconnected == ['a']
    assert hub.is_screen_connected('B') is True


# ---------------------------------------------------------------------
# Socket.IO transport
# ---------------------------------------------------------------------

def test_socketio_clients_receive_fan_out(app, socket_client, received):
    screen_a = socket_client('screen', 'A')
    screen_b = socket_client('screen', 'B')
    admin = socket_client('admin')

    assert received(screen_a)[0]['type'] == 'connected'
    received(screen_b)
    received(admin)

    counts = app.hub.notify_content_update('content-updated', {'source': 'test'})
    assert counts == {'screenCount': 2, 'adminCount': 1}
    assert received(screen_b)[-1]['kind'] == 'content-updated'

    screen_a.disconnect()
    assert app.hub.notify_content_update('content-updated') == {'screenCount': 1, 'adminCount': 1}


def test_socketio_ping_and_malformed_message(app, socket_client, received):
    screen = socket_client('screen', 'A')
    received(screen)

    screen.emit('message', 'not json')
    assert received(screen) == []
    assert screen.is_connected()

    screen.emit('message', {'type': 'ping'})
    assert received(screen)[-1]['type'] == 'pong'
