# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from signsync.models import ChangeEvent, ChangeKind
from signsync.services.change_log import ChangeLog


def make_log(tmp_path, clock, capacity=10):
    return ChangeLog(str(tmp_path / 'events.json'), capacity=capacity, clock=clock)


# ---------------------------------------------------------------------
# read_since
# ---------------------------------------------------------------------

def test_read_since_returns_newer_events_in_insertion_order(tmp_path, clock):
    log = make_log(tmp_path, clock)
    stamps = []
    for kind in ('content-updated', 'files-uploaded', 'playlist-updated'):
        clock.advance(100)
        stamps.append(log.record(kind, {'kind': kind}).timestamp)

    assert [e.timestamp for e in log.read_since(0)] == stamps
    assert [e.kind for e in log.read_since(stamps[0])] == [
        ChangeKind.FILES_UPLOADED, ChangeKind.PLAYLIST_UPDATED]
    assert log.read_since(stamps[-1]) == []


def test_read_since_is_strictly_greater(tmp_path, clock):
    log = make_log(tmp_path, clock)
    event = log.record('content-updated')

    assert log.read_since(event.timestamp - 1) == [event]
    assert log.read_since(event.timestamp) == []


def test_same_millisecond_appends_get_increasing_timestamps(tmp_path, clock):
    log = make_log(tmp_path, clock)
    first = log.record('content-updated')
    second = log.record('files-uploaded')
    third = log.record('playlist-updated')

    assert first.timestamp < second.timestamp < third.timestamp
    assert log.read_since(first.timestamp) == [second, third]


# ---------------------------------------------------------------------
# Capacity
# ---------------------------------------------------------------------

def test_log_never_exceeds_capacity_and_evicts_oldest(tmp_path, clock):
    log = make_log(tmp_path, clock)
    for i in range(15):
        clock.advance(10)
        log.record('content-updated', {'n': i})

    events = log.read_since(0)
    assert len(events) == 10
    assert len(log) == 10
    assert [e.payload['n'] for e in events] == list(range(5, 15))


def test_capacity_must_be_positive(tmp_path, clock):
    with pytest.raises(ValueError):
        make_log(tmp_path, clock, capacity=0)


# ---------------------------------------------------------------------
# Durability
# ---------------------------------------------------------------------

def test_events_are_persisted_and_reloaded(tmp_path, clock):
    log = make_log(tmp_path, clock)
    log.record('playlist-updated', {'playlistId': 'p1'})

    stored = json.loads((tmp_path / 'events.json').read_text(encoding='utf-8'))
    assert stored[0]['type'] == 'playlist-updated'
    assert stored[0]['data'] == {'playlistId': 'p1'}

    reloaded = make_log(tmp_path, clock)
    assert [e.payload for e in reloaded.read_since(0)] == [{'playlistId': 'p1'}]

    # Timestamps stay monotonic across restarts
    again = reloaded.record('content-updated')
    assert again.timestamp > stored[0]['timestamp']


def test_corrupt_file_starts_empty(tmp_path, clock):
    (tmp_path / 'events.json').write_text('{not json', encoding='utf-8')
    log = make_log(tmp_path, clock)
    assert log.read_since(0) == []


def test_failed_write_keeps_in_memory_window(tmp_path, clock):
    blocked = tmp_path / 'blocked'
    blocked.mkdir()
    log = ChangeLog(str(blocked), clock=clock)

    event = log.record('files-uploaded')

    assert log.read_since(0) == [event]


def test_clear_empties_window_and_file(tmp_path, clock):
    log = make_log(tmp_path, clock)
    log.record('content-updated')
    log.clear()

    assert log.read_since(0) == []
    assert json.loads((tmp_path / 'events.json').read_text(encoding='utf-8')) == []


def test_unknown_kind_is_rejected(tmp_path, clock):
    log = make_log(tmp_path, clock)
    with pytest.raises(ValueError):
        log.record('screen-deleted')


def test_append_keeps_explicit_timestamp_when_newer(tmp_path, clock):
    log = make_log(tmp_path, clock)
    event = log.append(ChangeEvent(ChangeKind.CONTENT_UPDATED, clock() + 5000, {}))
    assert event.timestamp == clock() + 5000
