"""Unit tests for the file-backed event store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from datastore.event_store import EventStore
from models.records import Event, PayloadType

_BASE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _info(event_id: str, minutes: int) -> Event:
    return Event.model_validate(
        {
            "id": event_id,
            "createdAt": _BASE + timedelta(minutes=minutes),
            "payloadType": "device-info",
            "payload": {"senderMac": "m1", "majorVersion": 1, "minorVersion": minutes},
        }
    )


def _sensors(event_id: str, minutes: int) -> Event:
    return Event.model_validate(
        {
            "id": event_id,
            "createdAt": _BASE + timedelta(minutes=minutes),
            "payloadType": "sensors",
            "payload": {"senderMac": "m1", "sensorDataList": []},
        }
    )


def test_insert_ignores_duplicate_ids() -> None:
    store = EventStore(name="events")

    assert store.insert(_info("evt-1", 0)) is True
    assert store.insert(_info("evt-1", 5)) is False
    assert len(store) == 1
    assert store.get("evt-1").payload.minor_version == 0


def test_query_is_inclusive_and_ordered_oldest_first() -> None:
    store = EventStore(name="events")
    for event in (_info("c", 20), _info("a", 0), _info("b", 10), _info("d", 30)):
        store.insert(event)

    events = store.query(_BASE + timedelta(minutes=10), _BASE + timedelta(minutes=30))

    assert [event.id for event in events] == ["b", "c", "d"]


def test_query_filters_payload_types() -> None:
    store = EventStore(name="events")
    store.insert(_info("info", 0))
    store.insert(_sensors("sensors", 0))

    events = store.query(_BASE, _BASE, payload_types={PayloadType.sensors})

    assert [event.id for event in events] == ["sensors"]


def test_insert_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "events.json"
    store = EventStore(name="events", persistence_path=path)

    store.insert(_info("evt-1", 0))

    payload = json.loads(path.read_text())
    assert payload["evt-1"]["payloadType"] == "device-info"
    assert payload["evt-1"]["payload"]["senderMac"] == "m1"

    reloaded = EventStore(name="events", persistence_path=path)
    assert reloaded.get("evt-1") == store.get("evt-1")


def test_unreadable_store_file_is_moved_aside_not_overwritten(tmp_path) -> None:
    path = tmp_path / "events.json"
    store = EventStore(name="events", persistence_path=path)
    store.insert(_info("a", 0))
    original = path.read_text()
    path.write_text(original[: len(original) // 2])

    reopened = EventStore(name="events", persistence_path=path)
    reopened.insert(_info("b", 5))

    assert len(reopened) == 1
    (corrupt,) = tmp_path.glob("events.json.corrupt-*")
    assert '"a"' in corrupt.read_text()
    assert list(json.loads(path.read_text())) == ["b"]


def test_invalid_stored_event_is_skipped_and_file_kept(tmp_path) -> None:
    path = tmp_path / "events.json"
    EventStore(name="events", persistence_path=path).insert(_info("good", 0))
    documents = json.loads(path.read_text())
    documents["bad"] = {
        "id": "bad",
        "createdAt": "2024-01-01T12:00:00Z",
        "payloadType": "device-info",
        "payload": {"senderMac": "m1"},
    }
    path.write_text(json.dumps(documents))

    store = EventStore(name="events", persistence_path=path)

    assert store.get("good") is not None
    assert store.get("bad") is None
    (corrupt,) = tmp_path.glob("events.json.corrupt-*")
    assert "bad" in json.loads(corrupt.read_text())
    assert list(json.loads(path.read_text())) == ["good"]


def test_persist_replaces_file_without_leftovers(tmp_path) -> None:
    path = tmp_path / "events.json"
    store = EventStore(name="events", persistence_path=path)

    store.insert(_info("a", 0))
    store.insert(_info("b", 5))

    assert sorted(p.name for p in tmp_path.iterdir()) == ["events.json"]
    assert sorted(json.loads(path.read_text())) == ["a", "b"]


def test_failed_write_keeps_previous_file_and_rolls_back(tmp_path, monkeypatch) -> None:
    path = tmp_path / "events.json"
    store = EventStore(name="events", persistence_path=path)
    store.insert(_info("a", 0))

    def refuse(src, dst):
        raise OSError("read-only filesystem")

    monkeypatch.setattr("datastore.event_store.os.replace", refuse)

    with pytest.raises(OSError):
        store.insert(_info("b", 5))

    assert store.get("b") is None
    assert list(json.loads(path.read_text())) == ["a"]
