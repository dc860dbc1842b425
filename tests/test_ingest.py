"""Unit tests for queue delivery handling."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import List, Optional

import pytest

from datastore.event_store import EventStore
from models.records import Event, PayloadType
from services.ingest import EventIngestor


class FakeDelivery:
    def __init__(self, body: bytes) -> None:
        self.body = body
        self.acked = False
        self.requeue: Optional[bool] = None

    def ack(self) -> None:
        self.acked = True

    def nack(self, requeue: bool) -> None:
        self.requeue = requeue


class FailingStore(EventStore):
    def insert(self, event: Event) -> bool:
        raise OSError("disk full")


def _body(**overrides) -> bytes:
    document = {
        "id": "evt-1",
        "createdAt": "2024-01-01T00:00:00Z",
        "payloadType": "device-info",
        "payload": {"senderMac": "m1", "majorVersion": 1, "minorVersion": 4},
    }
    document.update(overrides)
    return json.dumps(document).encode("utf-8")


def test_parse_assigns_missing_identity_and_timestamp() -> None:
    before = datetime.now(timezone.utc)

    event = EventIngestor.parse(
        {"payloadType": "sensors", "payload": {"senderMac": "m1", "sensorDataList": []}}
    )

    assert event.id
    assert event.payload_type is PayloadType.sensors
    assert event.created_at >= before


def test_parse_rejects_non_objects() -> None:
    with pytest.raises(ValueError):
        EventIngestor.parse(b"[1, 2, 3]")
    with pytest.raises(ValueError):
        EventIngestor.parse("{broken")


def test_successful_delivery_is_acknowledged_after_insert() -> None:
    store = EventStore(name="events")
    delivery = FakeDelivery(_body())

    assert EventIngestor(store).handle_delivery(delivery) is True

    assert delivery.acked is True
    assert delivery.requeue is None
    assert store.get("evt-1") is not None


def test_redelivered_event_is_acknowledged_once_stored() -> None:
    store = EventStore(name="events")
    ingestor = EventIngestor(store)
    first, second = FakeDelivery(_body()), FakeDelivery(_body())

    ingestor.handle_delivery(first)
    assert ingestor.handle_delivery(second) is False

    assert second.acked is True
    assert len(store) == 1


def test_failed_insert_is_requeued_not_acknowledged() -> None:
    delivery = FakeDelivery(_body())

    assert EventIngestor(FailingStore(name="events")).handle_delivery(delivery) is False

    assert delivery.acked is False
    assert delivery.requeue is True


def test_malformed_delivery_is_rejected_without_requeue() -> None:
    delivery = FakeDelivery(_body(payloadType="heartbeat"))

    assert EventIngestor(EventStore(name="events")).handle_delivery(delivery) is False

    assert delivery.acked is False
    assert delivery.requeue is False


def test_consume_processes_deliveries_in_order() -> None:
    store = EventStore(name="events")
    deliveries: List[FakeDelivery] = [
        FakeDelivery(_body(id="a")),
        FakeDelivery(b"not json"),
        FakeDelivery(_body(id="b")),
        FakeDelivery(_body(id="a")),
    ]

    stored = EventIngestor(store).consume(deliveries)

    assert stored == 2
    assert [d.acked for d in deliveries] == [True, False, True, True]
    assert len(store) == 2


def test_payload_without_id_is_stored_again_when_redelivered() -> None:
    store = EventStore(name="events")
    ingestor = EventIngestor(store)
    body = {"payloadType": "sensors", "payload": {"senderMac": "m1", "sensorDataList": []}}

    first, first_stored = ingestor.ingest(body)
    second, second_stored = ingestor.ingest(body)

    assert first_stored is True and second_stored is True
    assert first.id != second.id
    assert len(store) == 2
