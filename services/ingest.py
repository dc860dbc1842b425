"""Ingestion of raw event payloads delivered by the message queue."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Protocol, Union
from uuid import uuid4

from datastore.event_store import EventStore
from models.records import Event

logger = logging.getLogger(__name__)


class Delivery(Protocol):
    """A single broker delivery awaiting acknowledgment."""

    body: bytes

    def ack(self) -> None: ...

    def nack(self, requeue: bool) -> None: ...


class EventIngestor:
    """Parses raw payloads and appends them to the event store."""

    def __init__(self, store: EventStore) -> None:
        self.store = store

    @staticmethod
    def parse(raw: Union[bytes, str, Mapping[str, Any]]) -> Event:
        """Validate a raw payload, assigning ``id`` and ``createdAt`` when absent."""
        if isinstance(raw, (bytes, str)):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Event body is not valid JSON: {exc.msg}") from exc
        if not isinstance(raw, Mapping):
            raise ValueError("Event body must be a JSON object.")

        document = dict(raw)
        if not document.get("id"):
            document["id"] = str(uuid4())
        if not document.get("createdAt") and not document.get("created_at"):
            document["createdAt"] = datetime.now(timezone.utc)
        return Event.model_validate(document)

    def ingest(self, raw: Union[bytes, str, Mapping[str, Any]]) -> tuple[Event, bool]:
        """Parse and store one payload; the flag is False for a redelivered id.

        Duplicate detection relies on the publisher's ``id``. A payload without
        one gets a fresh id on every parse, so redelivering it stores it again.
        """
        event = self.parse(raw)
        stored = self.store.insert(event)
        logger.info(
            "Event stored" if stored else "Duplicate event ignored",
            extra={"event_id": event.id, "payload_type": event.payload_type.value},
        )
        return event, stored

    def handle_delivery(self, delivery: Delivery) -> bool:
        """Process one delivery; acknowledge only once the event is persisted."""
        try:
            event = self.parse(delivery.body)
        except ValueError as exc:
            logger.warning("Rejecting malformed delivery", extra={"reason": str(exc)})
            delivery.nack(requeue=False)
            return False

        try:
            stored = self.store.insert(event)
        except Exception as exc:  # noqa: BLE001 - broker redelivers on nack
            logger.error(
                "Event insert failed; requeueing",
                extra={"event_id": event.id, "reason": str(exc)},
            )
            delivery.nack(requeue=True)
            return False

        delivery.ack()
        if not stored:
            logger.info("Duplicate delivery acknowledged", extra={"event_id": event.id})
        return stored

    def consume(self, deliveries: Iterable[Delivery]) -> int:
        """Handle deliveries one at a time; returns the number of events stored."""
        stored = 0
        for delivery in deliveries:
            if self.handle_delivery(delivery):
                stored += 1
        logger.info("Delivery batch consumed", extra={"event_count": stored})
        return stored
