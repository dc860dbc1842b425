from __future__ import annotations
import json
import logging
import os
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, Optional

from pydantic import ValidationError

from models.records import WATCHED_PAYLOAD_TYPES, Event, PayloadType
from settings import get_settings

logger = logging.getLogger(__name__)


class EventStore:
    """Append-only event log queried by time range and payload type."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, Event] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, event: Event) -> bool:
        """Store ``event``; returns False when its id is already stored."""
        with self._lock:
            if event.id in self._items:
                return False
            self._items[event.id] = event
            try:
                self._persist()
            except OSError:
                del self._items[event.id]
                raise
            return True

    def get(self, event_id: str) -> Optional[Event]:
        with self._lock:
            return self._items.get(event_id)

    def query(
        self,
        start: datetime,
        end: datetime,
        payload_types: Iterable[PayloadType] = WATCHED_PAYLOAD_TYPES,
    ) -> list[Event]:
        """Events with ``start <= createdAt <= end``, oldest first."""
        wanted = frozenset(payload_types)
        with self._lock:
            matches = [
                event
                for event in self._items.values()
                if event.payload_type in wanted and start <= event.created_at <= end
            ]
        return sorted(matches, key=lambda event: event.recency_key())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            event_id: event.model_dump(mode="json", by_alias=True)
            for event_id, event in self._items.items()
        }
        temporary = self.persistence_path.with_name(f"{self.persistence_path.name}.tmp")
        temporary.write_text(json.dumps(payload, indent=2, sort_keys=True))
        os.replace(temporary, self.persistence_path)

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            self._quarantine(f"unreadable file: {exc}")
            return
        if not isinstance(data, dict):
            self._quarantine("file does not hold an object of events")
            return

        invalid = 0
        for event_id, document in data.items():
            try:
                self._items[event_id] = Event.model_validate(document)
            except ValidationError as exc:
                invalid += 1
                logger.warning(
                    "Skipping invalid stored event",
                    extra={"event_id": event_id, "reason": str(exc)},
                )
        if invalid:
            # The original file keeps the documents that failed to load.
            self._quarantine(f"{invalid} invalid event(s)")
            self._persist()

    def _quarantine(self, reason: str) -> Path:
        """Move the persisted file aside so the next write cannot overwrite it."""
        assert self.persistence_path is not None
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.persistence_path.with_name(f"{self.persistence_path.name}.corrupt-{stamp}")
        os.replace(self.persistence_path, target)
        logger.error(
            "Event store file moved aside",
            extra={"source": str(target), "reason": reason},
        )
        return target


@lru_cache
def build_default_event_store(path: Optional[str] = None) -> EventStore:
    settings = get_settings()
    store_path = settings.event_store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return EventStore(name="events", persistence_path=persistence)
