"""Request-scoped metrics computation over the stored event log."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, List, Mapping, Optional, Tuple, Union

from app.schemas import EndDeviceMetrics, ExtenderMetrics
from datastore.event_store import EventStore, build_default_event_store
from models.records import Event
from services.end_devices import EndDeviceMetricsAssembler
from services.extenders import ExtenderMetricsAssembler
from services.ingest import EventIngestor
from settings import MetricsThresholds, get_settings
from storage.topology_source import TopologySource, build_default_topology_source

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MetricsService:
    """Wires the event store and topology source to the metrics assemblers."""

    def __init__(
        self,
        store: EventStore,
        topology: TopologySource,
        thresholds: Optional[MetricsThresholds] = None,
        default_window: timedelta = timedelta(hours=24),
    ) -> None:
        self.store = store
        self.topology = topology
        self.default_window = default_window
        self.end_devices = EndDeviceMetricsAssembler(thresholds)
        self.extenders = ExtenderMetricsAssembler(thresholds)
        self.ingestor = EventIngestor(store)

    def resolve_window(
        self, start: Optional[datetime], end: Optional[datetime]
    ) -> Tuple[datetime, datetime]:
        """Fill in missing bounds and reject inverted windows."""
        window_end = _as_utc(end) if end is not None else datetime.now(timezone.utc)
        window_start = _as_utc(start) if start is not None else window_end - self.default_window
        if window_start > window_end:
            raise ValueError("startDate must not be after endDate.")
        return window_start, window_end

    def end_device_metrics(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[EndDeviceMetrics]:
        window_start, window_end = self.resolve_window(start, end)
        snapshot = self.topology.fetch()
        events = self._events(window_start, window_end)
        return self.end_devices.assemble(snapshot.locations, snapshot.devices, events)

    def extender_metrics(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[ExtenderMetrics]:
        window_start, window_end = self.resolve_window(start, end)
        snapshot = self.topology.fetch()
        events = self._events(window_start, window_end)
        return self.extenders.assemble(snapshot.locations, snapshot.devices, events)

    def ingest(self, raw: Union[bytes, str, Mapping[str, Any]]) -> Tuple[Event, bool]:
        return self.ingestor.ingest(raw)

    def shutdown(self) -> None:
        self.topology.close()

    def _events(self, start: datetime, end: datetime) -> List[Event]:
        events = self.store.query(start, end)
        logger.info(
            "Loaded event window",
            extra={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "event_count": len(events),
            },
        )
        return events


@lru_cache
def build_default_metrics_service() -> MetricsService:
    """Factory that wires the service from settings."""
    settings = get_settings()
    return MetricsService(
        store=build_default_event_store(),
        topology=build_default_topology_source(),
        thresholds=settings.thresholds,
        default_window=timedelta(hours=settings.default_window_hours),
    )
