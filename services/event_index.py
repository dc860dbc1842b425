"""Per-request lookup structures over a batch of events."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from models.records import (
    Checkin,
    DeviceEventPayload,
    Event,
    ExtenderCheckinsPayload,
    PayloadType,
)


class EventIndex:
    """Indexes events by payload kind, mac and device-event type in one pass.

    Events are attributed to the ``senderMac`` of their payload, except
    ``extender-checkins`` events which are attributed to every mac in their
    check-in list. "Latest" means the greatest ``(createdAt, id)``.
    """

    def __init__(self, events: Iterable[Event]) -> None:
        self._by_kind: Dict[PayloadType, List[Event]] = defaultdict(list)
        self._latest: Dict[Tuple[PayloadType, str], Event] = {}
        self._senders: Dict[PayloadType, Dict[str, None]] = defaultdict(dict)
        self._device_events: Dict[Tuple[str, Optional[str]], List[DeviceEventPayload]] = (
            defaultdict(list)
        )
        self._checkins: Dict[str, List[Checkin]] = defaultdict(list)

        for event in events:
            kind = event.payload_type
            self._by_kind[kind].append(event)
            for mac in self._macs_of(event):
                self._senders[kind].setdefault(mac, None)
                current = self._latest.get((kind, mac))
                if current is None or event.recency_key() > current.recency_key():
                    self._latest[(kind, mac)] = event

            payload = event.payload
            if isinstance(payload, DeviceEventPayload):
                self._device_events[(payload.sender_mac, payload.event_type)].append(payload)
            elif isinstance(payload, ExtenderCheckinsPayload):
                for checkin in payload.checkin_list:
                    self._checkins[checkin.mac].append(checkin)

    @staticmethod
    def _macs_of(event: Event) -> List[str]:
        payload = event.payload
        if isinstance(payload, ExtenderCheckinsPayload):
            return list(dict.fromkeys(checkin.mac for checkin in payload.checkin_list))
        sender_mac = event.sender_mac
        return [sender_mac] if sender_mac is not None else []

    def payloads(self, kind: PayloadType) -> list:
        return [event.payload for event in self._by_kind.get(kind, ())]

    def senders(self, kind: PayloadType) -> List[str]:
        """Macs with at least one event of ``kind``, in first-seen order."""
        return list(self._senders.get(kind, {}))

    def latest(self, kind: PayloadType, mac: str) -> Optional[Event]:
        return self._latest.get((kind, mac))

    def latest_of_kind(self, kind: PayloadType) -> Optional[Event]:
        events = self._by_kind.get(kind)
        if not events:
            return None
        return max(events, key=lambda event: event.recency_key())

    def device_events(self, mac: str, event_type: str) -> List[DeviceEventPayload]:
        return list(self._device_events.get((mac, event_type), ()))

    def checkins(self, mac: str) -> List[Checkin]:
        """Every check-in entry reported for ``mac`` across the batch."""
        return list(self._checkins.get(mac, ()))

    def latest_checkin(self, mac: str) -> Optional[Checkin]:
        """The entry for ``mac`` inside the latest check-in event that lists it."""
        event = self.latest(PayloadType.extender_checkins, mac)
        if event is None:
            return None
        assert isinstance(event.payload, ExtenderCheckinsPayload)
        for checkin in event.payload.checkin_list:
            if checkin.mac == mac:
                return checkin
        return None
