"""Input records: ingested mesh events and the configured topology.

Every model accepts the camelCase keys used on the wire and in the event
store, and exposes snake_case attributes. Records are frozen; the event log
is append-only.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel


class PayloadType(str, Enum):
    """Kinds of payload carried by an event."""

    device_event = "device-event"
    device_info = "device-info"
    sensors = "sensors"
    extender_checkins = "extender-checkins"
    zigbee_route_neighbors = "zigbee-route-neighbors"


WATCHED_PAYLOAD_TYPES = frozenset(PayloadType)


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class DeviceEventPayload(_Record):
    sender_mac: str
    receiver_mac: Optional[str] = None
    sequence: Optional[int] = None
    event_type: Optional[str] = None
    device_type: Optional[str] = None


class DeviceInfoPayload(_Record):
    sender_mac: str
    major_version: int
    minor_version: int


class SensorData(_Record):
    units: Optional[str] = None
    value: Optional[float] = None


class SensorsPayload(_Record):
    sender_mac: str
    sensor_data_list: List[SensorData] = []


class VersionEntry(_Record):
    name: str
    major: int
    minor: int
    build: int = 0


class Checkin(_Record):
    """One extender status report inside an ``extender-checkins`` event."""

    mac: str
    alias: Optional[str] = None
    zigbee_ext_pan_id: Optional[str] = None
    transport: Optional[str] = None
    active: bool = False
    versions: List[VersionEntry] = []


class ExtenderCheckinsPayload(_Record):
    checkin_list: List[Checkin] = []


class RouteNeighbor(_Record):
    mac: str
    lqi: Optional[int] = None


class RouteNeighborsPayload(_Record):
    sender_mac: str
    neighbors: List[RouteNeighbor] = []


Payload = Union[
    DeviceEventPayload,
    DeviceInfoPayload,
    SensorsPayload,
    ExtenderCheckinsPayload,
    RouteNeighborsPayload,
]


_PAYLOAD_MODELS: Dict[PayloadType, Type[_Record]] = {
    PayloadType.device_event: DeviceEventPayload,
    PayloadType.device_info: DeviceInfoPayload,
    PayloadType.sensors: SensorsPayload,
    PayloadType.extender_checkins: ExtenderCheckinsPayload,
    PayloadType.zigbee_route_neighbors: RouteNeighborsPayload,
}


class Event(_Record):
    """A single entry of the ingested event log."""

    id: str
    created_at: datetime
    payload_type: PayloadType
    payload: Payload

    @model_validator(mode="before")
    @classmethod
    def _select_payload_model(cls, data: Any) -> Any:
        # The payload shape is keyed by payloadType, which lives beside it.
        if not isinstance(data, dict):
            return data
        raw_type = data.get("payloadType", data.get("payload_type"))
        try:
            payload_type = PayloadType(raw_type)
        except ValueError:
            return data
        payload = data.get("payload")
        if isinstance(payload, dict):
            model = _PAYLOAD_MODELS[payload_type]
            data = {**data, "payload": model.model_validate(payload)}
        return data

    @field_validator("created_at")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def sender_mac(self) -> Optional[str]:
        return getattr(self.payload, "sender_mac", None)

    def recency_key(self) -> tuple[datetime, str]:
        """Sort key for "latest" selection; equal timestamps fall back to id."""
        return (self.created_at, self.id)


class TransmitterTypeMapping(_Record):
    tx_type: str


class TransmitterProfile(_Record):
    name: Optional[str] = None
    transmitter_type_mappings: List[TransmitterTypeMapping] = []


class ConfiguredDevice(_Record):
    mac: str
    name: Optional[str] = None
    flavor: Optional[str] = None
    transmitter_profile: Optional[TransmitterProfile] = None


class LocationAncestor(_Record):
    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    location_type: Optional[str] = None


class LocationDevice(_Record):
    mac: str


class ConfiguredLocation(_Record):
    """A node of the site hierarchy; ancestors run from nearest to building."""

    id: Union[int, str]
    name: Optional[str] = None
    location_type: Optional[str] = None
    ancestors: List[LocationAncestor] = []
    devices: List[LocationDevice] = []


class TopologySnapshot(_Record):
    """The full configured topology as returned by the configuration service."""

    locations: List[ConfiguredLocation] = []
    devices: List[ConfiguredDevice] = []
