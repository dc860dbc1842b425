"""Health metrics for configured end devices."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from app.schemas import (
    DeviceTriggerCriterion,
    EndDeviceCriteria,
    EndDeviceMetrics,
    LocationOut,
    VisibilityOut,
)
from models.records import (
    ConfiguredDevice,
    ConfiguredLocation,
    DeviceEventPayload,
    DeviceInfoPayload,
    Event,
    ExtenderCheckinsPayload,
    PayloadType,
    SensorsPayload,
)
from services.compatibility import is_matching
from services.event_index import EventIndex
from services.topology import ResolvedLocation, TopologyResolver
from services.versions import END_DEVICE_FIRMWARE, Version, is_up_to_date, most_recent
from services.visibility import VisibilityStats, compute_visibility_stats
from settings import MetricsThresholds

logger = logging.getLogger(__name__)

EXCLUDED_FLAVORS = frozenset({"pendant", "extender", "director", "headend-power"})
SUPERVISION_EVENT_TYPE = "TX_TYPE_SUPERVISION"
VOLTAGE_UNITS = "Volts"


def location_out(resolved: Optional[ResolvedLocation]) -> LocationOut:
    if resolved is None:
        return LocationOut()
    return LocationOut(
        building=resolved.building,
        section_or_wing=resolved.section_or_wing,
        floor=resolved.floor,
        place=resolved.place,
        place_id=resolved.place_id,
    )


def end_device_macs(devices: Iterable[ConfiguredDevice]) -> List[str]:
    """Configured end-device macs in configuration order, without duplicates."""
    macs: dict[str, None] = {}
    for device in devices:
        if device.flavor in EXCLUDED_FLAVORS:
            continue
        macs.setdefault(device.mac, None)
    return list(macs)


def latest_fleet_firmware(index: EventIndex) -> Optional[str]:
    """Newest end-device firmware advertised by the most recent extender check-in."""
    event = index.latest_of_kind(PayloadType.extender_checkins)
    if event is None:
        return None
    assert isinstance(event.payload, ExtenderCheckinsPayload)
    entries = [
        entry for checkin in event.payload.checkin_list for entry in checkin.versions
    ]
    version = most_recent(entries, END_DEVICE_FIRMWARE, with_build=False)
    return version.device_label() if version else None


class EndDeviceMetricsAssembler:
    """Builds one :class:`EndDeviceMetrics` per configured end device."""

    def __init__(self, thresholds: Optional[MetricsThresholds] = None) -> None:
        self.thresholds = thresholds or MetricsThresholds()

    def assemble(
        self,
        locations: Sequence[ConfiguredLocation],
        devices: Sequence[ConfiguredDevice],
        events: Iterable[Event],
    ) -> List[EndDeviceMetrics]:
        index = EventIndex(events)
        topology = TopologyResolver(locations, devices)
        visibility = compute_visibility_stats(index.payloads(PayloadType.device_event))
        fleet_firmware = latest_fleet_firmware(index)

        records = [
            self._build_record(mac, index, topology, visibility.get(mac), fleet_firmware)
            for mac in end_device_macs(devices)
        ]
        logger.info("Assembled end-device metrics", extra={"record_count": len(records)})
        return records

    def _build_record(
        self,
        mac: str,
        index: EventIndex,
        topology: TopologyResolver,
        visibility: Optional[VisibilityStats],
        fleet_firmware: Optional[str],
    ) -> EndDeviceMetrics:
        configured = topology.device_for(mac)
        flavor = configured.flavor if configured else None
        profile = configured.transmitter_profile if configured else None

        hardware_type = self._hardware_type(index, mac)
        firmware_version = self._firmware_version(index, mac)
        battery_voltage = self._battery_voltage(index, mac)

        triggers = []
        for mapping in profile.transmitter_type_mappings if profile else []:
            receivers = {
                payload.receiver_mac
                for payload in index.device_events(mac, mapping.tx_type)
                if payload.receiver_mac is not None
            }
            triggers.append(
                DeviceTriggerCriterion(
                    tx_type=mapping.tx_type,
                    receiver_count=len(receivers),
                    passing=len(receivers) > self.thresholds.trigger_receiver_threshold,
                )
            )

        criteria = EndDeviceCriteria(
            is_matching_types=is_matching(flavor, hardware_type),
            is_firmware_up_to_date=is_up_to_date(firmware_version, fleet_firmware),
            is_supervision_passing=bool(index.device_events(mac, SUPERVISION_EVENT_TYPE)),
            is_battery_acceptable=(
                battery_voltage is not None
                and battery_voltage > self.thresholds.battery_min_voltage
            ),
            is_device_triggers_passing=bool(triggers)
            and all(trigger.passing for trigger in triggers),
        )

        return EndDeviceMetrics(
            mac=mac,
            device_name=configured.name if configured else None,
            config_type=flavor,
            hardware_type=hardware_type,
            transmitter_profile=profile.name if profile else None,
            firmware_version=firmware_version,
            battery_voltage=battery_voltage,
            location=location_out(topology.location_for(mac)),
            extender_visibility=(
                VisibilityOut(min=visibility.min, median=visibility.median, max=visibility.max)
                if visibility
                else VisibilityOut()
            ),
            device_triggers_criteria=triggers,
            criteria=criteria,
        )

    @staticmethod
    def _hardware_type(index: EventIndex, mac: str) -> Optional[str]:
        event = index.latest(PayloadType.device_event, mac)
        if event is None:
            return None
        assert isinstance(event.payload, DeviceEventPayload)
        return event.payload.device_type

    @staticmethod
    def _firmware_version(index: EventIndex, mac: str) -> Optional[str]:
        event = index.latest(PayloadType.device_info, mac)
        if event is None:
            return None
        assert isinstance(event.payload, DeviceInfoPayload)
        version = Version(event.payload.major_version, event.payload.minor_version)
        return version.device_label()

    @staticmethod
    def _battery_voltage(index: EventIndex, mac: str) -> Optional[float]:
        event = index.latest(PayloadType.sensors, mac)
        if event is None:
            return None
        assert isinstance(event.payload, SensorsPayload)
        for reading in event.payload.sensor_data_list:
            if reading.units == VOLTAGE_UNITS:
                return reading.value
        return None
