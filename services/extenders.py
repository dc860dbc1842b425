"""Health metrics for extenders and directors."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from app.schemas import ExtenderCriteria, ExtenderMetrics
from models.records import (
    Checkin,
    ConfiguredDevice,
    ConfiguredLocation,
    Event,
    PayloadType,
    RouteNeighborsPayload,
)
from services.addresses import to_extended, to_short
from services.end_devices import location_out
from services.event_index import EventIndex
from services.topology import TopologyResolver
from services.versions import (
    END_DEVICE_FIRMWARE,
    MENDER_ARTIFACT,
    find_version,
    is_up_to_date,
    most_recent,
)
from settings import MetricsThresholds

logger = logging.getLogger(__name__)

EXTENDER_FLAVOR = "extender"
DIRECTOR_ALIAS = "00:00"
ZIGBEE_TRANSPORT = "zigbee"
WIFI_TRANSPORT = "wifi"


def activity_percentage(checkins: Iterable[Checkin], transport: str) -> Optional[float]:
    """Share of ``transport`` check-ins reporting active, or None without any."""
    matching = [checkin for checkin in checkins if checkin.transport == transport]
    if not matching:
        return None
    active = sum(1 for checkin in matching if checkin.active)
    return 100 * active / len(matching)


def fleet_version(index: EventIndex, name: str) -> Optional[str]:
    entries = [
        entry
        for payload in index.payloads(PayloadType.extender_checkins)
        for checkin in payload.checkin_list
        for entry in checkin.versions
    ]
    version = most_recent(entries, name)
    return version.artifact_label() if version else None


def _short_or_none(mac: str) -> Optional[str]:
    try:
        return to_short(mac)
    except ValueError:
        logger.warning("Extender mac is not a 64-bit address", extra={"mac": mac})
        return None


class ExtenderMetricsAssembler:
    """Builds one :class:`ExtenderMetrics` per extender seen or configured."""

    def __init__(self, thresholds: Optional[MetricsThresholds] = None) -> None:
        self.thresholds = thresholds or MetricsThresholds()

    def extender_macs(self, devices: Iterable[ConfiguredDevice], index: EventIndex) -> List[str]:
        """Macs from check-ins (first seen) followed by configured extenders, 64-bit form."""
        macs: dict[str, None] = dict.fromkeys(index.senders(PayloadType.extender_checkins))
        for device in devices:
            if device.flavor != EXTENDER_FLAVOR:
                continue
            try:
                macs.setdefault(to_extended(device.mac), None)
            except ValueError:
                logger.warning(
                    "Skipping configured extender with malformed mac",
                    extra={"mac": device.mac},
                )
        return list(macs)

    def assemble(
        self,
        locations: Sequence[ConfiguredLocation],
        devices: Sequence[ConfiguredDevice],
        events: Iterable[Event],
    ) -> List[ExtenderMetrics]:
        index = EventIndex(events)
        topology = TopologyResolver(locations, devices)
        latest_artifact = fleet_version(index, MENDER_ARTIFACT)
        latest_firmware = fleet_version(index, END_DEVICE_FIRMWARE)

        records = [
            self._build_record(mac, index, topology, latest_artifact, latest_firmware)
            for mac in self.extender_macs(devices, index)
        ]
        logger.info("Assembled extender metrics", extra={"record_count": len(records)})
        return records

    def _build_record(
        self,
        mac: str,
        index: EventIndex,
        topology: TopologyResolver,
        latest_artifact: Optional[str],
        latest_firmware: Optional[str],
    ) -> ExtenderMetrics:
        short_mac = _short_or_none(mac)
        configured = topology.device_for(short_mac) if short_mac else None
        resolved = topology.location_for(short_mac) if short_mac else None

        checkins = index.checkins(mac)
        zigbee_percentage = activity_percentage(checkins, ZIGBEE_TRANSPORT)
        wifi_percentage = activity_percentage(checkins, WIFI_TRANSPORT)

        latest = index.latest_checkin(mac)
        versions = latest.versions if latest else []
        artifact = find_version(versions, MENDER_ARTIFACT)
        firmware = find_version(versions, END_DEVICE_FIRMWARE)
        artifact_label = artifact.artifact_label() if artifact else None
        firmware_label = firmware.artifact_label() if firmware else None

        neighbor_lqis = self._neighbor_lqis(index, mac)
        neighbors_count = len(neighbor_lqis) if neighbor_lqis is not None else None
        reported_lqis = [lqi for lqi in (neighbor_lqis or {}).values() if lqi is not None]

        minimum_activity = self.thresholds.activity_min_percentage
        criteria = ExtenderCriteria(
            is_mender_artifact_up_to_date=is_up_to_date(artifact_label, latest_artifact),
            is_end_device_firmware_up_to_date=is_up_to_date(firmware_label, latest_firmware),
            is_zigbee_activity_acceptable=(
                zigbee_percentage is not None and zigbee_percentage > minimum_activity
            ),
            is_wifi_activity_acceptable=(
                wifi_percentage is not None and wifi_percentage > minimum_activity
            ),
            is_number_of_neighbors_acceptable=(
                neighbors_count is not None
                and neighbors_count >= self.thresholds.min_neighbors
            ),
            is_lqi_acceptable=bool(reported_lqis)
            and min(reported_lqis) >= self.thresholds.min_lqi,
        )

        return ExtenderMetrics(
            mac=mac,
            device_name=configured.name if configured else None,
            hardware_type="director" if latest and latest.alias == DIRECTOR_ALIAS else "extender",
            pan_id=latest.zigbee_ext_pan_id if latest else None,
            location=location_out(resolved),
            mender_artifact=artifact_label,
            end_device_firmware_version=firmware_label,
            zigbee_active_percentage=zigbee_percentage,
            wifi_active_percentage=wifi_percentage,
            neighbors_count=neighbors_count,
            criteria=criteria,
        )

    @staticmethod
    def _neighbor_lqis(index: EventIndex, mac: str) -> Optional[dict[str, Optional[int]]]:
        """Distinct neighbors of the latest route report, keyed by mac; None without one."""
        event = index.latest(PayloadType.zigbee_route_neighbors, mac)
        if event is None:
            return None
        assert isinstance(event.payload, RouteNeighborsPayload)
        lqis: dict[str, Optional[int]] = {}
        for neighbor in event.payload.neighbors:
            current = lqis.get(neighbor.mac)
            if current is None or (neighbor.lqi is not None and neighbor.lqi < current):
                lqis[neighbor.mac] = neighbor.lqi
        return lqis
