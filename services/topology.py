"""Resolution of device macs against the configured topology."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from models.records import ConfiguredDevice, ConfiguredLocation

logger = logging.getLogger(__name__)

_SECTION_TYPES = frozenset({"section", "wing"})
_FLOOR_TYPE = "floor"


@dataclass(frozen=True)
class ResolvedLocation:
    """Where a device is installed, flattened for display."""

    building: Optional[str]
    section_or_wing: Optional[str]
    floor: Optional[str]
    place: Optional[str]
    place_id: Optional[Union[int, str]]


def _flatten(location: ConfiguredLocation) -> ResolvedLocation:
    ancestors = location.ancestors
    building = ancestors[-1].name if ancestors else location.name
    section_or_wing = next(
        (a.name for a in ancestors if a.location_type in _SECTION_TYPES), None
    )
    floor = next((a.name for a in ancestors if a.location_type == _FLOOR_TYPE), None)
    return ResolvedLocation(
        building=building,
        section_or_wing=section_or_wing,
        floor=floor,
        place=location.name,
        place_id=location.id,
    )


def resolve_location(
    mac: str, locations: Iterable[ConfiguredLocation]
) -> Optional[ResolvedLocation]:
    """Locate the place where ``mac`` is installed, or None if it is not installed."""
    for location in locations:
        if any(device.mac == mac for device in location.devices):
            return _flatten(location)
    return None


class TopologyResolver:
    """Mac-keyed lookups over one topology snapshot.

    A mac installed at more than one location (or configured twice) keeps its
    first occurrence; the offending macs are listed in ``duplicate_macs``.
    """

    def __init__(
        self,
        locations: Iterable[ConfiguredLocation],
        devices: Iterable[ConfiguredDevice],
    ) -> None:
        self._locations: Dict[str, ConfiguredLocation] = {}
        self._devices: Dict[str, ConfiguredDevice] = {}
        duplicates: Dict[str, None] = {}

        for location in locations:
            for device in location.devices:
                if device.mac in self._locations:
                    duplicates.setdefault(device.mac, None)
                    continue
                self._locations[device.mac] = location

        for configured in devices:
            if configured.mac in self._devices:
                duplicates.setdefault(configured.mac, None)
                continue
            self._devices[configured.mac] = configured

        self.duplicate_macs: List[str] = list(duplicates)
        for mac in self.duplicate_macs:
            logger.warning(
                "Mac appears more than once in the topology; using first occurrence",
                extra={"mac": mac},
            )

    def location_for(self, mac: str) -> Optional[ResolvedLocation]:
        location = self._locations.get(mac)
        if location is None:
            return None
        return _flatten(location)

    def device_for(self, mac: str) -> Optional[ConfiguredDevice]:
        return self._devices.get(mac)
