"""Hardware type to configured flavor compatibility."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

HARDWARE_TYPE_FLAVORS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "Assist": frozenset({"beacon"}),
        "Push": frozenset({"pull-station", "push-station"}),
        "Touch": frozenset({"pendant"}),
        "Move": frozenset({"motion"}),
        "Spot": frozenset(
            {
                "door",
                "window",
                "universal-transmitter",
                "bed-pad",
                "chair-pad",
                "floor-pad",
                "incontinence-pad",
                "bombardier-cord",
                "smoke-detector",
            }
        ),
    }
)


def is_matching(configured_flavor: Optional[str], hardware_type: Optional[str]) -> bool:
    """Return True when the reported hardware may carry the configured flavor."""
    if not configured_flavor or not hardware_type:
        return False
    return configured_flavor in HARDWARE_TYPE_FLAVORS.get(hardware_type, frozenset())
