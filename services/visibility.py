"""How many extenders hear each end-device transmission."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from models.records import DeviceEventPayload


@dataclass(frozen=True)
class VisibilityStats:
    """Distribution of distinct receivers per transmission for one sender."""

    min: int
    median: int
    max: int


def upper_median(values: Sequence[int]) -> Optional[int]:
    """Element ``n // 2`` of the sorted values; even-sized inputs take the upper one."""
    if not values:
        return None
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


def compute_visibility_stats(
    payloads: Iterable[DeviceEventPayload],
) -> Dict[str, VisibilityStats]:
    """Group transmissions by ``(sender, sequence)`` and summarise receiver counts."""
    receivers: Dict[Tuple[str, Optional[int]], Set[str]] = defaultdict(set)
    for payload in payloads:
        group = receivers[(payload.sender_mac, payload.sequence)]
        if payload.receiver_mac is not None:
            group.add(payload.receiver_mac)

    counts: Dict[str, List[int]] = defaultdict(list)
    for (sender_mac, _sequence), group in receivers.items():
        counts[sender_mac].append(len(group))

    stats: Dict[str, VisibilityStats] = {}
    for sender_mac, sender_counts in counts.items():
        median = upper_median(sender_counts)
        assert median is not None
        stats[sender_mac] = VisibilityStats(
            min=min(sender_counts), median=median, max=max(sender_counts)
        )
    return stats
