"""Firmware and artifact version ordering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from models.records import VersionEntry

MENDER_ARTIFACT = "Mender Artifact"
END_DEVICE_FIRMWARE = "End Device Firmware"


@dataclass(frozen=True)
class Version:
    """A numeric version; ``build`` is absent for end-device firmware pairs."""

    major: int
    minor: int
    build: Optional[int] = None

    @classmethod
    def from_entry(cls, entry: VersionEntry) -> "Version":
        return cls(major=entry.major, minor=entry.minor, build=entry.build)

    def key(self, with_build: bool = True) -> tuple[int, ...]:
        if with_build:
            return (self.major, self.minor, self.build or 0)
        return (self.major, self.minor)

    def device_label(self) -> str:
        return f"v{self.major}.{self.minor}"

    def artifact_label(self) -> str:
        return f"{self.major}.{self.minor}.{self.build or 0}"


def most_recent(
    entries: Iterable[VersionEntry], name: str, with_build: bool = True
) -> Optional[Version]:
    """Highest version among ``entries`` named ``name``, or None when there are none."""
    candidates = [Version.from_entry(entry) for entry in entries if entry.name == name]
    if not candidates:
        return None
    return max(candidates, key=lambda version: version.key(with_build))


def find_version(entries: Iterable[VersionEntry], name: str) -> Optional[Version]:
    """First version entry named ``name``."""
    for entry in entries:
        if entry.name == name:
            return Version.from_entry(entry)
    return None


def is_up_to_date(label: Optional[str], latest_label: Optional[str]) -> bool:
    # Currency is equality with the fleet maximum; a device reporting a newer
    # version than the fleet advertises is not up to date either.
    if label is None or latest_label is None:
        return False
    return label == latest_label
