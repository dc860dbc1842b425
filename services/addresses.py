"""Translation between 48-bit configuration addresses and 64-bit mesh addresses."""

from __future__ import annotations

_EXTENDED_INFIX = ("ff", "fe")


def _octets(mac: str, expected: int) -> list[str]:
    octets = mac.split(":")
    if len(octets) != expected or not all(octets):
        raise ValueError(f"Expected a {expected}-octet address, got {mac!r}.")
    return octets


def to_extended(mac48: str) -> str:
    """Insert ``ff:fe`` after the OUI: ``aa:bb:cc:dd:ee:ff`` -> ``aa:bb:cc:ff:fe:dd:ee:ff``."""
    octets = _octets(mac48, 6)
    return ":".join([*octets[:3], *_EXTENDED_INFIX, *octets[3:]])


def to_short(mac64: str) -> str:
    """Inverse of :func:`to_extended`; drops the 4th and 5th octets."""
    octets = _octets(mac64, 8)
    return ":".join([*octets[:3], *octets[5:]])
