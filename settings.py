from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


_EVENT_STORE_PATH_ENV = "MESH_EVENT_STORE_PATH"
_TOPOLOGY_PATH_ENV = "MESH_TOPOLOGY_PATH"
_CONFIG_SERVICE_URL_ENV = "MESH_CONFIG_SERVICE_URL"
_CONFIG_SERVICE_TIMEOUT_ENV = "MESH_CONFIG_SERVICE_TIMEOUT"
_TRIGGER_THRESHOLD_ENV = "MESH_TRIGGER_RECEIVER_THRESHOLD"
_BATTERY_MIN_VOLTAGE_ENV = "MESH_BATTERY_MIN_VOLTAGE"
_ACTIVITY_MIN_ENV = "MESH_ACTIVITY_MIN_PERCENTAGE"
_MIN_NEIGHBORS_ENV = "MESH_MIN_NEIGHBORS"
_MIN_LQI_ENV = "MESH_MIN_LQI"
_WINDOW_HOURS_ENV = "MESH_DEFAULT_WINDOW_HOURS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class MetricsThresholds:
    """Pass/fail limits applied by the metrics assemblers."""

    trigger_receiver_threshold: int = 2
    battery_min_voltage: float = 2.85
    activity_min_percentage: float = 90.0
    # Neighbor and LQI limits are provisional until field data is available.
    min_neighbors: int = 2
    min_lqi: int = 100


@dataclass(frozen=True)
class Settings:
    event_store_path: Optional[str]
    topology_path: Optional[str]
    config_service_url: Optional[str]
    config_service_timeout: float
    default_window_hours: int
    log_level: str
    thresholds: MetricsThresholds = field(default_factory=MetricsThresholds)


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_non_negative_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    defaults = MetricsThresholds()
    thresholds = MetricsThresholds(
        trigger_receiver_threshold=_read_positive_int(
            _TRIGGER_THRESHOLD_ENV, defaults.trigger_receiver_threshold
        ),
        battery_min_voltage=_read_non_negative_float(
            _BATTERY_MIN_VOLTAGE_ENV, defaults.battery_min_voltage
        ),
        activity_min_percentage=_read_non_negative_float(
            _ACTIVITY_MIN_ENV, defaults.activity_min_percentage
        ),
        min_neighbors=_read_positive_int(_MIN_NEIGHBORS_ENV, defaults.min_neighbors),
        min_lqi=_read_positive_int(_MIN_LQI_ENV, defaults.min_lqi),
    )
    return Settings(
        event_store_path=_read_optional_env(_EVENT_STORE_PATH_ENV, "./tmp/events.json"),
        topology_path=_read_optional_env(_TOPOLOGY_PATH_ENV, "./tmp/topology.json"),
        config_service_url=_read_optional_env(_CONFIG_SERVICE_URL_ENV, None),
        config_service_timeout=_read_non_negative_float(_CONFIG_SERVICE_TIMEOUT_ENV, 10.0),
        default_window_hours=_read_positive_int(_WINDOW_HOURS_ENV, 24),
        log_level=_read_log_level("INFO"),
        thresholds=thresholds,
    )
