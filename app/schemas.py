"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LocationOut(_Schema):
    """Where a device is installed."""

    building: Optional[str] = None
    section_or_wing: Optional[str] = None
    floor: Optional[str] = None
    place: Optional[str] = None
    place_id: Optional[Union[int, str]] = None


class VisibilityOut(_Schema):
    """Distinct extenders per transmission: min, upper median and max."""

    min: Optional[int] = None
    median: Optional[int] = None
    max: Optional[int] = None


class DeviceTriggerCriterion(_Schema):
    tx_type: str
    receiver_count: int = Field(..., ge=0)
    passing: bool = Field(..., alias="pass")


class EndDeviceCriteria(_Schema):
    is_matching_types: bool
    is_firmware_up_to_date: bool
    is_supervision_passing: bool
    is_battery_acceptable: bool
    is_device_triggers_passing: bool


class EndDeviceMetrics(_Schema):
    """Health record for one configured end device."""

    mac: str
    device_name: Optional[str] = None
    config_type: Optional[str] = None
    hardware_type: Optional[str] = None
    transmitter_profile: Optional[str] = None
    firmware_version: Optional[str] = None
    battery_voltage: Optional[float] = None
    location: LocationOut = Field(default_factory=LocationOut)
    extender_visibility: VisibilityOut = Field(default_factory=VisibilityOut)
    device_triggers_criteria: List[DeviceTriggerCriterion] = Field(default_factory=list)
    criteria: EndDeviceCriteria


class ExtenderCriteria(_Schema):
    is_mender_artifact_up_to_date: bool
    is_end_device_firmware_up_to_date: bool
    is_zigbee_activity_acceptable: bool
    is_wifi_activity_acceptable: bool
    is_number_of_neighbors_acceptable: bool
    is_lqi_acceptable: bool


class ExtenderMetrics(_Schema):
    """Health record for one extender or director."""

    mac: str
    device_name: Optional[str] = None
    hardware_type: str
    pan_id: Optional[str] = None
    location: LocationOut = Field(default_factory=LocationOut)
    mender_artifact: Optional[str] = None
    end_device_firmware_version: Optional[str] = None
    zigbee_active_percentage: Optional[float] = None
    wifi_active_percentage: Optional[float] = None
    neighbors_count: Optional[int] = None
    criteria: ExtenderCriteria


class EventAccepted(_Schema):
    """Immediate response after an event has been ingested."""

    id: str = Field(..., description="Identifier of the stored event.")
    stored: bool = Field(
        ..., description="False when an event with the same id was already stored."
    )
