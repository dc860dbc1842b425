"""Unit tests for the extender metrics assembler."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from models.records import Checkin, ConfiguredDevice, ConfiguredLocation, Event
from services.extenders import ZIGBEE_TRANSPORT, ExtenderMetricsAssembler, activity_percentage
from settings import MetricsThresholds

_BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
_E1 = "aa:bb:cc:ff:fe:dd:ee:01"
_E2 = "aa:bb:cc:ff:fe:dd:ee:02"


def _event(event_id: str, minutes: int, payload_type: str, payload: Dict[str, Any]) -> Event:
    return Event.model_validate(
        {
            "id": event_id,
            "createdAt": _BASE + timedelta(minutes=minutes),
            "payloadType": payload_type,
            "payload": payload,
        }
    )


def _version(name: str, major: int, minor: int, build: int) -> Dict[str, Any]:
    return {"name": name, "major": major, "minor": minor, "build": build}


def _checkins(event_id: str, minutes: int, checkins: List[Dict[str, Any]]) -> Event:
    return _event(event_id, minutes, "extender-checkins", {"checkinList": checkins})


def _neighbors(event_id: str, minutes: int, mac: str, lqis: Dict[str, Any]) -> Event:
    return _event(
        event_id,
        minutes,
        "zigbee-route-neighbors",
        {"senderMac": mac, "neighbors": [{"mac": n, "lqi": lqi} for n, lqi in lqis.items()]},
    )


def _fleet_events() -> List[Event]:
    director = {
        "mac": _E1,
        "alias": "00:00",
        "zigbeeExtPanId": "pan-1",
        "transport": "zigbee",
        "active": True,
        "versions": [
            _version("Mender Artifact", 2, 1, 0),
            _version("End Device Firmware", 1, 4, 0),
        ],
    }
    extender = {
        "mac": _E2,
        "alias": "00:02",
        "zigbeeExtPanId": "pan-1",
        "transport": "wifi",
        "active": False,
        "versions": [
            _version("Mender Artifact", 2, 0, 5),
            _version("End Device Firmware", 1, 3, 9),
        ],
    }
    return [
        _checkins("c1", 0, [director, extender]),
        _checkins("c2", 10, [director, {**extender, "active": True}]),
        _neighbors("n0", 1, _E1, {"n1": 200}),
        _neighbors("n1", 5, _E1, {"n1": 180, "n2": 120, "n3": None}),
    ]


def _config() -> tuple[List[ConfiguredLocation], List[ConfiguredDevice]]:
    locations = [
        ConfiguredLocation.model_validate(
            {
                "id": 9,
                "name": "Comms closet",
                "locationType": "room",
                "ancestors": [
                    {"id": 3, "name": "Floor 1", "locationType": "floor"},
                    {"id": 2, "name": "North", "locationType": "section"},
                    {"id": 1, "name": "Main", "locationType": "building"},
                ],
                "devices": [{"mac": "aa:bb:cc:dd:ee:01"}],
            }
        )
    ]
    devices = [
        ConfiguredDevice(mac="aa:bb:cc:dd:ee:01", name="Head director", flavor="extender"),
        ConfiguredDevice(mac="aa:bb:cc:dd:ee:09", name="Spare", flavor="extender"),
        ConfiguredDevice(mac="aa:bb:cc:dd:ee:10", name="Door", flavor="door"),
    ]
    return locations, devices


def test_universe_combines_checkins_and_configured_extenders() -> None:
    locations, devices = _config()

    records = ExtenderMetricsAssembler().assemble(locations, devices, _fleet_events())

    assert [r.mac for r in records] == [_E1, _E2, "aa:bb:cc:ff:fe:dd:ee:09"]


def test_director_record_is_resolved_through_short_address() -> None:
    locations, devices = _config()

    director = ExtenderMetricsAssembler().assemble(locations, devices, _fleet_events())[0]

    assert director.device_name == "Head director"
    assert director.hardware_type == "director"
    assert director.pan_id == "pan-1"
    assert director.location.building == "Main"
    assert director.location.section_or_wing == "North"
    assert director.location.floor == "Floor 1"
    assert director.location.place_id == 9
    assert director.mender_artifact == "2.1.0"
    assert director.end_device_firmware_version == "1.4.0"
    assert director.criteria.is_mender_artifact_up_to_date is True
    assert director.criteria.is_end_device_firmware_up_to_date is True


def test_activity_is_scoped_to_each_extender() -> None:
    locations, devices = _config()

    director, extender, _spare = ExtenderMetricsAssembler().assemble(
        locations, devices, _fleet_events()
    )

    assert director.zigbee_active_percentage == 100.0
    assert director.wifi_active_percentage is None
    assert director.criteria.is_zigbee_activity_acceptable is True
    assert director.criteria.is_wifi_activity_acceptable is False
    assert extender.wifi_active_percentage == 50.0
    assert extender.zigbee_active_percentage is None
    assert extender.criteria.is_wifi_activity_acceptable is False


def test_outdated_versions_are_flagged() -> None:
    locations, devices = _config()

    extender = ExtenderMetricsAssembler().assemble(locations, devices, _fleet_events())[1]

    assert extender.hardware_type == "extender"
    assert extender.device_name is None
    assert extender.mender_artifact == "2.0.5"
    assert extender.criteria.is_mender_artifact_up_to_date is False
    assert extender.criteria.is_end_device_firmware_up_to_date is False


def test_neighbors_come_from_latest_route_report() -> None:
    locations, devices = _config()

    director, extender, _spare = ExtenderMetricsAssembler().assemble(
        locations, devices, _fleet_events()
    )

    assert director.neighbors_count == 3
    assert director.criteria.is_number_of_neighbors_acceptable is True
    assert director.criteria.is_lqi_acceptable is True
    assert extender.neighbors_count is None
    assert extender.criteria.is_number_of_neighbors_acceptable is False
    assert extender.criteria.is_lqi_acceptable is False


def test_lqi_threshold_is_configurable() -> None:
    locations, devices = _config()
    assembler = ExtenderMetricsAssembler(MetricsThresholds(min_lqi=150, min_neighbors=4))

    director = assembler.assemble(locations, devices, _fleet_events())[0]

    assert director.criteria.is_lqi_acceptable is False
    assert director.criteria.is_number_of_neighbors_acceptable is False


def test_configured_extender_without_checkins_reports_absent_values() -> None:
    locations, devices = _config()

    spare = ExtenderMetricsAssembler().assemble(locations, devices, _fleet_events())[2]

    assert spare.device_name == "Spare"
    assert spare.hardware_type == "extender"
    assert spare.pan_id is None
    assert spare.mender_artifact is None
    assert spare.zigbee_active_percentage is None
    assert spare.location.building is None
    assert spare.criteria.is_mender_artifact_up_to_date is False
    assert spare.criteria.is_end_device_firmware_up_to_date is False


def test_malformed_configured_mac_is_skipped() -> None:
    devices = [ConfiguredDevice(mac="not-a-mac", flavor="extender")]

    assert ExtenderMetricsAssembler().assemble([], devices, []) == []


@pytest.mark.parametrize(
    ("flags", "expected"),
    [([True, True, False, True], 75.0), ([False], 0.0), ([], None)],
)
def test_activity_percentage(flags: List[bool], expected) -> None:
    checkins = [Checkin(mac="e", transport="zigbee", active=flag) for flag in flags]
    checkins.append(Checkin(mac="e", transport="wifi", active=True))

    assert activity_percentage(checkins, ZIGBEE_TRANSPORT) == expected


def test_serialized_record_uses_dashboard_keys() -> None:
    locations, devices = _config()

    director = ExtenderMetricsAssembler().assemble(locations, devices, _fleet_events())[0]
    payload = director.model_dump(mode="json", by_alias=True)

    assert set(payload) == {
        "mac",
        "deviceName",
        "hardwareType",
        "panId",
        "location",
        "menderArtifact",
        "endDeviceFirmwareVersion",
        "zigbeeActivePercentage",
        "wifiActivePercentage",
        "neighborsCount",
        "criteria",
    }
    assert set(payload["criteria"]) == {
        "isMenderArtifactUpToDate",
        "isEndDeviceFirmwareUpToDate",
        "isZigbeeActivityAcceptable",
        "isWifiActivityAcceptable",
        "isNumberOfNeighborsAcceptable",
        "isLqiAcceptable",
    }


def test_unknown_transport_counts_toward_neither_share() -> None:
    event = _checkins("c1", 0, [{"mac": _E1, "transport": "thread", "active": True}])

    (record,) = ExtenderMetricsAssembler().assemble([], [], [event])

    assert record.zigbee_active_percentage is None
    assert record.wifi_active_percentage is None
    assert record.criteria.is_zigbee_activity_acceptable is False


def test_assembling_twice_gives_identical_output() -> None:
    locations, devices = _config()
    events = _fleet_events()
    assembler = ExtenderMetricsAssembler()

    first = [r.model_dump_json(by_alias=True) for r in assembler.assemble(locations, devices, events)]
    second = [r.model_dump_json(by_alias=True) for r in assembler.assemble(locations, devices, events)]

    assert first == second
