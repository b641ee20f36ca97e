"""Tests for event normalization and the filter stage."""

import pytest

from conftest import live_event, position_report
from straitwatch.ais.models import RawVesselEvent, VesselCategory, VesselRecord
from straitwatch.ais.normalizer import (
    FilterStage,
    UpdateThrottle,
    classify_category,
    normalize_event,
    should_exclude,
    type_label,
)


def flat_event(source: str = "bridge", **fields) -> RawVesselEvent:
    payload = {
        "id": "271001009",
        "name": "MARMARA TRADER",
        "latitude": 41.05,
        "longitude": 29.02,
        "heading": 20,
        "speed": 9,
        "type_code": 70,
    }
    payload.update(fields)
    return RawVesselEvent(source=source, payload=payload)


class TestNormalizeAisstream:
    """Test extraction from aisstream.io position reports."""

    def test_position_report(self):
        record = normalize_event(live_event(), now=5.0)
        assert record is not None
        assert record.id == "271001001"
        assert record.name == "BOSPHORUS CARGO"
        assert record.latitude == 41.03
        assert record.longitude == 29.01
        assert record.heading == 15
        assert record.speed == 8.5
        assert record.category is VesselCategory.CARGO
        assert record.type_code == 70
        assert record.source == "aisstream"
        assert record.last_update == 5.0

    def test_heading_not_available_falls_back_to_course(self):
        record = normalize_event(live_event(true_heading=511), now=0)
        assert record.heading == 14.0

    def test_metadata_position_overrides_report(self):
        payload = position_report()
        payload["Message"]["PositionReport"]["Latitude"] = 40.9
        record = normalize_event(RawVesselEvent("aisstream", payload), now=0)
        assert record.latitude == 41.03

    def test_report_position_used_without_metadata_position(self):
        payload = position_report()
        del payload["MetaData"]["latitude"]
        del payload["MetaData"]["longitude"]
        payload["Message"]["PositionReport"]["Latitude"] = 40.9
        record = normalize_event(RawVesselEvent("aisstream", payload), now=0)
        assert record.latitude == 40.9

    def test_missing_name_gets_default(self):
        record = normalize_event(live_event(name="  "), now=0)
        assert record.name == "Ship 271001001"

    def test_missing_type_is_unknown(self):
        record = normalize_event(live_event(vessel_type=None), now=0)
        assert record.category is VesselCategory.UNKNOWN
        assert record.type_code is None

    def test_missing_identifier_dropped(self):
        payload = position_report()
        del payload["MetaData"]["MMSI"]
        del payload["Message"]["PositionReport"]["UserID"]
        assert normalize_event(RawVesselEvent("aisstream", payload), now=0) is None

    def test_missing_position_dropped(self):
        payload = position_report()
        del payload["MetaData"]["latitude"]
        del payload["Message"]["PositionReport"]["Latitude"]
        assert normalize_event(RawVesselEvent("aisstream", payload), now=0) is None

    def test_other_message_types_ignored(self):
        payload = {"MessageType": "ShipStaticData", "MetaData": {"MMSI": 1}}
        assert normalize_event(RawVesselEvent("aisstream", payload), now=0) is None


class TestNormalizeFlat:
    """Test extraction from bridge and emulator payloads."""

    def test_bridge_payload(self):
        record = normalize_event(flat_event(destination="Samsun"), now=0)
        assert record.id == "271001009"
        assert record.category is VesselCategory.CARGO
        assert record.destination == "Samsun"
        assert record.source == "bridge"

    def test_text_category(self):
        event = flat_event(source="synthetic", type_code=None, category="tanker")
        record = normalize_event(event, now=0)
        assert record.category is VesselCategory.TANKER
        assert record.type_code is None

    def test_mmsi_alias(self):
        event = RawVesselEvent(
            "bridge", {"mmsi": 271000555, "latitude": 41.0, "longitude": 29.0}
        )
        assert normalize_event(event, now=0).id == "271000555"

    def test_invalid_coordinates_dropped(self):
        assert normalize_event(flat_event(latitude=123.0), now=0) is None
        assert normalize_event(flat_event(longitude="east"), now=0) is None


class TestClassification:
    """Test category and type label helpers."""

    def test_classify_numeric_string(self):
        assert classify_category("84") == (VesselCategory.TANKER, 84)

    def test_classify_text(self):
        assert classify_category("Cargo") == (VesselCategory.CARGO, None)

    def test_classify_empty(self):
        assert classify_category("") == (VesselCategory.UNKNOWN, None)

    def test_type_labels(self):
        assert type_label(72) == "Cargo"
        assert type_label(37) == "Pleasure"
        assert type_label(52) == "Type-52"
        assert type_label(None) == "Unknown"


class TestExclusion:
    """Test the bridge exclusion rules."""

    def _record(self, **kwargs) -> VesselRecord:
        defaults = dict(id="1", latitude=41.0, longitude=29.0, last_update=0)
        defaults.update(kwargs)
        return VesselRecord(**defaults)

    @pytest.mark.parametrize("code", [30, 36, 37, 52, 60, 69])
    def test_excluded_type_codes(self, code):
        assert should_exclude(self._record(type_code=code))

    def test_cargo_and_tanker_kept(self):
        assert not should_exclude(self._record(type_code=70, category=VesselCategory.CARGO))
        assert not should_exclude(self._record(type_code=80, category=VesselCategory.TANKER))

    def test_excluded_by_name(self):
        assert should_exclude(self._record(name="KADIKOY FERRY"))
        assert should_exclude(self._record(name="Coast Guard 12"))

    def test_excluded_by_category(self):
        assert should_exclude(self._record(category=VesselCategory.FISHING))


class TestUpdateThrottle:
    """Test the per-vessel throttle."""

    def test_window(self):
        throttle = UpdateThrottle(30)
        assert not throttle.is_throttled("a", 100)
        throttle.record("a", 100)
        assert throttle.is_throttled("a", 129.9)
        assert not throttle.is_throttled("a", 130)
        assert not throttle.is_throttled("b", 110)

    def test_forget(self):
        throttle = UpdateThrottle(30)
        throttle.record("a", 100)
        throttle.forget("a")
        throttle.forget("a")
        assert not throttle.is_throttled("a", 101)
        assert len(throttle) == 0


class TestFilterStage:
    """Test admission of normalized records."""

    def test_live_record_outside_box_rejected(self, bbox):
        stage = FilterStage(bbox, UpdateThrottle(30))
        record = normalize_event(live_event(latitude=41.5), now=0)
        assert not stage.admit(record, 0)
        assert stage.get_statistics()["rejected"]["out_of_bounds"] == 1

    def test_synthetic_record_skips_box_and_throttle(self, bbox):
        throttle = UpdateThrottle(30)
        stage = FilterStage(bbox, throttle)
        record = normalize_event(flat_event(source="synthetic", latitude=41.5), now=0)
        throttle.record(record.id, 0)
        assert stage.admit(record, 1)

    def test_throttled_live_record_rejected(self, bbox):
        throttle = UpdateThrottle(30)
        stage = FilterStage(bbox, throttle)
        record = normalize_event(live_event(), now=0)
        assert stage.admit(record, 0)
        throttle.record(record.id, 0)
        assert not stage.admit(record, 10)
        assert stage.admit(record, 30)

    def test_passthrough_keeps_passenger_traffic(self, bbox):
        stage = FilterStage(bbox, UpdateThrottle(30))
        record = normalize_event(live_event(vessel_type=60, name="MARMARA EXPRESS"), now=0)
        assert stage.admit(record, 0)

    def test_exclude_mode_drops_passenger_traffic(self, bbox):
        stage = FilterStage(bbox, UpdateThrottle(30), filter_mode="exclude")
        record = normalize_event(live_event(vessel_type=60, name="MARMARA EXPRESS"), now=0)
        assert not stage.admit(record, 0)
        assert stage.get_statistics()["rejected"]["excluded"] == 1

    def test_unknown_mode_rejected(self, bbox):
        with pytest.raises(ValueError):
            FilterStage(bbox, UpdateThrottle(30), filter_mode="strict")
