import pytest

from irrigation.domain.plant_profile import PlantProfile, ThresholdRange
from irrigation.domain.sensors import SensorRecord


def test_profile_accepts_snake_case_rows(tomato_profile):
    row = {"plant_type": "Tomato", "safe_thresholds": tomato_profile.safe_thresholds.to_dict()}
    assert PlantProfile.from_dict(row) == tomato_profile


def test_inverted_range_is_rejected():
    with pytest.raises(ValueError):
        ThresholdRange(lower=70, upper=40)


@pytest.mark.parametrize("data", [{}, {"plantType": "Tomato"}, {"plantType": "", "safeThresholds": {}}])
def test_incomplete_profile_is_rejected(data):
    with pytest.raises(ValueError):
        PlantProfile.from_dict(data)


def test_sensor_record_round_trip_keeps_utc():
    record = SensorRecord.from_dict(
        {"data": {"temperature": 20, "humidity": 50, "moisture": 40}, "timestamp": "2026-05-01T10:00:00Z"}
    )
    assert record.timestamp.isoformat() == "2026-05-01T10:00:00+00:00"
    assert record.to_dict()["data"] == {"temperature": 20.0, "humidity": 50.0, "moisture": 40.0}
