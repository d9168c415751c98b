from unittest.mock import MagicMock

from irrigation.domain.sensors import SensorReading
from irrigation.services.threshold_monitor import (
    HIGH_HUMIDITY,
    HIGH_MOISTURE,
    HIGH_TEMP,
    LOW_MOISTURE,
    LOW_TEMP,
    ThresholdMonitor,
    evaluate_warnings,
)


def test_evaluate_warnings_covers_all_bounds(tomato_thresholds):
    assert evaluate_warnings(SensorReading(25, 60, 50), tomato_thresholds) == []
    assert evaluate_warnings(SensorReading(40, 90, 80), tomato_thresholds) == [HIGH_TEMP, HIGH_HUMIDITY, HIGH_MOISTURE]
    assert evaluate_warnings(SensorReading(10, 60, 20), tomato_thresholds) == [LOW_TEMP, LOW_MOISTURE]


def test_same_warning_set_notifies_once(tomato_profile):
    notifier = MagicMock()
    monitor = ThresholdMonitor(notifier)

    monitor.check_and_notify(SensorReading(40, 60, 50), tomato_profile)
    monitor.check_and_notify(SensorReading(41, 60, 50), tomato_profile)

    notifier.send_alert.assert_called_once()
    assert monitor.current_warnings == {HIGH_TEMP}


def test_new_warning_triggers_another_alert(tomato_profile):
    notifier = MagicMock()
    monitor = ThresholdMonitor(notifier)

    monitor.check_and_notify(SensorReading(40, 60, 50), tomato_profile)
    monitor.check_and_notify(SensorReading(40, 60, 20), tomato_profile)

    assert notifier.send_alert.call_count == 2
    assert notifier.send_alert.call_args.args[0] == [HIGH_TEMP, LOW_MOISTURE]


def test_subset_of_reported_warnings_is_quiet(tomato_profile):
    notifier = MagicMock()
    monitor = ThresholdMonitor(notifier)

    monitor.check_and_notify(SensorReading(40, 60, 20), tomato_profile)
    monitor.check_and_notify(SensorReading(40, 60, 50), tomato_profile)

    notifier.send_alert.assert_called_once()


def test_recovery_rearms_alert(tomato_profile):
    notifier = MagicMock()
    monitor = ThresholdMonitor(notifier)

    monitor.check_and_notify(SensorReading(40, 60, 50), tomato_profile)
    monitor.check_and_notify(SensorReading(25, 60, 50), tomato_profile)
    assert monitor.current_warnings == set()
    monitor.check_and_notify(SensorReading(40, 60, 50), tomato_profile)

    assert notifier.send_alert.call_count == 2


def test_missing_profile_skips_check():
    notifier = MagicMock()
    monitor = ThresholdMonitor(notifier)

    assert monitor.check_and_notify(SensorReading(99, 0, 0), None) == []
    notifier.send_alert.assert_not_called()


def test_alert_state_follows_reading_order_when_sends_finish_out_of_order(tomato_profile, held_executor):
    notifier = MagicMock()
    monitor = ThresholdMonitor(notifier, held_executor)

    monitor.check_and_notify(SensorReading(40, 60, 50), tomato_profile)
    monitor.check_and_notify(SensorReading(25, 60, 50), tomato_profile)
    assert monitor.current_warnings == set()

    held_executor.release(reverse=True)
    assert monitor.current_warnings == set()

    monitor.check_and_notify(SensorReading(40, 60, 50), tomato_profile)
    held_executor.release()

    assert notifier.send_alert.call_count == 2
    assert notifier.send_alert.call_args.args[0] == [HIGH_TEMP]
