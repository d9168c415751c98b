from irrigation.domain.device_state import DeviceState, DeviceStateMirror
from irrigation.enums.events import DeviceStateField, WebSocketEvent


def _recording_mirror(**kwargs):
    events = []
    mirror = DeviceStateMirror(on_change=lambda event, payload: events.append((event, payload)), **kwargs)
    return mirror, events


def test_initial_state_defaults(tomato_profile):
    mirror = DeviceStateMirror(profile=tomato_profile)
    state = mirror.get_state()

    assert state.pump_active is False
    assert state.auto_mode is True
    assert state.current_plant_type == "Tomato"


def test_initial_state_without_profiles():
    assert DeviceStateMirror().get_state().current_plant_type is None


def test_confirmed_update_broadcasts_changed_field_only():
    mirror, events = _recording_mirror()

    state = mirror.apply_confirmed_update(DeviceStateField.PUMP, True)

    assert state.pump_active is True
    assert events == [(WebSocketEvent.PUMP_STATE_UPDATE, True)]


def test_equal_update_is_silent_noop():
    mirror, events = _recording_mirror()

    before = mirror.get_state()
    after = mirror.apply_confirmed_update(DeviceStateField.AUTO_MODE, True)

    assert after == before
    assert events == []


def test_get_state_is_a_snapshot():
    mirror, _events = _recording_mirror()
    snapshot = mirror.get_state()
    mirror.apply_confirmed_update(DeviceStateField.PUMP, True)

    assert snapshot.pump_active is False
    assert mirror.get_state().pump_active is True


def test_profile_change_updates_snapshot(tomato_profile, basil_profile):
    mirror, events = _recording_mirror(profile=tomato_profile)

    mirror.apply_profile_change(basil_profile)

    assert mirror.get_profile() == basil_profile
    assert events == [
        (
            WebSocketEvent.PLANT_TYPE_UPDATE,
            {"plantType": "Basil", "thresholds": basil_profile.safe_thresholds.to_dict()},
        )
    ]
    assert mirror.snapshot() == {
        "state": {"pump": False, "automode": True},
        "currentPlantType": "Basil",
        "currentPlantProfile": basil_profile.to_dict(),
    }


def test_listener_failure_does_not_break_update():
    def broken(_event, _payload):
        raise RuntimeError("socket gone")

    mirror = DeviceStateMirror(initial=DeviceState(auto_mode=False), on_change=broken)
    state = mirror.apply_confirmed_update(DeviceStateField.AUTO_MODE, True)
    assert state.auto_mode is True
