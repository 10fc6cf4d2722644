"""
Tests for gateway data models.
"""

import pytest

from deconz_bridge.deconz.models import (
    ChangeEvent,
    Device,
    DeviceType,
    GatewayConfiguration,
    LightDetails,
    SensorDetails,
    StateMap,
)


class TestStateMap:
    """Tests for state payload normalization."""

    def test_flat_payload(self):
        """Test reading a flat state payload."""
        state = StateMap({"on": True, "bri": 128})
        assert state.has("on")
        assert state.as_bool("on") is True
        assert state.as_int("bri") == 128
        assert state.last_updated("bri") is None

    def test_extended_payload(self):
        """Test reading value/lastupdated entries."""
        state = StateMap({
            "on": {"value": False, "lastupdated": "2024-01-01T10:00:00.000"},
            "bri": {"value": 42},
        })
        assert state.as_bool("on") is False
        assert state.value("bri") == 42
        assert state.last_updated("on") == "2024-01-01T10:00:00.000"

    def test_null_counts_as_absent(self):
        """Test null values are absent."""
        state = StateMap({"lowbattery": None, "open": {"value": None}})
        assert not state.has("lowbattery")
        assert not state.has("open")
        assert len(state) == 0
        assert not state

    def test_false_is_present(self):
        """Test false values are present."""
        state = StateMap({"open": False})
        assert state.has("open")
        assert bool(state)

    def test_missing_key(self):
        """Test reading a missing key."""
        state = StateMap()
        assert not state.has("on")
        assert state.value("on", "default") == "default"
        with pytest.raises(KeyError):
            state.as_bool("on")

    def test_non_value_dicts_are_kept(self):
        """Test plain dict values are kept."""
        state = StateMap({"xy": {"x": 0.3, "y": 0.4}})
        assert state.value("xy") == {"x": 0.3, "y": 0.4}


class TestChangeEvent:
    """Tests for websocket message decoding."""

    def test_full_message(self):
        """Test parsing a full change event."""
        event = ChangeEvent.from_dict({
            "t": "event",
            "e": "changed",
            "r": "lights",
            "id": "7",
            "uniqueid": "00:17:88:01:00:00:00:01-0b",
            "state": {"on": True, "bri": 200},
        })
        assert event.event == "changed"
        assert event.resource == "lights"
        assert event.resource_id == "7"
        assert event.unique_id == "00:17:88:01:00:00:00:01-0b"
        assert event.state.as_int("bri") == 200
        assert event.config is None

    def test_scene_message(self):
        """Test parsing a scene event."""
        event = ChangeEvent.from_dict({"t": "event", "e": "scene-called", "r": "scenes", "gid": "1", "scid": "2"})
        assert event.group_id == "1"
        assert event.scene_id == "2"
        assert event.unique_id is None
        assert event.state is None

    def test_missing_event_type(self):
        """Test an event without a type."""
        with pytest.raises(ValueError):
            ChangeEvent.from_dict({"t": "event", "r": "lights"})

    def test_not_an_object(self):
        """Test non-object frames are rejected."""
        with pytest.raises(ValueError):
            ChangeEvent.from_dict(["changed"])


class TestDevice:
    """Tests for device descriptors."""

    def test_from_dict_keeps_subdevice_order(self):
        """Test subdevices keep their order."""
        device = Device.from_dict({
            "uniqueid": "00:15:8d:00:01:02:03:04",
            "manufacturername": "LUMI",
            "modelid": "lumi.sensor_magnet.aq2",
            "name": "Front door",
            "swversion": "20161128",
            "subdevices": [
                {"type": "ZHAOpenClose", "uniqueid": "00:15:8d:00:01:02:03:04-01-0006",
                 "state": {"open": {"value": True}}, "config": {"battery": {"value": 90}}},
                {"type": "ZHATemperature", "uniqueid": "00:15:8d:00:01:02:03:04-01-0402"},
            ],
        })
        assert device.display_name == "Front door"
        assert [s.device_type for s in device.subdevices] == [DeviceType.OPEN_CLOSE, DeviceType.TEMPERATURE]
        assert device.subdevices[0].state.as_bool("open") is True
        assert device.subdevices[0].config.as_int("battery") == 90

    def test_display_name_falls_back(self):
        """Test the display name fallback."""
        assert Device.from_dict({"uniqueid": "X", "modelid": "RWL021"}).display_name == "RWL021"
        assert Device.from_dict({"uniqueid": "X"}).display_name == "X"

    def test_unknown_type(self):
        """Test unknown subdevice types."""
        assert DeviceType.parse("Flux capacitor") is None
        assert DeviceType.parse("ZHASwitch") == DeviceType.SWITCH


class TestResponseModels:
    """Tests for pydantic REST response models."""

    def test_gateway_configuration(self):
        """Test parsing the gateway configuration."""
        config = GatewayConfiguration.model_validate({
            "name": "Phoscon-GW",
            "bridgeid": "00212EFFFF012345",
            "websocketport": 8081,
            "apiversion": "1.16.0",
            "whitelist": {},
        })
        assert config.bridge_id == "00212EFFFF012345"
        assert config.websocket_port == 8081

    def test_light_details(self):
        """Test parsing light details."""
        details = LightDetails.model_validate({"ctmin": 153, "ctmax": 454, "state": {"on": True}})
        assert (details.ct_min, details.ct_max) == (153, 454)

    def test_sensor_details(self):
        """Test parsing sensor details."""
        details = SensorDetails.model_validate({"modelid": "RWL021", "ep": 2, "type": "ZHASwitch"})
        assert details.model_id == "RWL021"
        assert details.endpoint == 2
