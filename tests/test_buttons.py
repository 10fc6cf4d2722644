"""
Tests for button press configurations.
"""

import json
import logging

import pytest

from deconz_bridge.buttons import (
    DEFAULT_DEVICES_DIR,
    ButtonConfiguration,
    DeviceConfiguration,
    PressConfigurationStore,
    PressType,
    configuration_file_name,
    generate_configurations,
    load_from_directory,
    split_event_id,
    write_configurations,
)


DIMMER = {
    "schemaVersion": "1.0",
    "manufacturer": "Philips",
    "models": ["RWL020", "RWL021"],
    "description": "Hue dimmer switch",
    "buttons": [
        {"name": "On", "eventMap": {"1002": "SINGLE_PRESS", "1003": "LONG_PRESS"}},
        {"name": "Off", "eventMap": {"4002": "SINGLE_PRESS"}},
    ],
}


class TestEventCodes:
    """Tests for composite button code handling."""

    def test_split_event_id(self):
        """Test splitting a code into button index and action suffix."""
        assert split_event_id("2003") == ("2", "003")
        assert split_event_id("10002") == ("10", "002")

    def test_button_index(self):
        """Test the button index is read from its event codes."""
        button = ButtonConfiguration(name="Up", event_map={"2002": PressType.SINGLE, "2003": PressType.LONG})
        assert button.index == "2"

    def test_button_without_events_has_no_index(self):
        """Test a button without events has no index."""
        assert ButtonConfiguration(name="Empty").index is None

    def test_press_types_in_homekit_order(self):
        """Test press types carry HomeKit event values."""
        button = ButtonConfiguration(name="B", event_map={
            "1003": PressType.LONG, "1004": PressType.DOUBLE, "1002": PressType.SINGLE,
        })
        assert button.press_types == [PressType.SINGLE, PressType.DOUBLE, PressType.LONG]
        assert [p.hap_value for p in button.press_types] == [0, 1, 2]

    def test_hap_names(self):
        """Test press types map to HAP valid value names."""
        assert PressType.SINGLE.hap_name == "SinglePress"
        assert PressType.LONG.hap_name == "LongPress"


class TestLoading:
    """Tests for reading descriptor directories."""

    def test_load_by_model(self, tmp_path):
        """Test descriptors are keyed by every model id."""
        (tmp_path / "philips.json").write_text(json.dumps(DIMMER))

        configs = load_from_directory(tmp_path)

        assert set(configs) == {"RWL020", "RWL021"}
        assert configs["RWL021"].buttons[0].event_map["1003"] == PressType.LONG

    def test_bad_files_are_skipped(self, tmp_path, caplog):
        """Test unreadable descriptor files are skipped."""
        (tmp_path / "a_broken.json").write_text("{not json")
        (tmp_path / "b_invalid.json").write_text(json.dumps({"models": ["X"], "buttons": [{"eventMap": {}}]}))
        (tmp_path / "c_unknown_press.json").write_text(json.dumps({
            "models": ["Y"], "buttons": [{"name": "B", "eventMap": {"1002": "TRIPLE_PRESS"}}],
        }))
        (tmp_path / "d_good.json").write_text(json.dumps(DIMMER))
        (tmp_path / "notes.txt").write_text("ignored")

        with caplog.at_level(logging.ERROR):
            configs = load_from_directory(tmp_path)

        assert set(configs) == {"RWL020", "RWL021"}
        assert len([r for r in caplog.records if r.levelno == logging.ERROR]) == 3

    def test_later_file_wins(self, tmp_path):
        """Test the later file wins for a shared model id."""
        first = dict(DIMMER, description="first")
        second = dict(DIMMER, models=["RWL021"], description="second")
        (tmp_path / "1.json").write_text(json.dumps(first))
        (tmp_path / "2.json").write_text(json.dumps(second))

        configs = load_from_directory(tmp_path)

        assert configs["RWL021"].description == "second"
        assert configs["RWL020"].description == "first"

    def test_missing_directory(self, tmp_path):
        """Test a missing directory loads nothing."""
        assert load_from_directory(tmp_path / "nope") == {}

    def test_store_loads_lazily_once(self, tmp_path):
        """Test the store reads the directory once, on first use."""
        (tmp_path / "philips.json").write_text(json.dumps(DIMMER))
        store = PressConfigurationStore(tmp_path)
        assert not store.loaded

        assert store.get("RWL021") is not None
        assert store.loaded

        # Files added later are not picked up
        (tmp_path / "other.json").write_text(json.dumps(dict(DIMMER, models=["OTHER"])))
        assert "OTHER" not in store
        assert store.get("OTHER") is None
        assert len(store) == 2

    def test_shipped_descriptors(self):
        """Test the shipped descriptors load."""
        store = PressConfigurationStore(DEFAULT_DEVICES_DIR)
        assert "RWL021" in store
        assert len(store.get("RWL021").buttons) == 4


BUTTON_MAPS = {
    "buttons": {"S_BUTTON_1": 1000, "S_BUTTON_2": 2000, "S_BUTTON_0": 0},
    "buttonActions": {
        "S_BUTTON_ACTION_INITIAL_PRESS": 0,
        "S_BUTTON_ACTION_HOLD": 1,
        "S_BUTTON_ACTION_SHORT_RELEASED": 2,
        "S_BUTTON_ACTION_LONG_RELEASED": 3,
        "S_BUTTON_ACTION_DOUBLE_PRESS": 4,
    },
    "maps": {
        "dimmerMap": {
            "vendor": "Philips",
            "doc": "Hue dimmer switch",
            "modelids": ["RWL020", "RWL021"],
            "buttons": [{"S_BUTTON_1": "On"}, {"S_BUTTON_2": "Dim up"}],
            "map": [
                [1, "0x01", "ONOFF", "ON", "0", "S_BUTTON_1", "S_BUTTON_ACTION_INITIAL_PRESS", "On"],
                [1, "0x01", "ONOFF", "ON", "0", "S_BUTTON_1", "S_BUTTON_ACTION_SHORT_RELEASED", "On"],
                [1, "0x01", "ONOFF", "ON", "0", "S_BUTTON_1", "S_BUTTON_ACTION_LONG_RELEASED", "On"],
                [1, "0x01", "LEVEL_CONTROL", "STEP", "0", "S_BUTTON_2", "S_BUTTON_ACTION_DOUBLE_PRESS", "Up"],
                [1, "0x01", "ONOFF", "OFF", "0", "S_BUTTON_0", "S_BUTTON_ACTION_SHORT_RELEASED", "Low"],
            ],
        },
        "noModels": {"vendor": "X", "map": []},
        "onlyLowCodes": {
            "vendor": "Y",
            "modelids": ["Y1"],
            "map": [[1, "0x01", "ONOFF", "ON", "0", "S_BUTTON_0", "S_BUTTON_ACTION_SHORT_RELEASED", "?"]],
        },
    },
}


class TestGeneration:
    """Tests for building descriptors from button_maps.json."""

    def test_file_name(self):
        """Test descriptor file naming."""
        assert configuration_file_name("Philips", "RWL021") == "philips_rwl021.json"
        assert configuration_file_name("IKEA of Sweden", "TRADFRI remote control") == \
            "ikea_of_sweden_tradfri_remote_control.json"

    def test_generate(self):
        """Test generating descriptors from a button map."""
        configs = generate_configurations(BUTTON_MAPS)

        assert list(configs) == ["philips_rwl020.json"]
        config = configs["philips_rwl020.json"]
        assert config.models == ["RWL020", "RWL021"]
        assert config.description == "Hue dimmer switch"

        on, up = config.buttons
        assert on.name == "On"
        assert on.event_map == {"1002": PressType.SINGLE, "1003": PressType.LONG}
        assert up.name == "Dim up"
        assert up.event_map == {"2004": PressType.DOUBLE}

    def test_fallback_button_names(self):
        """Test buttons without a name get a numbered one."""
        maps = json.loads(json.dumps(BUTTON_MAPS))
        del maps["maps"]["dimmerMap"]["buttons"]

        config = generate_configurations(maps)["philips_rwl020.json"]

        assert [b.name for b in config.buttons] == ["Button 1", "Button 2"]

    def test_write_and_reload(self, tmp_path):
        """Test written descriptors load back."""
        written = write_configurations(generate_configurations(BUTTON_MAPS), tmp_path)

        assert written == [tmp_path / "philips_rwl020.json"]
        data = json.loads(written[0].read_text())
        assert data["schemaVersion"] == "1.0"
        assert data["buttons"][0]["eventMap"] == {"1002": "SINGLE_PRESS", "1003": "LONG_PRESS"}

        store = PressConfigurationStore(tmp_path)
        assert store.models() == ["RWL020", "RWL021"]


class TestDeviceConfiguration:

    def test_aliases_and_names_both_accepted(self):
        """Test descriptors accept field names and aliases."""
        by_alias = DeviceConfiguration.model_validate(DIMMER)
        by_name = DeviceConfiguration(models=["RWL021"], buttons=[ButtonConfiguration(name="On")])
        assert by_alias.schema_version == "1.0"
        assert by_name.buttons[0].event_map == {}

    def test_invalid_press_type(self):
        """Test an unknown press type is rejected."""
        with pytest.raises(ValueError):
            ButtonConfiguration.model_validate({"name": "B", "eventMap": {"1002": "MEDIUM_PRESS"}})
