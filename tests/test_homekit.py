"""
Tests for the HomeKit binding.
"""

import asyncio

import pytest
from pyhap.accessory_driver import AccessoryDriver
from pyhap.const import CATEGORY_LIGHTBULB, CATEGORY_PROGRAMMABLE_SWITCH, CATEGORY_SENSOR

from deconz_bridge.accessories.device import AccessoryDevice
from deconz_bridge.config import Config
from deconz_bridge.deconz.models import GatewayConfiguration, StateMap
from deconz_bridge.homekit import DeviceAccessory, HomeKitBridge, accessory_category, bridge_name

from helpers import make_device, subdevice


LIGHT_ID = "00:17:88:01:00:00:00:0a-0b"


def make_driver(tmp_path) -> AccessoryDriver:
    return AccessoryDriver(
        address="127.0.0.1",
        port=51899,
        persist_file=str(tmp_path / "accessory.state"),
        loop=asyncio.get_running_loop(),
    )


async def settle():
    """Let jobs scheduled through the driver run."""
    for _ in range(5):
        await asyncio.sleep(0)


def service_names(accessory):
    return [service.display_name for service in accessory.services]


class TestBridgeName:

    def test_name_with_bridge_id_prefix(self):
        """Test the bridge name takes the first bridge id digits."""
        gateway = GatewayConfiguration.model_validate({"name": "Phoscon-GW", "bridgeid": "00212EFFFF012345"})
        assert bridge_name(gateway) == "Phoscon-GW 0021"

    def test_override(self):
        """Test a configured name wins."""
        assert bridge_name(GatewayConfiguration(), "Hallway") == "Hallway"


class TestCategory:

    @pytest.mark.asyncio
    async def test_category_from_first_endpoint(self, client, clock, press_configs):
        """Test the accessory category follows the first endpoint."""
        light = await AccessoryDevice.create(
            client, make_device("E1", subdevice("On/Off light", "E1-01")), clock=clock)
        sensor = await AccessoryDevice.create(
            client, make_device("E2", subdevice("ZHAWater", "E2-01")), clock=clock)

        client.route("GET", "/sensors/E3-01", {"modelid": "M1"})
        remote = await AccessoryDevice.create(
            client, make_device("E3", subdevice("ZHASwitch", "E3-01")), press_configs, clock)

        assert accessory_category(light) == CATEGORY_LIGHTBULB
        assert accessory_category(sensor) == CATEGORY_SENSOR
        assert accessory_category(remote) == CATEGORY_PROGRAMMABLE_SWITCH


class TestDeviceAccessory:

    @pytest.mark.asyncio
    async def test_light_accessory(self, client, clock, tmp_path):
        """Test a light becomes one Lightbulb service under the device aid."""
        device = await AccessoryDevice.create(
            client, make_device("00:17:88:01:00:00:00:0a", subdevice("On/Off light", LIGHT_ID, {"on": True})),
            clock=clock)

        accessory = DeviceAccessory(make_driver(tmp_path), device)

        assert accessory.aid == device.aid
        assert service_names(accessory) == ["AccessoryInformation", "Lightbulb"]
        assert accessory.get_service("Lightbulb").get_characteristic("On").value is True

    @pytest.mark.asyncio
    async def test_homekit_write_reaches_gateway(self, client, clock, tmp_path):
        """Test a HomeKit write runs as a gateway command through the driver."""
        device = await AccessoryDevice.create(
            client, make_device("00:17:88:01:00:00:00:0a", subdevice("On/Off light", LIGHT_ID)), clock=clock)
        accessory = DeviceAccessory(make_driver(tmp_path), device)

        accessory.get_service("Lightbulb").get_characteristic("On").setter_callback(True)
        await settle()

        assert client.puts() == [(f"/lights/{LIGHT_ID}/state", {"on": True})]
        assert device.services[LIGHT_ID].on.value is True

    @pytest.mark.asyncio
    async def test_gateway_change_reaches_homekit(self, client, clock, tmp_path):
        """Test adapter changes are pushed to the HAP characteristic."""
        device = await AccessoryDevice.create(
            client, make_device("S1", subdevice("ZHAOpenClose", "S1-01", {"open": False})), clock=clock)
        accessory = DeviceAccessory(make_driver(tmp_path), device)
        contact = accessory.get_service("ContactSensor").get_characteristic("ContactSensorState")
        assert contact.value == 0

        device.services["S1-01"].apply_state(StateMap({"open": True}))

        assert contact.value == 1

    @pytest.mark.asyncio
    async def test_remote_buttons(self, client, clock, press_configs, tmp_path, monkeypatch):
        """Test a remote gets labelled button services and publishes presses."""
        client.route("GET", "/sensors/R1-01", {"modelid": "M1"})
        device = await AccessoryDevice.create(
            client, make_device("R1", subdevice("ZHASwitch", "R1-01")), press_configs, clock)
        accessory = DeviceAccessory(make_driver(tmp_path), device)

        assert service_names(accessory) == [
            "AccessoryInformation", "ServiceLabel", "StatelessProgrammableSwitch", "StatelessProgrammableSwitch",
        ]

        published = []
        monkeypatch.setattr(accessory, "publish",
                            lambda value, sender, *args, **kwargs: published.append((sender.display_name, value)))
        device.services["R1-01"].apply_state(StateMap({"buttonevent": 2003}))

        assert published == [("ProgrammableSwitchEvent", 1)]


class TestHomeKitBridge:

    @pytest.fixture
    def config(self, tmp_path):
        config = Config(data_dir=tmp_path)
        config.homekit.address = "127.0.0.1"
        return config

    @pytest.mark.asyncio
    async def test_add_devices(self, client, clock, config):
        """Test devices are bridged under their own aids."""
        homekit = HomeKitBridge(config, GatewayConfiguration(name="deCONZ"))
        light = await AccessoryDevice.create(
            client, make_device("0a", subdevice("On/Off light", "0a-01")), clock=clock)
        sensor = await AccessoryDevice.create(
            client, make_device("0b", subdevice("ZHAWater", "0b-01")), clock=clock)

        assert homekit.add_devices([light, sensor]) == 2
        assert set(homekit.bridge.accessories) == {0x0A, 0x0B}
        assert config.homekit.pincode is not None

    @pytest.mark.asyncio
    async def test_reserved_aids_skipped(self, client, clock, config, caplog):
        """Test ids mapping to aid 0 or 1 are not bridged."""
        homekit = HomeKitBridge(config, GatewayConfiguration(name="deCONZ"))
        not_hex = await AccessoryDevice.create(
            client, make_device("kitchen", subdevice("On/Off light", "kitchen-01")), clock=clock)
        bridge_aid = await AccessoryDevice.create(
            client, make_device("01", subdevice("On/Off light", "01-01")), clock=clock)

        assert homekit.add_device(not_hex) is None
        assert homekit.add_device(bridge_aid) is None
        assert homekit.accessories == {}
        assert caplog.text.count("reserved aid") == 2

    @pytest.mark.asyncio
    async def test_duplicate_aid_skipped(self, client, clock, config, caplog):
        """Test the second device with the same aid is not bridged."""
        homekit = HomeKitBridge(config, GatewayConfiguration(name="deCONZ"))
        first = await AccessoryDevice.create(
            client, make_device("00:0c", subdevice("On/Off light", "00:0c-01"), name="First"), clock=clock)
        second = await AccessoryDevice.create(
            client, make_device("000c", subdevice("On/Off light", "000c-01"), name="Second"), clock=clock)

        assert homekit.add_device(first) is not None
        assert homekit.add_device(second) is None
        assert homekit.accessories[0x0C].device is first
        assert "already used by First" in caplog.text
