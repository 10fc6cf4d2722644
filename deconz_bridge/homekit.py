"""
HomeKit binding on top of HAP-python.

Every AccessoryDevice becomes one bridged ``Accessory`` whose ``aid`` is the
device's derived id; every Endpoint becomes one HAP service. Values flow both
ways through the Characteristic objects:

    gateway event -> adapter -> Characteristic listener -> HAP characteristic
    HomeKit write -> HAP setter_callback -> driver job -> adapter command
"""

import asyncio
import logging
from typing import Dict, List, Optional

from pyhap.accessory import Accessory, Bridge
from pyhap.accessory_driver import AccessoryDriver
from pyhap.const import (
    CATEGORY_BRIDGE,
    CATEGORY_LIGHTBULB,
    CATEGORY_OUTLET,
    CATEGORY_PROGRAMMABLE_SWITCH,
    CATEGORY_SENSOR,
)

from .accessories.base import Characteristic, Endpoint, ServiceKind
from .accessories.device import AccessoryDevice
from .config import Config
from .deconz.models import GatewayConfiguration

logger = logging.getLogger(__name__)

# Aids HAP-python reserves for the bridge itself
RESERVED_AIDS = {0, 1}

CATEGORIES = {
    ServiceKind.LIGHTBULB: CATEGORY_LIGHTBULB,
    ServiceKind.OUTLET: CATEGORY_OUTLET,
    ServiceKind.CONTACT_SENSOR: CATEGORY_SENSOR,
    ServiceKind.MOTION_SENSOR: CATEGORY_SENSOR,
    ServiceKind.LEAK_SENSOR: CATEGORY_SENSOR,
    ServiceKind.PROGRAMMABLE_SWITCH: CATEGORY_PROGRAMMABLE_SWITCH,
}

# Characteristics every HAP service of the kind already carries
REQUIRED_CHARACTERISTICS = {
    ServiceKind.LIGHTBULB: {"On"},
    ServiceKind.OUTLET: {"On", "OutletInUse"},
    ServiceKind.CONTACT_SENSOR: {"ContactSensorState"},
    ServiceKind.MOTION_SENSOR: {"MotionDetected"},
    ServiceKind.LEAK_SENSOR: {"LeakDetected"},
    ServiceKind.PROGRAMMABLE_SWITCH: {"ProgrammableSwitchEvent"},
}

# ServiceLabelNamespace value for "arabic numerals"
SERVICE_LABEL_NUMERALS = 1


def bridge_name(gateway: GatewayConfiguration, override: Optional[str] = None) -> str:
    """``deCONZ`` + bridge id ``00212EFFFF012345`` -> ``deCONZ 0021``."""
    if override:
        return override
    suffix = gateway.bridge_id[:4].replace(":", "")
    return f"{gateway.name} {suffix}".strip()


def accessory_category(device: AccessoryDevice) -> int:
    """Category of the device's first endpoint."""
    for endpoint in device.endpoints():
        return CATEGORIES.get(endpoint.kind, CATEGORY_SENSOR)
    return CATEGORY_SENSOR


class DeviceAccessory(Accessory):
    """A bridged accessory mirroring one AccessoryDevice."""

    def __init__(self, driver: AccessoryDriver, device: AccessoryDevice):
        super().__init__(driver, device.name, aid=device.aid)
        self.device = device
        self.category = accessory_category(device)

        self.set_info_service(
            firmware_revision=device.firmware or None,
            manufacturer=device.manufacturer or None,
            model=device.model or None,
            serial_number=device.serial_number,
        )

        endpoints = device.endpoints()
        if sum(1 for e in endpoints if e.kind == ServiceKind.PROGRAMMABLE_SWITCH) > 1:
            label = self.add_preload_service("ServiceLabel")
            label.configure_char("ServiceLabelNamespace", value=SERVICE_LABEL_NUMERALS)

        for endpoint in endpoints:
            self._add_endpoint(endpoint)

    def _add_endpoint(self, endpoint: Endpoint) -> None:
        required = REQUIRED_CHARACTERISTICS.get(endpoint.kind, set())
        optional = [name for name in endpoint.characteristics if name not in required]
        service = self.add_preload_service(endpoint.kind.value, chars=optional or None)

        for characteristic in endpoint.characteristics.values():
            self._bind(service, characteristic)

    def _bind(self, service, characteristic: Characteristic) -> None:
        properties = {}
        if characteristic.min_value is not None:
            properties["minValue"] = characteristic.min_value
        if characteristic.max_value is not None:
            properties["maxValue"] = characteristic.max_value

        setter_callback = None
        if characteristic.setter is not None:
            setter = characteristic.setter
            setter_callback = lambda value: self.driver.add_job(setter, value)

        hap_char = service.configure_char(
            characteristic.name,
            properties=properties or None,
            valid_values=characteristic.valid_values,
            value=None if characteristic.stateless else characteristic.value,
            setter_callback=setter_callback,
        )
        characteristic.subscribe(hap_char.set_value)


class HomeKitBridge:
    """
    Owns the HAP-python driver and the bridge accessory.

    Usage:
        homekit = HomeKitBridge(config, gateway_configuration)
        homekit.add_devices(manager.accessories)
        await homekit.start()
        ...
        await homekit.stop()
    """

    def __init__(
        self,
        config: Config,
        gateway: GatewayConfiguration,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.config = config
        self.pincode = config.ensure_pincode()
        self.name = bridge_name(gateway, config.homekit.name)

        config.ensure_data_dir()
        driver_kwargs = {
            "port": config.homekit.port,
            "persist_file": str(config.persist_path),
            "pincode": self.pincode.encode("utf-8"),
            "loop": loop or asyncio.get_running_loop(),
        }
        if config.homekit.address:
            driver_kwargs["address"] = config.homekit.address
        self.driver = AccessoryDriver(**driver_kwargs)
        self.bridge = Bridge(self.driver, self.name)
        self.bridge.category = CATEGORY_BRIDGE
        self.bridge.set_info_service(
            firmware_revision=gateway.sw_version or None,
            manufacturer="dresden elektronik",
            model=gateway.model_id or "deCONZ",
            serial_number=gateway.bridge_id or self.name,
        )
        self.accessories: Dict[int, DeviceAccessory] = {}
        self._running = False

    def add_devices(self, devices: List[AccessoryDevice]) -> int:
        """Register devices with the bridge; returns how many were added."""
        for device in devices:
            self.add_device(device)
        return len(self.accessories)

    def add_device(self, device: AccessoryDevice) -> Optional[DeviceAccessory]:
        if device.aid in RESERVED_AIDS:
            logger.warning(f"Skipping {device.name}: unique id {device.unique_id} maps to reserved aid {device.aid}")
            return None

        if device.aid in self.accessories:
            logger.warning(f"Skipping {device.name}: aid {device.aid} is already used by {self.accessories[device.aid].device.name}")
            return None

        accessory = DeviceAccessory(self.driver, device)
        try:
            self.bridge.add_accessory(accessory)
        except ValueError as e:
            logger.warning(f"Skipping {device.name} (aid {device.aid}): {e}")
            return None

        self.accessories[device.aid] = accessory
        logger.debug(f"Added accessory {device.name} with aid {device.aid}")
        return accessory

    async def start(self) -> None:
        self.driver.add_accessory(self.bridge)
        logger.info(f"Starting HomeKit bridge {self.name!r} on port {self.config.homekit.port}")
        await self.driver.async_start()
        self._running = True

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await self.driver.async_stop()
        logger.info("HomeKit bridge stopped")
