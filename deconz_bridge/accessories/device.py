"""
Device adapter: one physical gateway device as one HomeKit accessory.

Capability dispatch goes through ``SERVICE_CONSTRUCTORS``; adding support for
a new subdevice type means adding one entry there.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from ..buttons import PressConfigurationStore
from ..deconz.api import DeconzClient, GatewayError
from ..deconz.models import Device, DeviceType, Subdevice
from .base import Clock, Endpoint, ServiceAdapter
from .errors import DeviceError, NoServicesError, UnsupportedCapabilityError
from .helpers import unique_id_to_aid
from .light import ColorLight, ColorTemperatureLight, DimmableLight, OnOffLight, Outlet
from .sensors import OpenCloseSensor, PresenceSensor, WaterSensor
from .switch import MultiButtonSwitch

logger = logging.getLogger(__name__)

# Expected failures while building a service; anything else is logged with a traceback
SUBDEVICE_ERRORS = (DeviceError, GatewayError, aiohttp.ClientError, asyncio.TimeoutError, ValidationError)

ServiceFactory = Callable[["AccessoryDevice", Subdevice], Awaitable[ServiceAdapter]]


SERVICE_CONSTRUCTORS: Dict[DeviceType, ServiceFactory] = {
    # Lights
    DeviceType.ON_OFF_LIGHT: OnOffLight.create,
    DeviceType.ON_OFF_LIGHT_SWITCH: OnOffLight.create,
    DeviceType.DIMMABLE_LIGHT: DimmableLight.create,
    DeviceType.DIMMABLE_PLUG_IN_UNIT: DimmableLight.create,
    DeviceType.COLOR_TEMPERATURE_LIGHT: ColorTemperatureLight.create,
    DeviceType.COLOR_LIGHT: ColorLight.create,
    DeviceType.EXTENDED_COLOR_LIGHT: ColorLight.create,

    # Plugs
    DeviceType.ON_OFF_OUTPUT: Outlet.create,
    DeviceType.ON_OFF_PLUG_IN_UNIT: Outlet.create,
    DeviceType.SMART_PLUG: Outlet.create,
    DeviceType.ON_OFF_SWITCH: Outlet.create,

    # Sensors
    DeviceType.OPEN_CLOSE: OpenCloseSensor.create,
    DeviceType.PRESENCE: PresenceSensor.create,
    DeviceType.WATER: WaterSensor.create,

    # Switches
    DeviceType.SWITCH: MultiButtonSwitch.create,
}


def is_supported(device_type: str) -> bool:
    """Whether a subdevice tag has a service adapter."""
    parsed = DeviceType.parse(device_type)
    return parsed is not None and parsed in SERVICE_CONSTRUCTORS


class _DeviceLogAdapter(logging.LoggerAdapter):
    """Prefixes messages with the device name."""

    def process(self, msg, kwargs):
        return f"[{self.extra['device']}] {msg}", kwargs


class AccessoryDevice:
    """
    A bridged physical device.

    Owns the accessory identity (``aid``) and the service adapters built from
    the device's subdevices, keyed by subdevice unique id. Nothing is added
    or removed after ``create`` returns.
    """

    def __init__(
        self,
        client: DeconzClient,
        descriptor: Device,
        press_configs: Optional[PressConfigurationStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.client = client
        self.press_configs = press_configs or PressConfigurationStore()
        self.clock: Clock = clock or time.monotonic

        self.unique_id = descriptor.unique_id
        self.name = descriptor.display_name
        self.manufacturer = descriptor.manufacturer
        self.model = descriptor.model
        self.firmware = descriptor.sw_version
        self.serial_number = descriptor.unique_id
        self.aid = unique_id_to_aid(descriptor.unique_id)

        self.services: Dict[str, ServiceAdapter] = {}
        self.log = _DeviceLogAdapter(logger, {"device": self.name})

    @classmethod
    async def create(
        cls,
        client: DeconzClient,
        descriptor: Device,
        press_configs: Optional[PressConfigurationStore] = None,
        clock: Optional[Clock] = None,
    ) -> "AccessoryDevice":
        """
        Build a device and all of its supported services.

        Unsupported or failing subdevices are logged and skipped.

        Raises:
            NoServicesError: If no subdevice produced a service
        """
        device = cls(client, descriptor, press_configs, clock)
        device.log.info(f"discovered device ({descriptor.unique_id})")

        for subdevice in descriptor.subdevices:
            try:
                await device._add_subdevice(subdevice)
            except SUBDEVICE_ERRORS as e:
                device.log.warning(f"failed to add the service {subdevice.type}: {e}")
            except Exception as e:
                device.log.exception(f"unexpected error adding the service {subdevice.type}: {e}")

        if not device.services:
            device.log.warning("the device has no active services and will not be added to HomeKit")
            raise NoServicesError(f"no services found for {descriptor.unique_id}")

        return device

    async def _add_subdevice(self, subdevice: Subdevice) -> ServiceAdapter:
        device_type = subdevice.device_type
        factory = SERVICE_CONSTRUCTORS.get(device_type) if device_type else None
        if factory is None:
            raise UnsupportedCapabilityError(subdevice.type)

        service = await factory(self, subdevice)
        self.services[subdevice.unique_id] = service
        return service

    def endpoints(self) -> List[Endpoint]:
        """All endpoints of all services, in subdevice order."""
        endpoints = []
        for service in self.services.values():
            endpoints.extend(service.endpoints())
        return endpoints

    def __repr__(self) -> str:
        return f"AccessoryDevice({self.name!r}, aid={self.aid}, services={len(self.services)})"
