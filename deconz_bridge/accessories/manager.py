"""
Accessory registry.

Builds one AccessoryDevice per gateway device and routes websocket change
events to the service adapter that owns the event's unique id.
"""

import logging
import time
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from ..buttons import PressConfigurationStore
from ..deconz.api import DeconzClient
from ..deconz.models import ChangeEvent, Device, EventType, ResourceType
from .base import Clock, ServiceAdapter
from .device import SUBDEVICE_ERRORS, AccessoryDevice

logger = logging.getLogger(__name__)

# Only these resources carry per-device state
DISPATCHED_RESOURCES = frozenset({ResourceType.LIGHTS.value, ResourceType.SENSORS.value})


class AccessoryManager:
    """
    Owns every bridged device and the unique-id lookup used for dispatch.

    The lookup is built once in the constructor and never changes; devices
    added to or removed from the gateway later are not picked up.
    """

    def __init__(self, devices: Iterable[AccessoryDevice]):
        self._devices: List[AccessoryDevice] = list(devices)

        services: Dict[str, ServiceAdapter] = {}
        for device in self._devices:
            for unique_id, service in device.services.items():
                services[unique_id] = service
        self._services: Mapping[str, ServiceAdapter] = MappingProxyType(services)

    @classmethod
    async def build(
        cls,
        client: DeconzClient,
        snapshot: Iterable[Device],
        press_configs: Optional[PressConfigurationStore] = None,
        clock: Optional[Clock] = None,
    ) -> "AccessoryManager":
        """
        Create accessories for a device snapshot.

        Devices that cannot be bridged are logged and left out.
        """
        press_configs = press_configs or PressConfigurationStore()
        clock = clock or time.monotonic

        devices = []
        for descriptor in snapshot:
            try:
                devices.append(await AccessoryDevice.create(client, descriptor, press_configs, clock))
            except SUBDEVICE_ERRORS as e:
                logger.warning(f"Skipping device {descriptor.display_name} ({descriptor.unique_id}): {e}")
            except Exception as e:
                logger.exception(f"Skipping device {descriptor.display_name} ({descriptor.unique_id}): {e}")

        manager = cls(devices)
        logger.info(f"Bridging {len(manager.accessories)} devices with {len(manager.services)} services")
        return manager

    @property
    def accessories(self) -> List[AccessoryDevice]:
        return list(self._devices)

    @property
    def services(self) -> Mapping[str, ServiceAdapter]:
        return self._services

    def get_service(self, unique_id: str) -> Optional[ServiceAdapter]:
        return self._services.get(unique_id)

    def dispatch(self, event: ChangeEvent) -> None:
        """Apply one change event. Never raises."""
        if event.resource not in DISPATCHED_RESOURCES:
            return
        if event.event != EventType.CHANGED.value:
            return
        if not event.unique_id:
            return

        service = self._services.get(event.unique_id)
        if service is None:
            logger.debug(f"No service for {event.unique_id}, ignoring event")
            return

        try:
            if event.state is not None:
                service.apply_state(event.state)
            if event.config is not None:
                service.apply_config(event.config)
        except Exception as e:
            logger.exception(f"Failed to apply event for {event.unique_id}: {e}")
