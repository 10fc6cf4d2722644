"""
Binary sensor adapters: contact, presence and water leak.

Each sensor maps one boolean state field to a HomeKit characteristic. Battery
characteristics are only exposed when the initial snapshot reports them.
"""

from typing import Any, List, Optional

from ..deconz.models import StateMap, Subdevice
from .base import Characteristic, Endpoint, ServiceAdapter, ServiceKind


class BinarySensor(ServiceAdapter):
    """Base for sensors reporting a single boolean state field."""

    kind: ServiceKind
    state_key: str
    characteristic_name: str

    def __init__(self, device, subdevice: Subdevice):
        super().__init__(device, subdevice)
        self._endpoint = Endpoint(key=subdevice.unique_id, kind=self.kind, name=device.name)
        self.detected = self._endpoint.add(Characteristic(self.characteristic_name, self.exposed(False)))

        self.low_battery: Optional[Characteristic] = None
        if subdevice.state.has("lowbattery"):
            self.low_battery = self._endpoint.add(Characteristic("StatusLowBattery", 0))

        self.battery_level: Optional[Characteristic] = None
        if subdevice.config.has("battery"):
            self.battery_level = self._endpoint.add(Characteristic(
                "BatteryLevel", 0, min_value=0, max_value=100,
            ))

    @classmethod
    async def create(cls, device, subdevice: Subdevice) -> "BinarySensor":
        sensor = cls(device, subdevice)
        sensor.apply_state(subdevice.state)
        sensor.apply_config(subdevice.config)
        return sensor

    def endpoints(self) -> List[Endpoint]:
        return [self._endpoint]

    def exposed(self, value: bool) -> Any:
        """HomeKit representation of the sensor's boolean."""
        return int(value)

    def describe(self, value: bool) -> Optional[str]:
        """Log line for a state change, or None to stay quiet."""
        return None

    def _apply_state(self, state: StateMap) -> None:
        if state.has(self.state_key):
            value = state.as_bool(self.state_key)
            if self.detected.set_value(self.exposed(value)):
                message = self.describe(value)
                if message:
                    self.log.info(message)

        if state.has("lowbattery") and self.low_battery is not None:
            self.low_battery.set_value(int(state.as_bool("lowbattery")))

    def _apply_config(self, config: StateMap) -> None:
        if config.has("battery") and self.battery_level is not None:
            self.battery_level.set_value(config.as_int("battery"))


class OpenCloseSensor(BinarySensor):
    kind = ServiceKind.CONTACT_SENSOR
    state_key = "open"
    characteristic_name = "ContactSensorState"

    def describe(self, value: bool) -> Optional[str]:
        return "open" if value else "closed"


class PresenceSensor(BinarySensor):
    kind = ServiceKind.MOTION_SENSOR
    state_key = "presence"
    characteristic_name = "MotionDetected"

    def exposed(self, value: bool) -> Any:
        return bool(value)

    def describe(self, value: bool) -> Optional[str]:
        return "motion detected" if value else None


class WaterSensor(BinarySensor):
    kind = ServiceKind.LEAK_SENSOR
    state_key = "water"
    characteristic_name = "LeakDetected"

    def describe(self, value: bool) -> Optional[str]:
        return "leak detected" if value else None
