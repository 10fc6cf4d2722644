"""
Light and outlet adapters.

All lights share one adapter class; the variants differ only in which
characteristics they enable. Outlets are on/off lights exposed as a HomeKit
Outlet service.
"""

import asyncio
from typing import List, Optional

import aiohttp
from pydantic import ValidationError

from ..deconz.api import GatewayError
from ..deconz.models import DeviceType, StateMap, Subdevice
from .base import Characteristic, Endpoint, ServiceAdapter, ServiceKind
from .helpers import (
    degrees_to_raw,
    mired_to_kelvin,
    on_off,
    percent_to_raw,
    raw_to_degrees,
    raw_to_percent,
)

# HomeKit defaults, used when the gateway does not report bounds
DEFAULT_CT_MIN = 140
DEFAULT_CT_MAX = 500

_COMMAND_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, GatewayError, ValidationError)


class Light(ServiceAdapter):
    """A gateway light exposed as a single HomeKit service."""

    kind = ServiceKind.LIGHTBULB

    def __init__(self, device, subdevice: Subdevice):
        super().__init__(device, subdevice)
        self._endpoint = Endpoint(key=subdevice.unique_id, kind=self.kind, name=device.name)

        self.on: Optional[Characteristic] = None
        self.brightness: Optional[Characteristic] = None
        self.color_temperature: Optional[Characteristic] = None
        self.hue: Optional[Characteristic] = None
        self.saturation: Optional[Characteristic] = None

    def endpoints(self) -> List[Endpoint]:
        return [self._endpoint]

    # -------------------------------------------------------------------------
    # Characteristics
    # -------------------------------------------------------------------------

    def enable_on(self) -> None:
        self.on = self._endpoint.add(Characteristic("On", False, setter=self.set_on))

    def enable_brightness(self) -> None:
        self.brightness = self._endpoint.add(Characteristic(
            "Brightness", 0, min_value=0, max_value=100, setter=self.set_brightness,
        ))

    async def enable_color_temperature(self) -> None:
        """Add color temperature, with bounds taken from the light's detail record."""
        ct_min, ct_max = DEFAULT_CT_MIN, DEFAULT_CT_MAX
        try:
            details = await self.device.client.get_light(self.unique_id)
        except _COMMAND_ERRORS as e:
            self.log.warning(f"could not read color temperature range: {e}")
        else:
            if details.ct_min is not None:
                ct_min = details.ct_min
            if details.ct_max is not None:
                ct_max = details.ct_max

        self.color_temperature = self._endpoint.add(Characteristic(
            "ColorTemperature", ct_min, min_value=ct_min, max_value=ct_max,
            setter=self.set_color_temperature,
        ))

    def enable_color(self) -> None:
        self.hue = self._endpoint.add(Characteristic(
            "Hue", 0.0, min_value=0, max_value=360, setter=self.set_hue,
        ))
        self.saturation = self._endpoint.add(Characteristic(
            "Saturation", 0, min_value=0, max_value=100, setter=self.set_saturation,
        ))

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _begin_command(self, characteristic: Optional[Characteristic], value) -> None:
        with self._lock:
            self.mark_local_change()
            if characteristic is not None:
                characteristic.set_value(value)

    async def set_on(self, on: bool) -> None:
        on = bool(on)
        self.log.info(f"set {on_off(on)}")
        self._begin_command(self.on, on)
        try:
            await self.device.client.set_light_on(self.unique_id, on)
        except _COMMAND_ERRORS as e:
            self.log.error(f"failed to set light {on_off(on)}: {e}")

    async def set_brightness(self, percent: int) -> None:
        raw = percent_to_raw(percent)
        self.log.info(f"set brightness to {percent}%")
        with self._lock:
            self._begin_command(self.brightness, percent)
            if self.on is not None:
                self.on.set_value(raw > 0)
        try:
            await self.device.client.set_light_brightness(self.unique_id, raw)
        except _COMMAND_ERRORS as e:
            self.log.error(f"failed to set brightness: {e}")

    async def set_color_temperature(self, mired: int) -> None:
        self.log.info(f"set color temperature to {mired_to_kelvin(mired):.1f} K ({mired})")
        self._begin_command(self.color_temperature, mired)
        try:
            await self.device.client.set_light_color_temperature(self.unique_id, int(mired))
        except _COMMAND_ERRORS as e:
            self.log.error(f"failed to set color temperature: {e}")

    async def set_hue(self, degrees: float) -> None:
        self.log.info(f"set hue to {degrees:.0f}°")
        self._begin_command(self.hue, degrees)
        try:
            await self.device.client.set_light_hue(self.unique_id, degrees_to_raw(degrees))
        except _COMMAND_ERRORS as e:
            self.log.error(f"failed to set hue: {e}")

    async def set_saturation(self, percent: int) -> None:
        self.log.info(f"set saturation to {percent}%")
        self._begin_command(self.saturation, percent)
        try:
            await self.device.client.set_light_saturation(self.unique_id, percent_to_raw(percent))
        except _COMMAND_ERRORS as e:
            self.log.error(f"failed to set saturation: {e}")

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def _apply_state(self, state: StateMap) -> None:
        if state.has("on") and self.on is not None:
            self.on.set_value(state.as_bool("on"))

        if state.has("bri") and self.brightness is not None:
            self.brightness.set_value(raw_to_percent(state.value("bri")))

        if state.has("ct") and self.color_temperature is not None:
            self.color_temperature.set_value(state.as_int("ct"))

        if state.has("hue") and self.hue is not None:
            self.hue.set_value(raw_to_degrees(state.value("hue")))

        if state.has("sat") and self.saturation is not None:
            self.saturation.set_value(raw_to_percent(state.value("sat")))


class OnOffLight(Light):

    @classmethod
    async def create(cls, device, subdevice: Subdevice) -> "OnOffLight":
        light = cls(device, subdevice)
        light.enable_on()
        light.apply_state(subdevice.state)
        return light


class DimmableLight(Light):

    @classmethod
    async def create(cls, device, subdevice: Subdevice) -> "DimmableLight":
        light = cls(device, subdevice)
        light.enable_on()
        light.enable_brightness()
        light.apply_state(subdevice.state)
        return light


class ColorTemperatureLight(Light):

    @classmethod
    async def create(cls, device, subdevice: Subdevice) -> "ColorTemperatureLight":
        light = cls(device, subdevice)
        light.enable_on()
        light.enable_brightness()
        await light.enable_color_temperature()
        light.apply_state(subdevice.state)
        return light


class ColorLight(Light):
    """Hue/saturation light; extended color lights also get color temperature."""

    @classmethod
    async def create(cls, device, subdevice: Subdevice) -> "ColorLight":
        light = cls(device, subdevice)
        light.enable_on()
        light.enable_brightness()
        light.enable_color()
        if subdevice.state.has("ct") or subdevice.device_type == DeviceType.EXTENDED_COLOR_LIGHT:
            await light.enable_color_temperature()
        light.apply_state(subdevice.state)
        return light


class Outlet(Light):
    """Plugs and relays."""

    kind = ServiceKind.OUTLET

    def enable_on(self) -> None:
        super().enable_on()
        self._endpoint.add(Characteristic("OutletInUse", True))

    @classmethod
    async def create(cls, device, subdevice: Subdevice) -> "Outlet":
        outlet = cls(device, subdevice)
        outlet.enable_on()
        outlet.apply_state(subdevice.state)
        return outlet
