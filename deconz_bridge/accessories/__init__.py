"""
Accessory layer: gateway devices as protocol-neutral services.
"""

from .base import (
    SUPPRESSION_WINDOW_SECONDS,
    Characteristic,
    Endpoint,
    ServiceAdapter,
    ServiceKind,
)
from .errors import (
    DeviceError,
    MissingPressConfigurationError,
    NoServicesError,
    ServiceConstructionError,
    UnsupportedCapabilityError,
)
from .helpers import unique_id_to_aid
from .light import ColorLight, ColorTemperatureLight, DimmableLight, Light, OnOffLight, Outlet
from .sensors import BinarySensor, OpenCloseSensor, PresenceSensor, WaterSensor
from .switch import MultiButtonSwitch, SwitchButton
from .device import SERVICE_CONSTRUCTORS, AccessoryDevice, is_supported
from .manager import AccessoryManager

__all__ = [
    # Base
    "SUPPRESSION_WINDOW_SECONDS",
    "Characteristic",
    "Endpoint",
    "ServiceAdapter",
    "ServiceKind",

    # Errors
    "DeviceError",
    "MissingPressConfigurationError",
    "NoServicesError",
    "ServiceConstructionError",
    "UnsupportedCapabilityError",

    # Adapters
    "Light",
    "OnOffLight",
    "DimmableLight",
    "ColorTemperatureLight",
    "ColorLight",
    "Outlet",
    "BinarySensor",
    "OpenCloseSensor",
    "PresenceSensor",
    "WaterSensor",
    "MultiButtonSwitch",
    "SwitchButton",

    # Devices
    "SERVICE_CONSTRUCTORS",
    "AccessoryDevice",
    "AccessoryManager",
    "is_supported",
    "unique_id_to_aid",
]
