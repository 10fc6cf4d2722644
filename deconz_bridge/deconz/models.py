"""
deCONZ gateway data models.

Defines the device snapshot, state payloads and websocket change events
as they come off the gateway REST and websocket APIs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DeviceType(str, Enum):
    """
    Subdevice capability tags reported by deCONZ.

    Only a subset is bridged; the rest are listed so snapshots parse cleanly.
    """
    AIR_PURIFIER = "ZHAAirPurifier"
    AIR_QUALITY = "ZHAAirQuality"
    ALARM = "ZHAAlarm"
    ANCILLARY_CONTROL = "ZHAAncillaryControl"
    BATTERY = "ZHABattery"
    CARBON_DIOXIDE = "ZHACarbonDioxide"
    CARBON_MONOXIDE = "ZHACarbonMonoxide"
    COLOR_LIGHT = "Color light"
    COLOR_TEMPERATURE_LIGHT = "Color temperature light"
    CONSUMPTION = "ZHAConsumption"
    DIMMABLE_LIGHT = "Dimmable light"
    DIMMABLE_PLUG_IN_UNIT = "Dimmable plug-in unit"
    DIMMER_SWITCH = "Dimmer switch"
    DOOR_LOCK = "ZHADoorLock"
    DOOR_LOCK_CONTROLLER = "Door lock controller"
    DOOR_LOCK_SENSOR = "Door Lock"
    EXTENDED_COLOR_LIGHT = "Extended color light"
    FIRE = "ZHAFire"
    HUMIDITY = "ZHAHumidity"
    LEVEL_CONTROL_SWITCH = "Level control switch"
    LIGHT_LEVEL = "ZHALightLevel"
    MOISTURE = "ZHAMoisture"
    ON_OFF_LIGHT = "On/Off light"
    ON_OFF_LIGHT_SWITCH = "On/Off light switch"
    ON_OFF_OUTPUT = "On/Off output"
    ON_OFF_PLUG_IN_UNIT = "On/Off plug-in unit"
    ON_OFF_SWITCH = "On/Off switch"
    OPEN_CLOSE = "ZHAOpenClose"
    PARTICULATE_MATTER = "ZHAParticulateMatter"
    PRESENCE = "ZHAPresence"
    PRESSURE = "ZHAPressure"
    RANGE_EXTENDER = "Range extender"
    RELATIVE_ROTARY = "ZHARelativeRotary"
    SMART_PLUG = "Smart plug"
    SPECTRAL = "ZHASpectral"
    SWITCH = "ZHASwitch"
    TEMPERATURE = "ZHATemperature"
    THERMOSTAT = "ZHAThermostat"
    TIME = "ZHATime"
    VIBRATION = "ZHAVibration"
    WARNING = "Warning device"
    WATER = "ZHAWater"
    WINDOW_COVERING = "Window covering device"

    @classmethod
    def parse(cls, value: str) -> Optional["DeviceType"]:
        """Return the matching tag, or None for tags this bridge has never seen."""
        try:
            return cls(value)
        except ValueError:
            return None


class ResourceType(str, Enum):
    """Resource classification on a websocket message (``r``)."""
    SENSORS = "sensors"
    SCENES = "scenes"
    LIGHTS = "lights"
    GROUPS = "groups"


class EventType(str, Enum):
    """Event classification on a websocket message (``e``)."""
    ADDED = "added"
    CHANGED = "changed"
    DELETED = "deleted"
    SCENE_CALLED = "scene-called"


class StateMap:
    """
    Partial state or config payload.

    deCONZ sends two shapes: flat ``{"on": true}`` maps on the websocket and
    extended ``{"on": {"value": true, "lastupdated": "..."}}`` maps in the
    ``/devices`` snapshot. Both are normalized here; a key holding ``null``
    counts as absent.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = {}
        self._updated: Dict[str, Optional[str]] = {}

        for key, raw in (data or {}).items():
            if isinstance(raw, dict) and "value" in raw:
                value = raw.get("value")
                updated = raw.get("lastupdated")
            else:
                value = raw
                updated = None
            if value is None:
                continue
            self._values[key] = value
            self._updated[key] = updated

    def has(self, key: str) -> bool:
        return key in self._values

    def value(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def last_updated(self, key: str) -> Optional[str]:
        return self._updated.get(key)

    def as_bool(self, key: str) -> bool:
        return bool(self._values[key])

    def as_int(self, key: str) -> int:
        return int(self._values[key])

    def __len__(self) -> int:
        return len(self._values)

    def __bool__(self) -> bool:
        return bool(self._values)

    def __repr__(self) -> str:
        return f"StateMap({self._values!r})"


@dataclass
class Subdevice:
    """One capability of a physical device."""
    type: str
    unique_id: str
    state: StateMap = field(default_factory=StateMap)
    config: StateMap = field(default_factory=StateMap)

    @property
    def device_type(self) -> Optional[DeviceType]:
        return DeviceType.parse(self.type)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subdevice":
        return cls(
            type=data.get("type", ""),
            unique_id=data["uniqueid"],
            state=StateMap(data.get("state")),
            config=StateMap(data.get("config")),
        )


@dataclass
class Device:
    """
    A physical device as returned by ``GET /devices/{uniqueid}``.

    Subdevices keep the gateway's order.
    """
    unique_id: str
    manufacturer: str = ""
    model: str = ""
    name: str = ""
    product: str = ""
    sw_version: str = ""
    subdevices: List[Subdevice] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.model or self.unique_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Device":
        return cls(
            unique_id=data["uniqueid"],
            manufacturer=data.get("manufacturername") or "",
            model=data.get("modelid") or "",
            name=data.get("name") or "",
            product=data.get("productid") or "",
            sw_version=data.get("swversion") or "",
            subdevices=[Subdevice.from_dict(s) for s in data.get("subdevices") or []],
        )


@dataclass
class ChangeEvent:
    """A decoded websocket notification."""
    type: str
    event: str
    resource: str
    resource_id: Optional[str] = None
    unique_id: Optional[str] = None
    group_id: Optional[str] = None
    scene_id: Optional[str] = None
    name: Optional[str] = None
    state: Optional[StateMap] = None
    config: Optional[StateMap] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangeEvent":
        """
        Build an event from a decoded JSON frame.

        Raises:
            ValueError: If the frame is missing ``e`` or ``r``
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        if "e" not in data or "r" not in data:
            raise ValueError("message is missing event or resource type")

        state = data.get("state")
        config = data.get("config")
        return cls(
            type=data.get("t", ""),
            event=data["e"],
            resource=data["r"],
            resource_id=data.get("id"),
            unique_id=data.get("uniqueid"),
            group_id=data.get("gid"),
            scene_id=data.get("scid"),
            name=data.get("name"),
            state=StateMap(state) if isinstance(state, dict) else None,
            config=StateMap(config) if isinstance(config, dict) else None,
        )


# =============================================================================
# REST response models
# =============================================================================

class GatewayConfiguration(BaseModel):
    """Subset of ``GET /config`` the bridge relies on."""
    model_config = ConfigDict(extra="ignore")

    name: str = "deCONZ"
    bridge_id: str = Field(default="", alias="bridgeid")
    device_name: str = Field(default="", alias="devicename")
    api_version: str = Field(default="", alias="apiversion")
    sw_version: str = Field(default="", alias="swversion")
    model_id: str = Field(default="", alias="modelid")
    mac: str = ""
    websocket_port: int = Field(default=443, alias="websocketport")
    websocket_notify_all: bool = Field(default=True, alias="websocketnotifyall")


class LightDetails(BaseModel):
    """``GET /lights/{id}``."""
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    type: str = ""
    unique_id: str = Field(default="", alias="uniqueid")
    model_id: str = Field(default="", alias="modelid")
    ct_min: Optional[int] = Field(default=None, alias="ctmin")
    ct_max: Optional[int] = Field(default=None, alias="ctmax")
    color_capabilities: Optional[int] = Field(default=None, alias="colorcapabilities")
    state: Dict[str, Any] = Field(default_factory=dict)


class SensorDetails(BaseModel):
    """``GET /sensors/{id}``."""
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    type: str = ""
    unique_id: str = Field(default="", alias="uniqueid")
    model_id: str = Field(default="", alias="modelid")
    manufacturer: str = Field(default="", alias="manufacturername")
    endpoint: Optional[int] = Field(default=None, alias="ep")
    state: Dict[str, Any] = Field(default_factory=dict)
    config: Dict[str, Any] = Field(default_factory=dict)
