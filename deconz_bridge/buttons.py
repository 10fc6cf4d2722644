"""
Button press configurations.

Multi-button remotes report presses as one composite ``buttonevent`` number:
a button index followed by a 3-digit action code (``1002`` is button 1,
action 002). Which codes mean single, double or long presses depends on the
model, so the mapping is kept in per-model JSON descriptors:

    {
      "schemaVersion": "1.0",
      "manufacturer": "Philips",
      "models": ["RWL020", "RWL021"],
      "description": "Hue dimmer switch",
      "buttons": [
        {"name": "On", "eventMap": {"1002": "SINGLE_PRESS", "1003": "LONG_PRESS"}}
      ]
    }

Descriptors can be regenerated from deCONZ's own ``button_maps.json`` with
``generate_configurations``.
"""

import json
import logging
import re
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DEVICES_DIR = Path(__file__).parent / "devices"

BUTTON_MAPS_URL = (
    "https://raw.githubusercontent.com/dresden-elektronik/deconz-rest-plugin/master/button_maps.json"
)

# Codes below this carry no button index
BUTTON_EVENT_THRESHOLD = 1000

EVENT_SUFFIX_DIGITS = 3

SCHEMA_VERSION = "1.0"


class PressType(str, Enum):
    """Decoded meaning of a button action."""
    SINGLE = "SINGLE_PRESS"
    DOUBLE = "DOUBLE_PRESS"
    LONG = "LONG_PRESS"

    @property
    def hap_value(self) -> int:
        """ProgrammableSwitchEvent value in HomeKit."""
        return _HAP_VALUES[self]

    @property
    def hap_name(self) -> str:
        return _HAP_NAMES[self]


_HAP_VALUES = {PressType.SINGLE: 0, PressType.DOUBLE: 1, PressType.LONG: 2}
_HAP_NAMES = {PressType.SINGLE: "SinglePress", PressType.DOUBLE: "DoublePress", PressType.LONG: "LongPress"}

# deCONZ action names that map to a press type
BUTTON_ACTIONS = {
    "S_BUTTON_ACTION_SHORT_RELEASED": PressType.SINGLE,
    "S_BUTTON_ACTION_DOUBLE_PRESS": PressType.DOUBLE,
    "S_BUTTON_ACTION_LONG_RELEASED": PressType.LONG,
}


def split_event_id(event: str) -> Tuple[str, str]:
    """Split ``"2003"`` into the button index ``"2"`` and action ``"003"``."""
    return event[:-EVENT_SUFFIX_DIGITS], event[-EVENT_SUFFIX_DIGITS:]


class ButtonConfiguration(BaseModel):
    """One physical button and the codes it can emit."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    event_map: Dict[str, PressType] = Field(default_factory=dict, alias="eventMap")

    @property
    def index(self) -> Optional[str]:
        """Button index shared by this button's event codes."""
        for event in self.event_map:
            return split_event_id(event)[0]
        return None

    @property
    def press_types(self) -> List[PressType]:
        """Press types this button can emit, in HomeKit order."""
        return sorted(set(self.event_map.values()), key=lambda p: p.hap_value)


class DeviceConfiguration(BaseModel):
    """Button table for one or more switch models."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    manufacturer: str = ""
    models: List[str] = Field(default_factory=list)
    description: str = ""
    buttons: List[ButtonConfiguration] = Field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json", by_alias=True), indent=2)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json() + "\n", encoding="utf-8")


def load_from_directory(directory: Path) -> Dict[str, DeviceConfiguration]:
    """
    Load every ``*.json`` descriptor in a directory, keyed by model id.

    Files that cannot be read or do not validate are logged and skipped.
    Files are read in name order, so a later file wins a model clash.
    """
    directory = Path(directory)
    configs: Dict[str, DeviceConfiguration] = {}

    if not directory.is_dir():
        logger.warning(f"Button configuration directory {directory} does not exist")
        return configs

    for path in sorted(directory.glob("*.json")):
        try:
            config = DeviceConfiguration.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.error(f"Error reading device configuration file {path}: {e}")
            continue

        for model in config.models:
            configs[model] = config

    logger.debug(f"Loaded button configurations for {len(configs)} models from {directory}")
    return configs


class PressConfigurationStore:
    """
    Lazily loaded, read-only view of the button descriptors.

    The directory is read once, on first lookup.
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else DEFAULT_DEVICES_DIR
        self._configs: Optional[Dict[str, DeviceConfiguration]] = None
        self._lock = threading.Lock()

    @classmethod
    def from_configs(cls, configs: Dict[str, DeviceConfiguration]) -> "PressConfigurationStore":
        """Store over already loaded descriptors."""
        store = cls()
        store._configs = dict(configs)
        return store

    def _load(self) -> Dict[str, DeviceConfiguration]:
        with self._lock:
            if self._configs is None:
                self._configs = load_from_directory(self.directory)
            return self._configs

    @property
    def loaded(self) -> bool:
        return self._configs is not None

    def get(self, model_id: str) -> Optional[DeviceConfiguration]:
        return self._load().get(model_id)

    def models(self) -> List[str]:
        return sorted(self._load())

    def __contains__(self, model_id: str) -> bool:
        return model_id in self._load()

    def __len__(self) -> int:
        return len(self._load())


# =============================================================================
# Generation from deCONZ button_maps.json
# =============================================================================

def configuration_file_name(vendor: str, model_id: str) -> str:
    """``Philips`` + ``RWL021`` -> ``philips_rwl021.json``."""
    name = f"{vendor.lower()}_{model_id.lower()}"
    return re.sub(r"[^a-z0-9]+", "_", name) + ".json"


def _button_name(button_id: str, named_buttons: Optional[List[Dict[str, str]]], fallback_number: int) -> str:
    for entry in named_buttons or []:
        if isinstance(entry, dict) and button_id in entry:
            return entry[button_id]
    return f"Button {fallback_number}"


def generate_configurations(button_maps: Dict[str, Any]) -> Dict[str, DeviceConfiguration]:
    """
    Convert deCONZ's ``button_maps.json`` into descriptors keyed by file name.

    Each map row carries a button id (column 5) and an action id (column 6);
    the event code is the sum of their numeric values. Only codes at or above
    ``BUTTON_EVENT_THRESHOLD`` with a known press action are kept, and maps
    without any such button are dropped.
    """
    button_values: Dict[str, int] = button_maps.get("buttons", {})
    action_values: Dict[str, int] = button_maps.get("buttonActions", {})
    generated: Dict[str, DeviceConfiguration] = {}

    for map_name, device in (button_maps.get("maps") or {}).items():
        model_ids = device.get("modelids") or []
        if not model_ids:
            logger.debug(f"Skipping button map {map_name}: no model ids")
            continue

        buttons: Dict[str, ButtonConfiguration] = {}
        for row in device.get("map") or []:
            if len(row) < 7 or not isinstance(row[5], str) or not isinstance(row[6], str):
                continue
            button_id, action_id = row[5], row[6]
            if button_id not in button_values or action_id not in action_values:
                continue

            event_id = button_values[button_id] + action_values[action_id]
            press_type = BUTTON_ACTIONS.get(action_id)
            if event_id < BUTTON_EVENT_THRESHOLD or press_type is None:
                continue

            if button_id not in buttons:
                buttons[button_id] = ButtonConfiguration(
                    name=_button_name(button_id, device.get("buttons"), len(buttons) + 1),
                )
            buttons[button_id].event_map[str(event_id)] = press_type

        configured = [b for b in buttons.values() if b.event_map]
        if not configured:
            continue

        vendor = device.get("vendor") or ""
        generated[configuration_file_name(vendor, model_ids[0])] = DeviceConfiguration(
            manufacturer=vendor,
            models=list(model_ids),
            description=device.get("doc") or "",
            buttons=configured,
        )

    return generated


async def fetch_button_maps(url: str = BUTTON_MAPS_URL, timeout: float = 30.0) -> Dict[str, Any]:
    """Download deCONZ's button map file."""
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
        async with session.get(url) as resp:
            if resp.status != 200:
                raise RuntimeError(f"Failed to fetch button maps: {resp.status}")
            return await resp.json(content_type=None)


def write_configurations(configs: Dict[str, DeviceConfiguration], output_dir: Path) -> List[Path]:
    """Write generated descriptors; returns the written paths."""
    written = []
    for file_name, config in sorted(configs.items()):
        path = Path(output_dir) / file_name
        config.save(path)
        written.append(path)
    logger.info(f"Wrote {len(written)} button configurations to {output_dir}")
    return written
