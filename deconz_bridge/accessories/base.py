"""
Service adapter base types.

A service adapter owns the exposed values of one subdevice capability. Values
live in ``Characteristic`` objects grouped into ``Endpoint``s, one endpoint per
HomeKit service. The protocol engine subscribes to characteristics to learn
about changes and calls their setters for writes coming from HomeKit.

Inbound gateway updates and outbound commands may run concurrently, so every
adapter guards its values and its last-command timestamp with its own lock.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

from ..deconz.models import StateMap, Subdevice

if TYPE_CHECKING:
    from .device import AccessoryDevice

logger = logging.getLogger(__name__)

# Gateway echoes of a local command are ignored for this long
SUPPRESSION_WINDOW_SECONDS = 1.0

Clock = Callable[[], float]
Setter = Callable[[Any], Awaitable[None]]
Listener = Callable[[Any], None]


class ServiceKind(str, Enum):
    """HomeKit service types an endpoint can be exposed as."""
    LIGHTBULB = "Lightbulb"
    OUTLET = "Outlet"
    CONTACT_SENSOR = "ContactSensor"
    MOTION_SENSOR = "MotionSensor"
    LEAK_SENSOR = "LeakSensor"
    PROGRAMMABLE_SWITCH = "StatelessProgrammableSwitch"


class Characteristic:
    """
    One exposed value.

    ``stateless`` characteristics (button events) notify on every set, even
    when the value repeats; all others only notify on change.
    """

    def __init__(
        self,
        name: str,
        value: Any = None,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        valid_values: Optional[Dict[str, int]] = None,
        setter: Optional[Setter] = None,
        stateless: bool = False,
    ):
        self.name = name
        self.value = value
        self.min_value = min_value
        self.max_value = max_value
        self.valid_values = valid_values
        self.setter = setter
        self.stateless = stateless
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def set_value(self, value: Any) -> bool:
        """Set the value and notify listeners. Returns True if listeners were notified."""
        if not self.stateless and value == self.value:
            return False
        self.value = value
        for listener in self._listeners:
            listener(value)
        return True

    def __repr__(self) -> str:
        return f"Characteristic({self.name}={self.value!r})"


@dataclass
class Endpoint:
    """One protocol-facing service with its characteristics."""
    key: str
    kind: ServiceKind
    name: str
    characteristics: Dict[str, Characteristic] = field(default_factory=dict)

    def add(self, characteristic: Characteristic) -> Characteristic:
        self.characteristics[characteristic.name] = characteristic
        return characteristic

    def get(self, name: str) -> Optional[Characteristic]:
        return self.characteristics.get(name)

    def value(self, name: str) -> Any:
        char = self.characteristics.get(name)
        return char.value if char else None


class ServiceAdapter(ABC):
    """
    Base class for all capability adapters.

    Subclasses implement ``create`` (async, may query the gateway),
    ``endpoints`` and ``_apply_state``; ``_apply_config`` is optional.
    """

    def __init__(self, device: "AccessoryDevice", subdevice: Subdevice):
        self.device = device
        self.unique_id = subdevice.unique_id
        self.device_type = subdevice.type
        self._clock: Clock = device.clock
        self._lock = threading.RLock()
        self._last_local_change: Optional[float] = None

    @classmethod
    @abstractmethod
    async def create(cls, device: "AccessoryDevice", subdevice: Subdevice) -> "ServiceAdapter":
        """Build the adapter and apply the subdevice's initial state."""

    @abstractmethod
    def endpoints(self) -> List[Endpoint]:
        """Endpoints this adapter exposes, in a stable order."""

    @abstractmethod
    def _apply_state(self, state: StateMap) -> None:
        ...

    def _apply_config(self, config: StateMap) -> None:
        pass

    @property
    def log(self) -> logging.LoggerAdapter:
        return self.device.log

    @property
    def last_local_change(self) -> Optional[float]:
        with self._lock:
            return self._last_local_change

    def mark_local_change(self) -> None:
        """Record that a command was just issued from this side."""
        with self._lock:
            self._last_local_change = self._clock()

    def is_suppressed(self) -> bool:
        """True while gateway echoes of the last local command are being ignored."""
        with self._lock:
            if self._last_local_change is None:
                return False
            return self._clock() < self._last_local_change + SUPPRESSION_WINDOW_SECONDS

    def apply_state(self, state: StateMap) -> None:
        """Ingest a state update from the gateway."""
        with self._lock:
            if self.is_suppressed():
                logger.debug(f"Ignoring state echo for {self.unique_id}: {state!r}")
                return
            self._apply_state(state)

    def apply_config(self, config: StateMap) -> None:
        """Ingest a config update from the gateway."""
        with self._lock:
            self._apply_config(config)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.unique_id})"
