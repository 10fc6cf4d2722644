"""
deCONZ gateway access: REST client, websocket event stream and data models.
"""

from .models import (
    ChangeEvent,
    Device,
    DeviceType,
    EventType,
    GatewayConfiguration,
    LightDetails,
    ResourceType,
    SensorDetails,
    StateMap,
    Subdevice,
)
from .api import DeconzClient, GatewayConfig, GatewayError
from .events import EventStream, EventStreamConfig, StreamState, decode_message

__all__ = [
    # Models
    "ChangeEvent",
    "Device",
    "DeviceType",
    "EventType",
    "GatewayConfiguration",
    "LightDetails",
    "ResourceType",
    "SensorDetails",
    "StateMap",
    "Subdevice",

    # Client
    "DeconzClient",
    "GatewayConfig",
    "GatewayError",

    # Events
    "EventStream",
    "EventStreamConfig",
    "StreamState",
    "decode_message",
]
