"""
deconz-bridge

Exposes the devices of a deCONZ Zigbee gateway as HomeKit accessories and
keeps their state in sync with the gateway's websocket feed.

Example:
    >>> from deconz_bridge import BridgeRuntime, get_config
    >>> runtime = BridgeRuntime(get_config())
    >>> await runtime.run_forever()
"""

__version__ = "1.0.0"

from .config import Config, get_config
from .bridge import BridgeRuntime

__all__ = [
    "__version__",
    "Config",
    "get_config",
    "BridgeRuntime",
]
