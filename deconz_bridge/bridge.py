"""
Bridge runtime.

Startup sequence:
    1. Make sure an API key exists (asks the gateway until the link button is pressed)
    2. Read the gateway configuration (name, bridge id, websocket port)
    3. Fetch the device snapshot and build the accessory registry
    4. Connect the event stream and start dispatching into the registry
    5. Register the accessories with HomeKit and start the HAP server

A failure in steps 2 to 4 is fatal; failures of single devices are not.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from .accessories.base import Clock
from .accessories.manager import AccessoryManager
from .buttons import PressConfigurationStore
from .config import Config
from .deconz.api import DeconzClient
from .deconz.events import EventStream
from .deconz.models import GatewayConfiguration
from .homekit import HomeKitBridge

logger = logging.getLogger(__name__)


class BridgeState(str, Enum):
    """State of the bridge runtime."""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class BridgeRuntime:
    """Wires the gateway client, registry, event stream and HomeKit together."""

    def __init__(self, config: Config, clock: Optional[Clock] = None):
        self.config = config
        self.clock = clock or time.monotonic
        self.client = DeconzClient(config.gateway)
        self.press_configs = PressConfigurationStore(config.devices_dir)

        self._state = BridgeState.STOPPED
        self.gateway: Optional[GatewayConfiguration] = None
        self.manager: Optional[AccessoryManager] = None
        self.events: Optional[EventStream] = None
        self.homekit: Optional[HomeKitBridge] = None
        self._events_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> BridgeState:
        return self._state

    def websocket_url(self) -> str:
        port = self.gateway.websocket_port if self.gateway else 443
        return f"ws://{self.config.gateway.host}:{port}"

    async def ensure_api_key(self) -> str:
        """Return the configured API key, requesting and saving one if missing."""
        if self.config.gateway.api_key:
            return self.config.gateway.api_key

        logger.info(f"No API key configured, requesting one from {self.config.gateway.base_url}")
        api_key = await self.client.request_api_key()
        self.config.gateway.api_key = api_key
        self.config.save()
        return api_key

    async def start(self) -> None:
        if self._state in (BridgeState.RUNNING, BridgeState.STARTING):
            return

        self._state = BridgeState.STARTING
        try:
            await self.ensure_api_key()

            self.gateway = await self.client.get_configuration()
            logger.info(f"Connected to gateway {self.gateway.name} ({self.gateway.bridge_id}), "
                        f"API {self.gateway.api_version}")

            snapshot = await self.client.get_all_devices()
            self.manager = await AccessoryManager.build(
                self.client, snapshot, self.press_configs, clock=self.clock,
            )

            self.events = EventStream(self.websocket_url(), self.manager.dispatch, self.config.events)
            await self.events.connect()
            self._events_task = asyncio.create_task(self.events.run())
            self._events_task.add_done_callback(self._on_events_done)

            self.homekit = HomeKitBridge(self.config, self.gateway)
            self.homekit.add_devices(self.manager.accessories)
            await self.homekit.start()
        except BaseException:
            self._state = BridgeState.ERROR
            await self._shutdown()
            raise

        self._state = BridgeState.RUNNING
        logger.info(f"Bridge running with {len(self.homekit.accessories)} accessories")

    async def stop(self) -> None:
        if self._state == BridgeState.STOPPED:
            return

        self._state = BridgeState.STOPPING
        logger.info("Stopping bridge...")
        await self._shutdown()
        self._state = BridgeState.STOPPED
        logger.info("Bridge stopped")

    def _on_events_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Event stream stopped unexpectedly: {error!r}", exc_info=error)

    async def _shutdown(self) -> None:
        if self._events_task:
            self._events_task.cancel()
            try:
                await self._events_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Event stream task ended with {e!r}")
            self._events_task = None

        if self.events:
            await self.events.stop()

        if self.homekit:
            await self.homekit.stop()

        await self.client.close()

    async def run_forever(self) -> None:
        """Start, then block until cancelled."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()
