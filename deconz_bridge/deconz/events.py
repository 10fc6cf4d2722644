"""
deCONZ websocket event stream.

Reads change notifications from the gateway's websocket and hands each decoded
message to a callback, strictly one at a time and in arrival order.

Reconnect policy:
    The first connection must succeed, otherwise ``connect()`` raises.
    After a drop the stream reconnects with exponential backoff, starting at
    ``initial_backoff`` seconds and doubling up to ``max_backoff``. Once
    ``alert_after_failures`` consecutive attempts have failed every further
    failure is logged at ERROR level. A successful reconnect resets the count.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import aiohttp

from .models import ChangeEvent

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    """State of the event stream."""
    STOPPED = "stopped"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass
class EventStreamConfig:
    """Reconnect settings for the event stream."""
    connect_timeout_seconds: float = 10.0
    heartbeat_seconds: float = 30.0
    initial_backoff: float = 1.0
    max_backoff: float = 60.0
    alert_after_failures: int = 5

    def to_dict(self) -> dict:
        return {
            "connect_timeout_seconds": self.connect_timeout_seconds,
            "heartbeat_seconds": self.heartbeat_seconds,
            "initial_backoff": self.initial_backoff,
            "max_backoff": self.max_backoff,
            "alert_after_failures": self.alert_after_failures,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EventStreamConfig":
        known_fields = set(cls.__dataclass_fields__)
        filtered = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered)

    def backoff(self, failures: int) -> float:
        """Delay before reconnect attempt number ``failures`` (1-based)."""
        if failures <= 0:
            return 0.0
        return min(self.initial_backoff * (2 ** (failures - 1)), self.max_backoff)


def decode_message(raw: str) -> Optional[ChangeEvent]:
    """Decode one websocket frame, or return None if it is not a usable message."""
    try:
        return ChangeEvent.from_dict(json.loads(raw))
    except (ValueError, KeyError) as e:
        logger.warning(f"[Events] message unmarshal error: {e}")
        return None


class EventStream:
    """
    Websocket reader for deCONZ change notifications.

    Usage:
        stream = EventStream("ws://192.168.1.10:443", manager.dispatch)
        await stream.connect()
        task = asyncio.create_task(stream.run())
        ...
        await stream.stop()
    """

    def __init__(
        self,
        url: str,
        on_event: Callable[[ChangeEvent], None],
        config: Optional[EventStreamConfig] = None,
    ):
        self.url = url
        self.on_event = on_event
        self.config = config or EventStreamConfig()
        self._state = StreamState.STOPPED
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._failures = 0
        self._stopping = False

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    async def connect(self) -> None:
        """
        Open the websocket.

        Raises:
            aiohttp.ClientError: If the gateway cannot be reached
            asyncio.TimeoutError: If the handshake times out
        """
        self._state = StreamState.CONNECTING
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

        try:
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(self.url, heartbeat=self.config.heartbeat_seconds),
                timeout=self.config.connect_timeout_seconds,
            )
        except BaseException:
            self._state = StreamState.STOPPED
            raise

        self._state = StreamState.CONNECTED
        logger.info(f"Connected to event stream {self.url}")

    async def run(self) -> None:
        """Receive and dispatch messages until ``stop()`` or cancellation."""
        try:
            while not self._stopping:
                if self._ws is None or self._ws.closed:
                    if not await self._reconnect():
                        continue
                await self._read_messages()
        finally:
            await self._close()

    async def stop(self) -> None:
        """Stop reading and close the connection."""
        self._stopping = True
        await self._close()
        logger.info("Event stream stopped")

    async def _read_messages(self) -> None:
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                event = decode_message(msg.data)
                if event is not None:
                    self._deliver(event)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error(f"[Events] websocket read error: {self._ws.exception()}")
                break

        if not self._stopping:
            logger.warning("[Events] websocket connection closed")

    def _deliver(self, event: ChangeEvent) -> None:
        try:
            self.on_event(event)
        except Exception as e:
            logger.exception(f"[Events] failed to process {event.event} {event.resource} event: {e}")

    async def _reconnect(self) -> bool:
        """One reconnect attempt after the backoff delay. Returns True on success."""
        self._state = StreamState.RECONNECTING
        delay = self.config.backoff(self._failures + 1)
        await asyncio.sleep(delay)
        if self._stopping:
            return False

        try:
            await self.connect()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._failures += 1
            self._state = StreamState.RECONNECTING
            message = f"[Events] reconnect attempt {self._failures} failed: {e}"
            if self._failures >= self.config.alert_after_failures:
                logger.error(message)
            else:
                logger.warning(message)
            return False

        if self._failures:
            logger.info(f"[Events] reconnected after {self._failures} failed attempts")
        self._failures = 0
        return True

    async def _close(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        self._state = StreamState.STOPPED
