"""
deCONZ REST API client.

Thin async wrapper over the gateway's REST endpoints. All paths live under
``/api/{apikey}``; the only unauthenticated call is the API key request.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from .models import Device, GatewayConfiguration, LightDetails, SensorDetails

logger = logging.getLogger(__name__)

# deCONZ error type returned while the link button has not been pressed
LINK_BUTTON_NOT_PRESSED = 101


class GatewayError(Exception):
    """The gateway answered with an HTTP error or an error payload."""

    def __init__(self, message: str, status: Optional[int] = None, error_type: Optional[int] = None):
        self.status = status
        self.error_type = error_type
        super().__init__(message)


@dataclass
class GatewayConfig:
    """Connection settings for the deCONZ gateway."""
    host: str = "localhost"
    port: int = 80
    api_key: Optional[str] = None
    timeout: float = 10.0

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "port": self.port,
            "api_key": self.api_key,
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GatewayConfig":
        known_fields = {"host", "port", "api_key", "timeout"}
        filtered = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered)


class DeconzClient:
    """
    Client for the deCONZ REST API.

    Usage:
        client = DeconzClient(GatewayConfig(host="192.168.1.10", api_key="ABCDEF"))

        config = await client.get_configuration()
        devices = await client.get_all_devices()
        await client.set_light_on("00:17:88:01:00:00:00:01-0b", True)

        await client.close()
    """

    def __init__(self, config: Optional[GatewayConfig] = None):
        self.config = config or GatewayConfig()
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    def _url(self, path: str) -> str:
        if not self.config.api_key:
            raise GatewayError("No API key configured")
        return f"{self.config.base_url}/api/{self.config.api_key}{path}"

    async def _request(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        session = await self._get_session()
        logger.debug(f"{method} {url} {payload or ''}")

        async with session.request(method, url, json=payload) as resp:
            if resp.status >= 400:
                body = await resp.text()
                try:
                    _raise_for_payload(json.loads(body), status=resp.status)
                except ValueError:
                    pass
                raise GatewayError(f"{method} {url} failed: {resp.status} {body}", status=resp.status)
            data = await resp.json(content_type=None)

        _raise_for_payload(data)
        return data

    async def _get(self, path: str) -> Any:
        return await self._request("GET", self._url(path))

    async def _put(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self._request("PUT", self._url(path), payload)

    # -------------------------------------------------------------------------
    # Gateway
    # -------------------------------------------------------------------------

    async def get_configuration(self) -> GatewayConfiguration:
        """Fetch the gateway's own configuration (name, bridge id, websocket port)."""
        data = await self._get("/config")
        return GatewayConfiguration.model_validate(data)

    async def request_api_key(
        self,
        device_type: str = "HomeKit Bridge",
        retry_interval: float = 15.0,
        max_attempts: Optional[int] = None,
    ) -> str:
        """
        Request a new API key from the gateway.

        The gateway only hands out a key within 60 seconds of the link button
        being pressed in Phoscon, so this keeps asking until it succeeds.

        Args:
            device_type: Name the key is registered under
            retry_interval: Seconds between attempts
            max_attempts: Give up after this many attempts (None = forever)

        Returns:
            The new API key

        Raises:
            GatewayError: On any error other than "link button not pressed",
                or when ``max_attempts`` is exhausted
        """
        url = f"{self.config.base_url}/api"
        attempt = 0

        while True:
            attempt += 1
            try:
                data = await self._request("POST", url, {"devicetype": device_type})
            except GatewayError as e:
                if e.error_type != LINK_BUTTON_NOT_PRESSED:
                    raise
            else:
                for entry in data or []:
                    username = (entry.get("success") or {}).get("username")
                    if username:
                        logger.info("Successfully obtained an API key")
                        return username

            if max_attempts is not None and attempt >= max_attempts:
                raise GatewayError(f"No API key after {attempt} attempts", error_type=LINK_BUTTON_NOT_PRESSED)

            logger.warning(
                f"Please press the link button on your deCONZ gateway to obtain an API key. "
                f"Retrying in {retry_interval:.0f}s..."
            )
            await asyncio.sleep(retry_interval)

    # -------------------------------------------------------------------------
    # Devices
    # -------------------------------------------------------------------------

    async def list_devices(self) -> List[str]:
        """List the unique ids of all devices known to the gateway."""
        return list(await self._get("/devices"))

    async def get_device(self, unique_id: str) -> Device:
        """Fetch the full descriptor of one device."""
        data = await self._get(f"/devices/{unique_id}")
        return Device.from_dict(data)

    async def get_all_devices(self) -> List[Device]:
        """
        Fetch every device descriptor.

        Devices that fail to load are logged and left out; only a failure to
        list the devices at all is raised.
        """
        devices = []
        for unique_id in await self.list_devices():
            try:
                devices.append(await self.get_device(unique_id))
            except (aiohttp.ClientError, asyncio.TimeoutError, GatewayError, KeyError, ValueError) as e:
                logger.warning(f"Skipping device {unique_id}: {e}")
        return devices

    # -------------------------------------------------------------------------
    # Lights
    # -------------------------------------------------------------------------

    async def get_light(self, light_id: str) -> LightDetails:
        data = await self._get(f"/lights/{light_id}")
        return LightDetails.model_validate(data)

    async def set_light_state(self, light_id: str, **state: Any) -> None:
        """Send a partial state update; only the given fields are written."""
        await self._put(f"/lights/{light_id}/state", state)

    async def set_light_on(self, light_id: str, on: bool) -> None:
        await self.set_light_state(light_id, on=on)

    async def set_light_brightness(self, light_id: str, raw: int) -> None:
        """Set brightness from a raw 0-255 value; 0 switches the light off."""
        if raw > 0:
            await self.set_light_state(light_id, on=True, bri=raw)
        else:
            await self.set_light_state(light_id, on=False)

    async def set_light_color_temperature(self, light_id: str, mired: int) -> None:
        await self.set_light_state(light_id, ct=mired)

    async def set_light_hue(self, light_id: str, raw: int) -> None:
        await self.set_light_state(light_id, hue=raw)

    async def set_light_saturation(self, light_id: str, raw: int) -> None:
        await self.set_light_state(light_id, sat=raw)

    # -------------------------------------------------------------------------
    # Sensors
    # -------------------------------------------------------------------------

    async def get_sensor(self, sensor_id: str) -> SensorDetails:
        data = await self._get(f"/sensors/{sensor_id}")
        return SensorDetails.model_validate(data)


def _raise_for_payload(data: Any, status: Optional[int] = None) -> None:
    """deCONZ reports errors as ``[{"error": {...}}]``, sometimes with a 2xx status."""
    if not isinstance(data, list):
        return
    for entry in data:
        if isinstance(entry, dict) and "error" in entry:
            error = entry["error"] or {}
            raise GatewayError(
                error.get("description", "Unknown gateway error"),
                status=status,
                error_type=error.get("type"),
            )
