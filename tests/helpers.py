"""
Gateway test doubles and device descriptor builders.
"""

from typing import Any, Dict, List, Optional, Tuple

from deconz_bridge.deconz.api import DeconzClient, GatewayConfig, GatewayError
from deconz_bridge.deconz.models import Device


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClient(DeconzClient):
    """
    DeconzClient answering from a route table instead of HTTP.

    Routes map ``(method, path)`` to a response; an exception value is raised.
    Unrouted GETs fail with a 404, unrouted PUTs succeed.
    """

    def __init__(self, routes: Optional[Dict[Tuple[str, str], Any]] = None):
        super().__init__(GatewayConfig(host="gateway", api_key="KEY"))
        self.routes = dict(routes or {})
        self.requests: List[Tuple[str, str, Any]] = []

    def route(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    async def _request(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        path = url.split("/api/KEY", 1)[-1]
        self.requests.append((method, path, payload))

        response = self.routes.get((method, path))
        if isinstance(response, Exception):
            raise response
        if response is None:
            if method == "GET":
                raise GatewayError(f"resource, {path}, not available", status=404, error_type=3)
            return [{"success": payload}]
        return response

    def puts(self) -> List[Tuple[str, Any]]:
        return [(path, payload) for method, path, payload in self.requests if method == "PUT"]


def make_device(unique_id: str, *subdevices: Dict[str, Any], name: str = "") -> Device:
    """Device descriptor from ``{"type", "uniqueid", "state", "config"}`` dicts."""
    return Device.from_dict({
        "uniqueid": unique_id,
        "manufacturername": "Test",
        "modelid": "TEST-1",
        "name": name or unique_id,
        "swversion": "1.0",
        "subdevices": list(subdevices),
    })


def subdevice(device_type: str, unique_id: str, state: Optional[dict] = None, config: Optional[dict] = None) -> dict:
    return {"type": device_type, "uniqueid": unique_id, "state": state or {}, "config": config or {}}
