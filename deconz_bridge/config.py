"""
Configuration management for the deCONZ bridge.

Handles:
- Gateway connection and API key
- HomeKit pairing settings
- Event stream reconnect policy
- Button configuration directory
"""

import json
import logging
import os
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .deconz.api import GatewayConfig
from .deconz.events import EventStreamConfig

logger = logging.getLogger(__name__)

# Default paths
DEFAULT_DATA_DIR = Path.home() / ".deconz-bridge"

DEFAULT_HAP_PORT = 51826

# Environment overrides
ENV_GATEWAY_HOST = "DECONZ_IP"
ENV_GATEWAY_PORT = "DECONZ_PORT"
ENV_DATA_DIR = "STORAGE_PATH"
ENV_DEVICES_DIR = "DEVICES_DIR"

# HomeKit rejects these setup codes
_INVALID_PINCODES = {
    "000-00-000", "111-11-111", "222-22-222", "333-33-333", "444-44-444",
    "555-55-555", "666-66-666", "777-77-777", "888-88-888", "999-99-999",
    "123-45-678", "876-54-321",
}


def generate_pincode() -> str:
    """Random HomeKit setup code in ``XXX-XX-XXX`` form."""
    rng = random.SystemRandom()
    while True:
        digits = "".join(str(rng.randint(0, 9)) for _ in range(8))
        code = f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"
        if code not in _INVALID_PINCODES:
            return code


@dataclass
class HomeKitConfig:
    """Settings for the HomeKit accessory server."""
    port: int = DEFAULT_HAP_PORT
    pincode: Optional[str] = None
    persist_file: str = "accessory.state"
    name: Optional[str] = None  # defaults to the gateway name
    address: Optional[str] = None  # bind address, all interfaces when unset

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "pincode": self.pincode,
            "persist_file": self.persist_file,
            "name": self.name,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HomeKitConfig":
        known_fields = {"port", "pincode", "persist_file", "name", "address"}
        filtered = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered)


@dataclass
class Config:
    """
    Main bridge configuration.

    Stored at ~/.deconz-bridge/config.json
    """
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)

    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    homekit: HomeKitConfig = field(default_factory=HomeKitConfig)
    events: EventStreamConfig = field(default_factory=EventStreamConfig)

    # None means the descriptors shipped with the package
    devices_dir: Optional[Path] = None

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.json"

    @property
    def persist_path(self) -> Path:
        return self.data_dir / self.homekit.persist_file

    def ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def ensure_pincode(self) -> str:
        """Generate and keep a pairing code on first use."""
        if not self.homekit.pincode:
            self.homekit.pincode = generate_pincode()
        return self.homekit.pincode

    def apply_env(self, environ: Optional[dict] = None) -> "Config":
        """Override gateway and path settings from the environment."""
        env = os.environ if environ is None else environ

        if env.get(ENV_GATEWAY_HOST):
            self.gateway.host = env[ENV_GATEWAY_HOST]
        if env.get(ENV_GATEWAY_PORT):
            try:
                self.gateway.port = int(env[ENV_GATEWAY_PORT])
            except ValueError:
                logger.warning(f"Ignoring invalid {ENV_GATEWAY_PORT}={env[ENV_GATEWAY_PORT]!r}")
        if env.get(ENV_DEVICES_DIR):
            self.devices_dir = Path(env[ENV_DEVICES_DIR])
        return self

    def save(self) -> None:
        """Save configuration to disk."""
        self.ensure_data_dir()

        data = {
            "gateway": self.gateway.to_dict(),
            "homekit": self.homekit.to_dict(),
            "events": self.events.to_dict(),
            "devices_dir": str(self.devices_dir) if self.devices_dir else None,
        }

        with open(self.config_path, 'w') as f:
            json.dump(data, f, indent=2)

        logger.debug(f"Configuration saved to {self.config_path}")

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "Config":
        """Load configuration from disk."""
        data_dir = Path(data_dir) if data_dir else default_data_dir()
        config_path = data_dir / "config.json"

        if not config_path.exists():
            return cls(data_dir=data_dir)

        with open(config_path, 'r') as f:
            data = json.load(f)

        config = cls(data_dir=data_dir)
        if "gateway" in data:
            config.gateway = GatewayConfig.from_dict(data["gateway"])
        if "homekit" in data:
            config.homekit = HomeKitConfig.from_dict(data["homekit"])
        if "events" in data:
            config.events = EventStreamConfig.from_dict(data["events"])
        if data.get("devices_dir"):
            config.devices_dir = Path(data["devices_dir"])

        return config

    @classmethod
    def exists(cls, data_dir: Optional[Path] = None) -> bool:
        """Check if configuration exists."""
        data_dir = Path(data_dir) if data_dir else default_data_dir()
        return (data_dir / "config.json").exists()


def default_data_dir(environ: Optional[dict] = None) -> Path:
    """``STORAGE_PATH`` if set, otherwise ~/.deconz-bridge."""
    env = os.environ if environ is None else environ
    if env.get(ENV_DATA_DIR):
        return Path(env[ENV_DATA_DIR])
    return DEFAULT_DATA_DIR


# Global config instance
_config: Optional[Config] = None


def get_config(data_dir: Optional[Path] = None) -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load(data_dir).apply_env()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
