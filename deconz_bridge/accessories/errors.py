"""
Errors raised while turning gateway devices into accessories.
"""


class DeviceError(Exception):
    """A device or one of its capabilities could not be bridged."""


class UnsupportedCapabilityError(DeviceError):
    """No service adapter exists for a subdevice's capability tag."""

    def __init__(self, device_type: str):
        self.device_type = device_type
        super().__init__(f"{device_type}: not implemented")


class ServiceConstructionError(DeviceError):
    """A supported capability failed to build."""


class MissingPressConfigurationError(ServiceConstructionError):
    """A switch model has no button table."""

    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__(f"could not find button configuration for model {model_id!r}")


class NoServicesError(DeviceError):
    """Every capability of a device failed or was unsupported."""
