"""
Multi-button switch adapter.

Every configured button becomes its own StatelessProgrammableSwitch endpoint,
all fed from the single ``buttonevent`` field of one gateway sensor.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..buttons import BUTTON_EVENT_THRESHOLD, ButtonConfiguration, PressType, split_event_id
from ..deconz.models import StateMap, Subdevice
from .base import Characteristic, Endpoint, ServiceAdapter, ServiceKind
from .errors import MissingPressConfigurationError, ServiceConstructionError


@dataclass
class SwitchButton:
    """One physical button."""
    index: str
    config: ButtonConfiguration
    endpoint: Endpoint
    event: Characteristic

    @property
    def name(self) -> str:
        return self.config.name


class MultiButtonSwitch(ServiceAdapter):
    """A remote or wall switch with one or more buttons."""

    def __init__(self, device, subdevice: Subdevice, model_id: str):
        super().__init__(device, subdevice)
        self.model_id = model_id
        self._buttons: Dict[str, SwitchButton] = {}

    @classmethod
    async def create(cls, device, subdevice: Subdevice) -> "MultiButtonSwitch":
        sensor = await device.client.get_sensor(subdevice.unique_id)
        configuration = device.press_configs.get(sensor.model_id)
        if configuration is None:
            raise MissingPressConfigurationError(sensor.model_id)

        switch = cls(device, subdevice, sensor.model_id)
        for button in configuration.buttons:
            switch.add_button(button)

        if not switch._buttons:
            raise ServiceConstructionError(f"model {sensor.model_id!r} has no usable buttons")

        # The snapshot's buttonevent is the last press, not a new one; it is not replayed
        return switch

    def add_button(self, config: ButtonConfiguration) -> Optional[SwitchButton]:
        index = config.index
        if index is None or not index.isdigit():
            self.log.warning(f"button {config.name!r} has no usable event codes")
            return None

        endpoint = Endpoint(
            key=f"{self.unique_id}/{index}",
            kind=ServiceKind.PROGRAMMABLE_SWITCH,
            name=config.name,
        )
        event = endpoint.add(Characteristic(
            "ProgrammableSwitchEvent",
            valid_values={p.hap_name: p.hap_value for p in config.press_types},
            stateless=True,
        ))
        endpoint.add(Characteristic("ServiceLabelIndex", int(index)))

        button = SwitchButton(index=index, config=config, endpoint=endpoint, event=event)
        self._buttons[index] = button
        return button

    def button(self, index: str) -> Optional[SwitchButton]:
        return self._buttons.get(index)

    @property
    def buttons(self) -> List[SwitchButton]:
        return list(self._buttons.values())

    def endpoints(self) -> List[Endpoint]:
        return [b.endpoint for b in self._buttons.values()]

    def decode(self, code: int) -> Optional[tuple]:
        """Resolve a ``buttonevent`` code to ``(button, press_type)``, or None."""
        if code < BUTTON_EVENT_THRESHOLD:
            return None

        event = str(code)
        index, _ = split_event_id(event)
        button = self._buttons.get(index)
        if button is None:
            return None

        press_type: Optional[PressType] = button.config.event_map.get(event)
        if press_type is None:
            return None
        return button, press_type

    def _apply_state(self, state: StateMap) -> None:
        if not state.has("buttonevent"):
            return

        code = state.as_int("buttonevent")
        if code >= BUTTON_EVENT_THRESHOLD:
            index, action = split_event_id(str(code))
            self.log.info(f"button {index} got event {action}")

        decoded = self.decode(code)
        if decoded is None:
            return

        button, press_type = decoded
        button.event.set_value(press_type.hap_value)
