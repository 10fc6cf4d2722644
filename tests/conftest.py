"""
Shared fixtures: an in-memory gateway and a controllable clock.
"""

import pytest

from deconz_bridge.buttons import ButtonConfiguration, DeviceConfiguration, PressConfigurationStore, PressType

from helpers import FakeClient, FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def press_configs():
    return PressConfigurationStore.from_configs({
        "M1": DeviceConfiguration(
            manufacturer="Test",
            models=["M1"],
            buttons=[
                ButtonConfiguration(name="One", event_map={"1001": PressType.SINGLE}),
                ButtonConfiguration(name="Two", event_map={"2003": PressType.DOUBLE}),
            ],
        ),
    })
