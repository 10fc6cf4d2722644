"""
Identity and value conversion helpers.

All functions here are pure. Rounding is half away from zero so values match
what the gateway itself computes; Python's ``round`` would round ties to even.
"""

import math
import re

UINT64_MASK = 0xFFFFFFFFFFFFFFFF

_SEPARATORS = re.compile(r"[:\-]")
_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def unique_id_to_aid(unique_id: str) -> int:
    """
    Derive a stable HomeKit accessory id from a deCONZ unique id.

    ``00:17:88:01:02:03:04:05-0b`` becomes ``0x00178801020304050b`` wrapped
    to 64 bits. Pairings are keyed by this id, so it must never depend on
    anything but the input string.
    """
    digits = _SEPARATORS.sub("", unique_id)
    if not _HEX_DIGITS.fullmatch(digits):
        return 0
    return int(digits, 16) & UINT64_MASK


def raw_to_percent(raw: float) -> int:
    """8-bit gateway value (0-255) to percent (0-100)."""
    return round_half_up(float(raw) * 100.0 / 255.0)


def percent_to_raw(percent: float) -> int:
    """Percent (0-100) to an 8-bit gateway value (0-255)."""
    return round_half_up(float(percent) * 255.0 / 100.0)


def raw_to_degrees(raw: float) -> float:
    """16-bit gateway hue (0-65535) to degrees (0-360)."""
    return float(raw) * 360.0 / 65535.0


def degrees_to_raw(degrees: float) -> int:
    """Degrees (0-360) to a 16-bit gateway hue (0-65535)."""
    return round_half_up(float(degrees) * 65535.0 / 360.0)


def mired_to_kelvin(mired: float) -> float:
    if mired <= 0:
        return 0.0
    return 1_000_000.0 / mired


def on_off(value: bool) -> str:
    return "on" if value else "off"
