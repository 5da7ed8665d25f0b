"""Colour conversions, logarithmic scaling and small formatting helpers."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import Generic, Iterable, Iterator, TypeVar

BASE = 40

T = TypeVar("T")


def log_to_linear(x: float) -> float:
    """Map a position on the logarithmic display axis to a linear fraction."""
    return (BASE**x - 1.0) / (BASE - 1.0)


def linear_to_log(x: float) -> float:
    """Map a linear fraction to its position on the logarithmic display axis."""
    return math.log(x * (BASE - 1.0) + 1.0) / math.log(BASE)


class FixedQueue(Generic[T]):
    """A queue holding at most ``maxlen`` items; pushing drops the oldest."""

    def __init__(self, maxlen: int) -> None:
        if maxlen < 1:
            raise ValueError("maxlen must be at least 1")
        self._items: deque[T] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._items.maxlen or 0

    def push(self, value: T) -> None:
        self._items.append(value)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __repr__(self) -> str:
        return f"FixedQueue({list(self._items)!r}, maxlen={self.maxlen})"


def bits_to_byte(bits: Iterable[int]) -> int:
    """Pack eight bits, most significant first, into one byte."""
    values = [int(bit) for bit in bits]
    if len(values) != 8:
        raise ValueError(f"expected 8 bits, got {len(values)}")
    total = 0
    for bit in values:
        total = (total << 1) + bit
    return total & 0xFF


def array_to_string(values: Iterable[int]) -> str:
    """Format integers in hexadecimal as ``[ a, b, c ]``."""
    return "[ " + ", ".join(format(int(v), "x") for v in values) + " ]"


def mac_to_hex(mac: Iterable[int]) -> str:
    """Format a MAC address as twelve lower-case hex digits without separators."""
    return "".join(format(int(byte), "02x") for byte in mac)


@dataclass(frozen=True)
class Rgb:
    r: float
    g: float
    b: float


@dataclass(frozen=True)
class Hsv:
    h: float
    s: float
    v: float


def rgb_to_hsv(color: Rgb) -> Hsv:
    """Convert RGB fractions to hue in degrees, saturation and value."""
    low = min(color.r, color.g, color.b)
    high = max(color.r, color.g, color.b)
    delta = high - low
    if delta < 0.00001:
        return Hsv(0.0, 0.0, high)
    if high <= 0.0:
        return Hsv(0.0, 0.0, high)
    saturation = delta / high
    if color.r >= high:
        hue = (color.g - color.b) / delta
    elif color.g >= high:
        hue = 2.0 + (color.b - color.r) / delta
    else:
        hue = 4.0 + (color.r - color.g) / delta
    hue *= 60.0
    if hue < 0.0:
        hue += 360.0
    return Hsv(hue, saturation, high)


def hsv_to_rgb(color: Hsv) -> Rgb:
    """Convert hue in degrees, saturation and value to RGB fractions."""
    v = color.v
    if color.s <= 0.0:
        return Rgb(v, v, v)
    hh = color.h
    if hh >= 360.0:
        hh = 0.0
    hh /= 60.0
    sector = int(hh)
    ff = hh - sector
    p = v * (1.0 - color.s)
    q = v * (1.0 - color.s * ff)
    t = v * (1.0 - color.s * (1.0 - ff))
    sectors = {
        0: (v, t, p),
        1: (q, v, p),
        2: (p, v, t),
        3: (p, q, v),
        4: (t, p, v),
    }
    return Rgb(*sectors.get(sector, (v, p, q)))