"""A band of the spectrum that detects beats and can be edited with the mouse."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Optional, Sequence

from .helper import linear_to_log, log_to_linear

log = logging.getLogger(__name__)

DEBOUNCE_MILLIS = 100
_SMOOTHING = 0.7
_THRESH_ADAPTATION = 0.0005
_THRESH_FLOOR = 0.5
_PEAK_DECAY = 0.05
_LINE_TOLERANCE = 0.05
_EDGE_TOLERANCE = 0.01


def _clamp(value: float, low: float, high: float) -> float:
    return max(min(value, high), low)


class FrequencyRegion:
    """A frequency band on a logarithmic axis with an adaptive beat threshold.

    Positions ``start`` and ``end`` live on the logarithmic display axis; the
    scaled bounds are the bin indices they cover in a spectrum of ``step`` bins.
    """

    def __init__(
        self,
        index: int,
        minimum: int,
        maximum: int,
        step: int,
        name: str = "unnamed",
    ) -> None:
        if step <= 0:
            raise ValueError("step must be positive")
        self.index = index
        self.step = step
        self.name = name
        self._start = linear_to_log(minimum / step)
        self._end = linear_to_log(maximum / step)

        self.thresh = 0.7
        self.level = 0.0
        self.peak = 0.0
        self.smooth_level = 0.0
        self.last_beat = 0.0
        self.beat_millis = 0

        self.mouse_down = False
        self.dragging = False
        self.dragging_start = False
        self.dragging_end = False
        self.hovering = False
        self.on_line = False
        self.new_inside = False
        self.new_on_line = False
        self.new_on_start = False
        self.new_on_end = False
        self._dx = 0.0
        self._prestart = 0.0
        self._preend = 0.0

        self.on_value_changed: Optional[Callable[[], None]] = None

    @property
    def start(self) -> float:
        """The lower edge on the display axis."""
        return min(self._start, self._end)

    @start.setter
    def start(self, value: float) -> None:
        self._start = _clamp(value, -1.0, 1.0)

    @property
    def end(self) -> float:
        """The upper edge on the display axis."""
        return self._end if self._end > self._start else self._start

    @end.setter
    def end(self, value: float) -> None:
        self._end = _clamp(value, -1.0, 1.0)

    @property
    def scaled_min(self) -> int:
        """First spectrum bin covered by the region."""
        return int(log_to_linear(min(self._start, self._end)) * self.step)

    @property
    def scaled_max(self) -> int:
        """Spectrum bin just past the region."""
        return int(log_to_linear(max(self._start, self._end)) * self.step)

    @property
    def color(self) -> float:
        return 1.0 if self.name == "low" else 0.0

    def process_data(self, data: Sequence[float], now: Optional[float] = None) -> bool:
        """Update level and threshold from a spectrum; return True on a beat.

        ``now`` is a monotonic time in seconds.
        """
        if now is None:
            now = time.monotonic()
        lo = max(self.scaled_min, 0)
        hi = self.scaled_max
        self.level = max(0.0, max((float(v) for v in data[lo:hi]), default=0.0))

        self.smooth_level = _SMOOTHING * self.level + (1.0 - _SMOOTHING) * self.smooth_level
        self.thresh = max(
            _THRESH_ADAPTATION * (self.level + 0.25)
            + (1.0 - _THRESH_ADAPTATION) * self.thresh,
            _THRESH_FLOOR,
        )

        above = self.level > self.thresh
        self.beat_millis = int(round((now - self.last_beat) * 1_000_000)) // 1000
        peaked = above and self.beat_millis > DEBOUNCE_MILLIS

        if peaked:
            self.peak = 1.0
            self.last_beat = now
            return True
        if self.peak > 0:
            self.peak -= _PEAK_DECAY
        return False

    def _snap(self, x: float) -> float:
        linear = log_to_linear(x)
        return linear_to_log(linear - math.fmod(linear, 1.0 / self.step))

    def _emit_value_changed(self) -> None:
        if self.on_value_changed is not None:
            self.on_value_changed()

    def mouse_event(self, x: float, y: float) -> None:
        """Track the pointer; while the button is held, drag the region."""
        rx = self._snap(x)
        vx = _clamp(rx, 0.0, 1.0)
        self.new_inside = self.start < vx < self.end

        level = 1.0 - y
        self.new_on_line = self.new_inside and (
            self.thresh - _LINE_TOLERANCE < level < self.thresh + _LINE_TOLERANCE
        )
        self.new_on_start = self.start - _EDGE_TOLERANCE < x < self.start + _EDGE_TOLERANCE
        self.new_on_end = self.end - _EDGE_TOLERANCE < x < self.end + _EDGE_TOLERANCE
        self.on_line = self.new_on_line

        if not self.mouse_down:
            return
        shift = rx - self._dx
        if self.dragging:
            self.thresh = level
            self._emit_value_changed()
        elif self.dragging_start:
            self.start = self._prestart + shift
        elif self.dragging_end:
            self.end = self._preend + shift
        elif self.hovering:
            self.start = self._prestart + shift
            self.end = self._preend + shift
        else:
            self.end = rx

    def mouse_click(self, x: float, y: float) -> None:
        """Begin a drag, or a new selection when clicking outside the region."""
        self.mouse_down = True
        rx = self._snap(x)

        self.hovering = self.new_inside
        self.dragging_start = self.new_on_start
        self.dragging_end = self.new_on_end
        self.dragging = self.on_line
        self._dx = rx
        self._prestart = self.start
        self._preend = self.end
        if not self.dragging and not self.hovering:
            self.start = rx
            self.end = rx

    def mouse_released(self, x: float, y: float) -> None:
        """Finish the current drag or selection."""
        self.mouse_down = False
        rx = self._snap(x)
        vx = _clamp(rx, -1.0, 1.0)

        if self.dragging:
            self.thresh = 1.0 - y
        elif not self.hovering:
            self.end = vx
        self.dragging = False
        self.hovering = False
        log.debug(
            "%s %d %d %d",
            self.name,
            self.scaled_min,
            self.scaled_max,
            self.scaled_max - self.scaled_min,
        )