"""Biquad bandpass filter and the audio filter built on it."""

from __future__ import annotations

import math
from typing import Iterable

SAMPLE_RATE = 48000


class BiquadBandpass:
    """A second-order bandpass section with cut-offs given in hertz."""

    def __init__(self, low_cut: float, high_cut: float, sample_rate: float) -> None:
        self.z1 = self.z2 = 0.0
        self.out1 = self.out2 = 0.0
        nyquist = 0.5 * sample_rate
        self.design(low_cut / nyquist, high_cut / nyquist)

    def design(self, low: float, high: float) -> None:
        """Compute coefficients from cut-offs normalised to the Nyquist rate."""
        if high == low:
            raise ValueError("bandpass cut-offs must differ")
        center = (low + high) / 2.0
        q = center / (high - low)
        omega = 2.0 * math.pi * center
        alpha = math.sin(omega) / (2.0 * q)
        cos_omega = math.cos(omega)
        norm = 1.0 / (1.0 + alpha)

        self.b0 = alpha * norm
        self.b1 = 0.0
        self.b2 = -alpha * norm
        self.a1 = -2.0 * cos_omega * norm
        self.a2 = (1.0 - alpha) * norm

        self.z1 = self.z2 = 0.0

    def process(self, sample: float) -> float:
        output = (
            self.b0 * sample
            + self.b1 * self.z1
            + self.b2 * self.z2
            - self.a1 * self.out1
            - self.a2 * self.out2
        )
        self.z2 = self.z1
        self.z1 = sample
        self.out2 = self.out1
        self.out1 = output
        return output


class AudioFilter:
    """Bandpass filter over a block of mono samples at 48 kHz."""

    def __init__(self, lower: int = 10, upper: int = 200) -> None:
        self._lower = int(lower)
        self._upper = int(upper)
        self._filter = BiquadBandpass(self._lower, self._upper, SAMPLE_RATE)

    @property
    def lower(self) -> int:
        return self._lower

    @lower.setter
    def lower(self, value: int) -> None:
        self._lower = int(value)
        self._filter = BiquadBandpass(self._lower, self._upper, SAMPLE_RATE)

    @property
    def upper(self) -> int:
        return self._upper

    @upper.setter
    def upper(self, value: int) -> None:
        self._upper = int(value)
        self._filter = BiquadBandpass(self._lower, self._upper, SAMPLE_RATE)

    def process(self, samples: Iterable[float]) -> list[float]:
        """Filter samples, keeping state between calls."""
        return [self._filter.process(float(sample)) for sample in samples]