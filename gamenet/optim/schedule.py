"""Cyclic (triangular) schedules for learning rate and momentum.

A schedule of length ``n`` rises linearly from ``start`` to ``peak`` over the
first half of its index range and then moves linearly from ``peak`` to
``end``. The peak sits at index ``(n - 1) // 2``. Every index maps to a value
without any running counter, so a schedule can be resumed or inspected at any
step.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Iterator

import numpy as np

from gamenet.errors import InvalidConfiguration


def cyclic_schedule_value(i: int, start: float, peak: float, end: float, n: int) -> float:
    if n < 1:
        raise InvalidConfiguration(f"Schedule length must be positive, got {n}")
    if not 0 <= i < n:
        raise IndexError(f"Schedule index {i} out of range for length {n}")
    mid = (n - 1) // 2
    if i <= mid:
        if mid == 0:
            return float(start)
        return float(start) + (float(peak) - float(start)) * (i / mid)
    span = (n - 1) - mid
    return float(peak) + (float(end) - float(peak)) * ((i - mid) / span)


class CyclicSchedule(Sequence):
    """Precomputed cyclic schedule.

    Examples:
        >>> list(CyclicSchedule(1.0, 4.0, 1.0, n=5))
        [1.0, 2.5, 4.0, 2.5, 1.0]
    """

    __slots__ = ("start", "peak", "end", "n", "_values")

    def __init__(self, start: float, peak: float, end: float, n: int):
        if int(n) != n or n < 1:
            raise InvalidConfiguration(f"Schedule length must be a positive integer, got {n}")
        self.start = float(start)
        self.peak = float(peak)
        self.end = float(end)
        self.n = int(n)

        mid = (self.n - 1) // 2
        values = np.empty(self.n, dtype=np.float64)
        values[: mid + 1] = np.linspace(self.start, self.peak, mid + 1) if mid > 0 else self.start
        if self.n - 1 > mid:
            values[mid + 1 :] = np.linspace(self.peak, self.end, self.n - mid)[1:]
        values.setflags(write=False)
        self._values = values

    @property
    def peak_index(self) -> int:
        return (self.n - 1) // 2

    @property
    def values(self) -> np.ndarray:
        return self._values

    def __len__(self) -> int:
        return self.n

    def __getitem__(self, i):
        if isinstance(i, slice):
            return [float(v) for v in self._values[i]]
        if not -self.n <= i < self.n:
            raise IndexError(f"Schedule index {i} out of range for length {self.n}")
        return float(self._values[i])

    def __iter__(self) -> Iterator[float]:
        return (float(v) for v in self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CyclicSchedule):
            return NotImplemented
        return (self.start, self.peak, self.end, self.n) == (other.start, other.peak, other.end, other.n)

    def __hash__(self) -> int:
        return hash((self.start, self.peak, self.end, self.n))

    def __repr__(self) -> str:
        return f"CyclicSchedule(start={self.start}, peak={self.peak}, end={self.end}, n={self.n})"
