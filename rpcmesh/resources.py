"""Limiting how much of each named resource concurrently running calls may use."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Any

from rpcmesh.errors import (
    MaxResourcesReached,
    ResourceAtCapacity,
    ResourceNameAlreadyTaken,
)

RESOURCE_COUNT = 8
"""Number of resource kinds that can be used for limiting."""

_U16_MAX = 0xFFFF


def _check_units(value: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an integer")
    if not 0 <= value <= _U16_MAX:
        raise ValueError(f"{what} must be between 0 and {_U16_MAX}")
    return value


def _table(units: Sequence[int]) -> list[int]:
    values = list(units)
    if len(values) > RESOURCE_COUNT:
        raise ValueError(f"at most {RESOURCE_COUNT} resource units can be given")
    values = [_check_units(value, "units") for value in values]
    return values + [0] * (RESOURCE_COUNT - len(values))


class _Totals:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.values = [0] * RESOURCE_COUNT


class Resources:
    """Registered resource kinds with their capacities, default costs and current use.

    A capacity of 0 means the resource is not limited.
    """

    def __init__(self) -> None:
        self.capacities: list[int] = [0] * RESOURCE_COUNT
        self.defaults: list[int] = [0] * RESOURCE_COUNT
        self.labels: list[str] = []
        self._totals = _Totals()

    def __repr__(self) -> str:
        return (
            f"Resources(labels={self.labels!r}, capacities={self.capacities!r}, "
            f"defaults={self.defaults!r})"
        )

    @property
    def totals(self) -> tuple[int, ...]:
        """Units currently claimed for each resource."""
        with self._totals.lock:
            return tuple(self._totals.values)

    def register(self, label: str, capacity: int, default: int) -> None:
        """Register a resource kind; raise if the label is taken or all slots are used."""
        if label in self.labels:
            raise ResourceNameAlreadyTaken(label)
        if len(self.labels) >= RESOURCE_COUNT:
            raise MaxResourcesReached()
        _check_units(capacity, "capacity")
        _check_units(default, "default")
        idx = len(self.labels)
        self.labels.append(label)
        self.capacities[idx] = capacity
        self.defaults[idx] = default

    def claim(self, units: Sequence[int]) -> ResourceGuard:
        """Claim units of each resource; raise ResourceAtCapacity if any would overflow.

        Missing trailing entries count as zero.
        """
        table = _table(units)
        with self._totals.lock:
            updated = []
            for idx, (current, wanted, capacity) in enumerate(
                zip(self._totals.values, table, self.capacities)
            ):
                total = current + wanted
                if total > capacity:
                    label = self.labels[idx] if idx < len(self.labels) else "<UNKNOWN>"
                    raise ResourceAtCapacity(label)
                updated.append(total)
            self._totals.values[:] = updated
        return ResourceGuard(self._totals, tuple(table))


class ResourceGuard:
    """Claimed resource units, given back by ``release`` or on leaving a ``with`` block."""

    def __init__(self, totals: _Totals, units: tuple[int, ...]) -> None:
        self._totals = totals
        self.units = units
        self._released = False

    def __repr__(self) -> str:
        return f"ResourceGuard(units={self.units!r}, released={self._released})"

    def release(self) -> None:
        """Give the claimed units back; further calls do nothing."""
        with self._totals.lock:
            if self._released:
                return
            self._released = True
            self._totals.values[:] = [
                total - claimed for total, claimed in zip(self._totals.values, self.units)
            ]

    def __enter__(self) -> ResourceGuard:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def __del__(self) -> None:
        try:
            self.release()
        except Exception:
            pass