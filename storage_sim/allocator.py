"""Container repacking with a capacity buffer."""

from __future__ import annotations

import math
import numbers
from dataclasses import asdict, dataclass, field
from typing import Any

BUFFER_PERCENT = 0.20
MAX_CONTAINER_SIZE = 100
MIN_BASE_UNIT_SIZE = 10
MAX_BASE_UNIT_SIZE = 100
DEFAULT_BASE_UNIT_SIZE = 50


class AllocationError(ValueError):
    """Raised when the allocator is called outside its input domain."""


@dataclass
class Container:
    id: int
    size: int
    used: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class Allocation:
    containers: list[Container] = field(default_factory=list)
    total: int = 0

    @property
    def used(self) -> int:
        return sum(c.used for c in self.containers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "containers": [c.to_dict() for c in self.containers],
            "total": self.total,
        }


def _check_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise AllocationError(f"{name} must be an integer, got {value!r}")
    return int(value)


def optimize(
    used_amount: int,
    base_unit_size: int = DEFAULT_BASE_UNIT_SIZE,
    max_container_size: int = MAX_CONTAINER_SIZE,
    buffer_percent: float = BUFFER_PERCENT,
) -> Allocation:
    """
    Repack ``used_amount`` GB into containers of at most ``max_container_size``.

    Capacity is ``ceil(used_amount * (1 + buffer_percent))`` split greedily into
    full containers plus one remainder container; usage fills them in id order.
    Zero usage yields a single empty container of ``base_unit_size``.
    """
    used_amount = _check_int("used_amount", used_amount)
    base_unit_size = _check_int("base_unit_size", base_unit_size)
    max_container_size = _check_int("max_container_size", max_container_size)
    if used_amount < 0:
        raise AllocationError("used_amount must be non-negative")
    if not MIN_BASE_UNIT_SIZE <= base_unit_size <= MAX_BASE_UNIT_SIZE:
        raise AllocationError(
            f"base_unit_size must be in range {MIN_BASE_UNIT_SIZE}..{MAX_BASE_UNIT_SIZE}, got {base_unit_size}"
        )
    if max_container_size < 1:
        raise AllocationError("max_container_size must be >= 1")

    if used_amount == 0:
        return Allocation(containers=[Container(id=1, size=base_unit_size, used=0)], total=base_unit_size)

    required = math.ceil(used_amount * (1 + buffer_percent))

    containers: list[Container] = []
    remaining = required
    while remaining > 0:
        size = min(max_container_size, remaining)
        containers.append(Container(id=len(containers) + 1, size=size))
        remaining -= size

    remaining_used = used_amount
    for c in containers:
        take = min(remaining_used, c.size)
        c.used = take
        remaining_used -= take

    return Allocation(containers=containers, total=sum(c.size for c in containers))
