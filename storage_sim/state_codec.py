"""State encoding and input parsing helpers."""

from __future__ import annotations

import math
import numbers
import re
from typing import Any

from .allocator import DEFAULT_BASE_UNIT_SIZE, MAX_BASE_UNIT_SIZE, MIN_BASE_UNIT_SIZE

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class UsageValidationError(ValueError):
    """Raised when a usage amount or storage state is invalid."""


def encode_state(used: int, total: int) -> tuple[int, int]:
    """Return ``(utilization_bucket, waste_bucket)`` as floored percentages."""
    if total <= 0:
        raise UsageValidationError(f"total capacity must be positive, got {total}")
    utilization = math.floor(used / total * 100)
    waste = math.floor((total - used) / total * 100)
    return utilization, waste


def state_key(state: tuple[int, int]) -> str:
    utilization, waste = state
    return f"u{utilization}_w{waste}"


def parse_amount(value: Any) -> int:
    """
    Parse a manual usage amount the way an integer form field is read.

    Integers pass through, floats are truncated, strings use their leading
    integer prefix ("12GB" -> 12). Anything else, or a result <= 0, raises.
    """
    if isinstance(value, bool) or value is None:
        raise UsageValidationError(f"amount must be numeric, got {value!r}")

    if isinstance(value, numbers.Integral):
        amount = int(value)
    elif isinstance(value, numbers.Real):
        if not math.isfinite(value):
            raise UsageValidationError(f"amount must be finite, got {value!r}")
        amount = int(value)
    elif isinstance(value, str):
        m = _LEADING_INT.match(value)
        if not m:
            raise UsageValidationError(f"amount must be numeric, got {value!r}")
        amount = int(m.group(1))
    else:
        raise UsageValidationError(f"amount must be numeric, got {type(value).__name__}")

    if amount <= 0:
        raise UsageValidationError(f"amount must be positive, got {amount}")
    return amount


def clamp_base_unit_size(value: Any) -> int:
    """Clamp a base unit size into range; unparsable or zero input means the default."""
    size = 0
    if isinstance(value, bool) or value is None:
        pass
    elif isinstance(value, numbers.Integral):
        size = int(value)
    elif isinstance(value, numbers.Real) and math.isfinite(value):
        size = int(value)
    elif isinstance(value, str):
        m = _LEADING_INT.match(value)
        if m:
            size = int(m.group(1))
    if size == 0:
        size = DEFAULT_BASE_UNIT_SIZE
    return max(MIN_BASE_UNIT_SIZE, min(MAX_BASE_UNIT_SIZE, size))
