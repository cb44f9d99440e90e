from __future__ import annotations

import random
import time
from typing import Optional

_PREFIX = "p_"
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_FRACTION_DIGITS = 11


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_DIGITS[rem])
    return "".join(reversed(out))


def _fraction_to_base36(value: float, digits: int = _FRACTION_DIGITS) -> str:
    out = []
    for _ in range(digits):
        value *= 36
        digit = int(value)
        out.append(_DIGITS[digit])
        value -= digit
        if not value:
            break
    return "".join(out)


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_id(timestamp_ms: Optional[int] = None) -> str:
    """Return a new post id: prefix, random base-36 digits, base-36 timestamp."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"{_PREFIX}{_fraction_to_base36(random.random())}{_to_base36(timestamp_ms)}"
