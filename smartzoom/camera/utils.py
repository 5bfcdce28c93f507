"""Shared numeric helpers used by multiple modules."""

import math


def fmt_time(ms: float) -> str:
    """Format milliseconds as m:ss."""
    s = int(ms / 1000)
    m = s // 60
    return f"{m}:{s % 60:02d}"


def fmt_time_precise(ms: float) -> str:
    """Format milliseconds as m:ss.t (tenths), for detection logs."""
    tenths = int(ms / 100)
    s, t = divmod(tenths, 10)
    return f"{s // 60}:{s % 60:02d}.{t}"


def clamp01(v: float) -> float:
    return max(0.0, min(1.0, v))


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def round_half_up(v: float, digits: int = 1) -> float:
    """Round like a human would: 1.75 → 1.8, never banker's rounding."""
    factor = 10 ** digits
    return math.floor(v * factor + 0.5) / factor
