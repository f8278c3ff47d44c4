from __future__ import annotations

import math
import numbers
from typing import Any, Iterable, List, Optional

import numpy as np
import pandas as pd

# Spreadsheet serial day 0. Keeps the modular sampling filter on the same calendar days
# as serial-number based schedule libraries.
SERIAL_EPOCH = pd.Timestamp("1899-12-30")

UNDEFINED = float("nan")


def is_undefined(x: Any) -> bool:
    """True for the NaN sentinel (and anything that is not a finite real)."""
    return not is_finite_number(x)


def is_number(x: Any) -> bool:
    return isinstance(x, numbers.Real) and not isinstance(x, (bool, np.bool_))


def is_finite_number(x: Any) -> bool:
    return is_number(x) and math.isfinite(float(x))


def serial_number(d) -> int:
    """Calendar date -> integer serial day count."""
    return int((pd.Timestamp(d).normalize() - SERIAL_EPOCH).days)


def from_serial(n: int) -> pd.Timestamp:
    return SERIAL_EPOCH + pd.Timedelta(days=int(n))


def serial_range_to_dates(serials: Iterable[int]) -> List[pd.Timestamp]:
    serials = np.asarray(list(serials), dtype="int64")
    if serials.size == 0:
        return []
    idx = SERIAL_EPOCH + pd.to_timedelta(serials, unit="D")
    return [pd.Timestamp(d) for d in idx]


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """
    Tolerant date parser. Returns None for missing or unparseable input.

    Accepts "YYYY-MM-DD" strings, datetime/date objects and Timestamps.
    """
    if value is None or isinstance(value, (bool, numbers.Number)):
        return None
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError):
        return None
    if pd.isna(ts):
        return None
    return ts.normalize()


def parse_float(value: Any, default: float = UNDEFINED) -> float:
    """Numeric field parser; unparseable input becomes `default` (NaN)."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def parse_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (numbers.Number, bool)):
        return str(value)
    return None


def as_list(value: Any) -> list:
    """Scalars become one-element lists; None becomes an empty list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def as_percent(x: float, decimals: int = 2) -> str:
    if not is_finite_number(x):
        return "NaN"
    return f"{100.0 * x:.{decimals}f}%"


def as_double(x: float, decimals: int = 4) -> str:
    if not is_finite_number(x):
        return "NaN"
    return f"{x:.{decimals}f}"


def json_number(x: float) -> Optional[float]:
    """NaN / inf are not valid JSON numbers; they serialize as null."""
    return float(x) if is_finite_number(x) else None


def format_date(d: Optional[pd.Timestamp]) -> Optional[str]:
    return None if d is None else pd.Timestamp(d).strftime("%Y-%m-%d")
