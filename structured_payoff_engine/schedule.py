from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from .utils import serial_number, serial_range_to_dates


@dataclass(frozen=True)
class CalculationPeriod:
    start_date: pd.Timestamp
    end_date: pd.Timestamp
    payment_date: Optional[pd.Timestamp] = None


@dataclass(frozen=True)
class SamplingConfig:
    """
    Barrier monitoring densities, in calendar days.

    - fine_period: sampling step within `fine_window` days of the window end
    - medium_period: sampling step within `medium_window` days of the window end
    - coarse_period: sampling step for the rest of the window
    """
    fine_period: int = 30
    medium_period: int = 90
    coarse_period: int = 180
    fine_window: int = 180
    medium_window: int = 360

    def __post_init__(self):
        for name in ("fine_period", "medium_period", "coarse_period"):
            v = getattr(self, name)
            if int(v) != v or v <= 0:
                raise ValueError(f"{name} must be a positive integer, got {v!r}")
        for name in ("fine_window", "medium_window"):
            v = getattr(self, name)
            if int(v) != v or v < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {v!r}")


DEFAULT_SAMPLING = SamplingConfig()


def barrier_observation_dates(
    refstart: pd.Timestamp,
    refend: pd.Timestamp,
    sampling: SamplingConfig = DEFAULT_SAMPLING,
) -> List[pd.Timestamp]:
    """
    Barrier observation dates on [refstart, refend], denser towards refend.

    Day i (serial) is kept when it sits on the fine grid inside the fine window, the
    medium grid inside the medium window, or the coarse grid anywhere. All grids share
    the residue of refend modulo the fine period, so refend itself is always kept.
    refstart is prepended when the grids miss it.
    """
    start = serial_number(refstart)
    end = serial_number(refend)
    if start > end:
        raise ValueError(f"refstart {refstart} after refend {refend}")

    basemod = end % sampling.fine_period
    days = np.arange(start, end + 1, dtype="int64")

    fine = (days >= end - sampling.fine_window) & (days % sampling.fine_period == basemod)
    medium = (days >= end - sampling.medium_window) & (days % sampling.medium_period == basemod)
    coarse = days % sampling.coarse_period == basemod

    selected = days[fine | medium | coarse]
    if selected.size == 0 or selected[0] != start:
        selected = np.concatenate(([start], selected))

    return serial_range_to_dates(selected)
