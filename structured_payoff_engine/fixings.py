from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np
import pandas as pd

from .utils import parse_float

LOGGER = logging.getLogger(__name__)


class HistoricalFixingStore(ABC):
    """
    Source of observed fixings, queried once per payoff at construction time.

    Implementations return an empty series when a variable has no data and raise
    only on genuine I/O failure. Retries belong to the implementation.
    """

    @abstractmethod
    def lookup(self, variable: str, start: pd.Timestamp, end: pd.Timestamp) -> pd.Series:
        """Observed fixings of `variable` on [start, end], ascending DatetimeIndex."""


def _empty_series(name: Optional[str] = None) -> pd.Series:
    return pd.Series([], index=pd.DatetimeIndex([]), dtype=float, name=name)


class InMemoryFixingStore(HistoricalFixingStore):
    """
    Fixing store backed by pandas objects already in memory.

    `data` is either a DataFrame (DatetimeIndex rows x variable columns) or a mapping
    variable -> Series indexed by date.
    """

    def __init__(self, data: Union[pd.DataFrame, Mapping[str, pd.Series], None] = None):
        self._series: Dict[str, pd.Series] = {}
        if data is None:
            return
        if isinstance(data, pd.DataFrame):
            items = [(str(c), data[c]) for c in data.columns]
        else:
            items = [(str(k), pd.Series(v)) for k, v in data.items()]

        for name, s in items:
            s = s.copy()
            s.index = pd.to_datetime(s.index).normalize()
            s = pd.to_numeric(s, errors="coerce").astype(float).dropna().sort_index()
            s.name = name
            self._series[name] = s

    @property
    def variables(self):
        return sorted(self._series)

    def lookup(self, variable: str, start: pd.Timestamp, end: pd.Timestamp) -> pd.Series:
        s = self._series.get(variable)
        if s is None:
            return _empty_series(variable)
        start = pd.Timestamp(start)
        end = pd.Timestamp(end)
        return s.loc[(s.index >= start) & (s.index <= end)]


@dataclass(frozen=True)
class FixingInformation:
    """
    Explicit fixing context handed to payoff factories.

    - tbd: value substituted for "tbd" placeholders in numeric fields
    - initial_fixings: variable -> initial fixing, substituted where a numeric field
      names the variable instead of giving a level
    - currency / payment_currency: carried for downstream cashflow components
    """
    tbd: Optional[float] = None
    initial_fixings: Mapping[str, float] = field(default_factory=dict)
    currency: Optional[str] = None
    payment_currency: Optional[str] = None

    def resolve(self, value: Any) -> float:
        """Numeric field value with placeholders replaced. Unresolved -> NaN."""
        if isinstance(value, str):
            token = value.strip()
            if token.lower() == "tbd":
                return parse_float(self.tbd)
            if token in self.initial_fixings:
                return parse_float(self.initial_fixings[token])
        return parse_float(value)


DEFAULT_FIXING_INFO = FixingInformation()


def knock_in_from_history(
    store: HistoricalFixingStore,
    variable: str,
    trigger: float,
    start: pd.Timestamp,
    end: pd.Timestamp,
) -> bool:
    """True if any fixing of `variable` on [start, end] is at or below `trigger`."""
    hist = store.lookup(variable, start, end)
    if hist is None or len(hist) == 0:
        return False
    values = np.asarray(hist, dtype=float)
    hit = bool(np.any(values <= trigger))
    if hit:
        LOGGER.debug("%s knocked in on history %s..%s (trigger %s)", variable, start.date(), end.date(), trigger)
    return hit
