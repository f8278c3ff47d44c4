"""
Fixing interpreters: one knock-in/pricing algorithm, two fixing shapes.

A fixing is either a single float (single-underlying payoffs) or a mapping
variable -> float (any payoff). Paths are sequences of either. Every undefined
result is NaN; nothing here raises on bad market data.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Mapping, Optional, Sequence, TypeVar

import numpy as np

from .utils import UNDEFINED, is_finite_number, is_number

T = TypeVar("T")


def performance(fixing: float, strike: float) -> float:
    """fixing / strike with IEEE semantics for a zero strike."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(fixing) / np.float64(strike))


def _capped(amount: float, ratios) -> float:
    ratios = np.asarray(ratios, dtype=float)
    if np.isnan(ratios).any():
        return UNDEFINED
    return amount * min(1.0, float(ratios.min()))


class FixingInterpreter(ABC, Generic[T]):
    def __init__(self, payoff):
        self.payoff = payoff

    @abstractmethod
    def is_knock_in(self, fixing: T) -> bool:
        ...

    @abstractmethod
    def price_given(self, fixing: T, knocked_in: bool) -> float:
        """Price of `fixing` under an assumed knock-in state."""

    def is_knock_in_path(self, path: Sequence[T]) -> bool:
        return any(self.is_knock_in(f) for f in path)

    def price(self, fixing: T, knocked_in: Optional[bool] = None) -> float:
        """
        Price a single observation. Without an explicit `knocked_in` the state is the
        payoff's resolved history or a breach observed in `fixing`.
        """
        if knocked_in is None:
            knocked_in = bool(self.payoff.knocked_in) or self.is_knock_in(fixing)
        return self.price_given(fixing, knocked_in)

    def price_path(self, path: Sequence[T]) -> float:
        if len(path) == 0:
            return UNDEFINED
        knocked_in = bool(self.payoff.knocked_in) or self.is_knock_in_path(path)
        return self.price_given(path[-1], knocked_in)


class ScalarInterpreter(FixingInterpreter[float]):
    """Single-underlying fixings."""

    def is_knock_in(self, fixing: float) -> bool:
        triggers = self.payoff.trigger
        if len(triggers) == 0 or not is_number(fixing):
            return False
        return float(fixing) <= triggers[0]

    def price_given(self, fixing: float, knocked_in: bool) -> float:
        p = self.payoff
        if not is_finite_number(fixing) or len(p.variables) != 1 or not p.is_priceable:
            return UNDEFINED
        if knocked_in:
            return _capped(p.amount, [performance(fixing, p.strike[0])])
        return p.amount


class MappingInterpreter(FixingInterpreter[Mapping[str, float]]):
    """Multi-asset snapshots keyed by variable; worst performer drives the payout."""

    def is_knock_in(self, fixing: Mapping[str, float]) -> bool:
        triggers = self.payoff.trigger_map
        for v in self.payoff.variables:
            x = fixing.get(v)
            if is_number(x) and float(x) <= triggers.get(v, UNDEFINED):
                return True
        return False

    def price_given(self, fixing: Mapping[str, float], knocked_in: bool) -> float:
        p = self.payoff
        if not p.is_priceable:
            return UNDEFINED
        if any(v not in fixing or not is_finite_number(fixing[v]) for v in p.variables):
            return UNDEFINED
        if knocked_in:
            return _capped(p.amount, [performance(fixing[v], p.strike_map[v]) for v in p.variables])
        return p.amount
