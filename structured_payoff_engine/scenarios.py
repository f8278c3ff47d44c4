from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from .evaluator import MAPPING, SCALAR, classify_fixings
from .portfolio import Book, fixings_for, price_payoffs
from .utils import is_number

LOGGER = logging.getLogger(__name__)

DEFAULT_SHOCKS: Dict[str, float] = {
    "SPOT_-50%": 0.5,
    "SPOT_-20%": 0.8,
    "SPOT_-10%": 0.9,
    "SPOT_+10%": 1.1,
}


def _shock_value(v: Any, factor: float) -> Any:
    return float(v) * factor if is_number(v) else v


def _shock_mapping(m: Mapping[str, Any], factor: float) -> Dict[str, Any]:
    return {k: _shock_value(v, factor) for k, v in m.items()}


def _shock_frame(df: pd.DataFrame, factor: float) -> pd.DataFrame:
    out = df.copy()
    numeric = out.select_dtypes(include="number").columns
    out[numeric] = out[numeric] * factor
    return out


def _shock_series(s: pd.Series, factor: float) -> pd.Series:
    if pd.api.types.is_numeric_dtype(s.dtype) and not pd.api.types.is_bool_dtype(s.dtype):
        return s * factor
    return s.map(lambda v: _shock_value(v, factor))


def shock_fixings(fixings: Any, factor: float, per_payoff: bool = False):
    """
    Multiply every numeric fixing value by `factor`, keeping the input's shape.
    Non-numeric entries (labels, sources) pass through untouched. pandas and numpy
    inputs stay pandas/numpy objects. Inputs are not modified.
    """
    if per_payoff:
        return {k: shock_fixings(v, factor) for k, v in fixings.items()}

    if isinstance(fixings, pd.DataFrame):
        return _shock_frame(fixings, factor)
    if isinstance(fixings, pd.Series):
        return _shock_series(fixings, factor)
    if isinstance(fixings, np.ndarray):
        if np.issubdtype(fixings.dtype, np.number):
            return fixings * factor
        return fixings.copy()

    shape, is_path, data = classify_fixings(fixings)
    if shape == SCALAR:
        return [x * factor for x in data] if is_path else data * factor
    if shape == MAPPING:
        return [_shock_mapping(m, factor) for m in data] if is_path else _shock_mapping(data, factor)
    return fixings


def shock_book_fixings(book: Book, fixings: Any, factor: float, per_payoff: bool = False) -> Dict[str, Any]:
    """
    payoff_id -> shocked fixings. A payoff whose fixings cannot be shocked gets None
    (priced as undefined) without affecting the others.
    """
    out: Dict[str, Any] = {}
    shared = None
    shared_failed = False
    if not per_payoff:
        try:
            shared = shock_fixings(fixings, factor)
        except Exception:
            LOGGER.exception("Fixing shock %s failed for the shared fixings", factor)
            shared_failed = True

    for payoff_id in book:
        if not per_payoff:
            out[payoff_id] = None if shared_failed else shared
            continue
        try:
            out[payoff_id] = shock_fixings(fixings_for(payoff_id, fixings, per_payoff), factor)
        except Exception:
            LOGGER.exception("Fixing shock %s failed for %s", factor, payoff_id)
            out[payoff_id] = None
    return out


def run_fixing_scenarios(
    book: Book,
    fixings: Any,
    shocks: Optional[Mapping[str, float]] = None,
    per_payoff: bool = False,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Reprice the book under multiplicative fixing shocks.

    Returns (per_payoff, summary): per_payoff has the base price, one price column per
    scenario and a `<scenario>_PnL` column each; summary totals the PnL per scenario
    (undefined prices are skipped).
    """
    if shocks is None:
        shocks = DEFAULT_SHOCKS

    base = price_payoffs(book, fixings, per_payoff)[["payoff_id", "price"]].rename(columns={"price": "base"})

    per_id = base.copy()
    for name, factor in shocks.items():
        shocked = shock_book_fixings(book, fixings, factor, per_payoff)
        px = price_payoffs(book, shocked, per_payoff=True)[["payoff_id", "price"]].rename(columns={"price": name})
        per_id = per_id.merge(px, on="payoff_id", how="left")
        per_id[name + "_PnL"] = per_id[name] - per_id["base"]

    pnl_cols = [c for c in per_id.columns if c.endswith("_PnL")]
    summary = pd.DataFrame({"scenario": pnl_cols, "total_pnl": [per_id[c].sum() for c in pnl_cols]})

    return per_id, summary
