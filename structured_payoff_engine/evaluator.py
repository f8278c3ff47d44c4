"""
Evaluation entry point: route a fixing of any supported shape to the right interpreter.

Shapes
- None                                   -> NaN (nothing observed yet)
- real number                            -> scalar interpreter, single fixing
- mapping / Series without DatetimeIndex -> mapping interpreter, single snapshot
- Series with DatetimeIndex, 1-d ndarray,
  sequence of numbers                    -> scalar interpreter, path
- DataFrame, sequence of mappings        -> mapping interpreter, path
Anything else (including empty or mixed paths) prices to NaN.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, List, Optional, Tuple

import numpy as np
import pandas as pd

from .utils import UNDEFINED, is_number

SCALAR = "scalar"
MAPPING = "mapping"


def _as_scalar_path(values) -> List[float]:
    return [float(x) for x in np.asarray(values, dtype=float).ravel()]


def _frame_rows(df: pd.DataFrame) -> List[dict]:
    return [{str(k): v for k, v in row.items()} for _, row in df.iterrows()]


def classify_fixings(fixings: Any) -> Tuple[Optional[str], bool, Any]:
    """
    (shape, is_path, normalized fixings). shape is None when the input cannot be
    interpreted.
    """
    if fixings is None:
        return None, False, None

    if is_number(fixings):
        return SCALAR, False, float(fixings)

    if isinstance(fixings, pd.DataFrame):
        return MAPPING, True, _frame_rows(fixings)

    if isinstance(fixings, pd.Series):
        if isinstance(fixings.index, pd.DatetimeIndex):
            return SCALAR, True, _as_scalar_path(pd.to_numeric(fixings, errors="coerce"))
        return MAPPING, False, {str(k): v for k, v in fixings.items()}

    if isinstance(fixings, Mapping):
        return MAPPING, False, fixings

    if isinstance(fixings, np.ndarray):
        if fixings.ndim != 1 or not np.issubdtype(fixings.dtype, np.number):
            return None, True, None
        return SCALAR, True, _as_scalar_path(fixings)

    if isinstance(fixings, Sequence) and not isinstance(fixings, (str, bytes)):
        items = list(fixings)
        if not items:
            return None, True, items
        if all(is_number(x) for x in items):
            return SCALAR, True, [float(x) for x in items]
        if all(isinstance(x, Mapping) for x in items):
            return MAPPING, True, items
        return None, True, None

    return None, False, None


def evaluate(payoff, fixings: Any = None) -> float:
    """
    Price `payoff` against `fixings`. Returns NaN when the payoff or the data cannot
    be priced; never raises on bad market data.
    """
    shape, is_path, data = classify_fixings(fixings)
    if shape is None:
        return UNDEFINED

    interpreter_cls = payoff.scalar_interpreter if shape == SCALAR else payoff.mapping_interpreter
    if interpreter_cls is None:
        return UNDEFINED
    interpreter = interpreter_cls(payoff)

    if is_path:
        return interpreter.price_path(data)
    return interpreter.price(data)


def is_knock_in(payoff, fixings: Any) -> bool:
    """Whether `fixings` (single or path) breach the payoff's barrier."""
    shape, is_path, data = classify_fixings(fixings)
    if shape is None:
        return False
    interpreter_cls = payoff.scalar_interpreter if shape == SCALAR else payoff.mapping_interpreter
    if interpreter_cls is None:
        return False
    interpreter = interpreter_cls(payoff)
    return interpreter.is_knock_in_path(data) if is_path else interpreter.is_knock_in(data)
