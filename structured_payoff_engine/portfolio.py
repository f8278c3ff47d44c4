from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from .evaluator import MAPPING, classify_fixings, evaluate
from .fixings import FixingInformation, HistoricalFixingStore
from .payoffs import Payoff, payoff_from_json
from .schedule import DEFAULT_SAMPLING, CalculationPeriod, SamplingConfig
from .utils import is_finite_number

LOGGER = logging.getLogger(__name__)

Book = Mapping[str, Payoff]


def build_payoffs(
    records: Union[pd.DataFrame, Mapping[str, Any]],
    store: Optional[HistoricalFixingStore] = None,
    fixing_info: Optional[FixingInformation] = None,
    default_type: str = "putdiamerican",
) -> Dict[str, Payoff]:
    """
    payoff_id -> payoff from either a mapping of id -> formula or a DataFrame with
    `payoff_id` and `formula` columns.

    Malformed formulas become unpriceable payoffs of `default_type`. Fixing store
    failures propagate.
    """
    if isinstance(records, pd.DataFrame):
        items = [(str(r["payoff_id"]), r["formula"]) for _, r in records.iterrows()]
    else:
        items = [(str(k), v) for k, v in records.items()]

    book: Dict[str, Payoff] = {}
    for payoff_id, formula in items:
        if payoff_id in book:
            raise ValueError(f"Duplicate payoff_id: {payoff_id}")
        book[payoff_id] = payoff_from_json(
            formula, store=store, fixing_info=fixing_info, default_type=default_type
        )
    return book


def fixings_for(payoff_id: str, fixings: Any, per_payoff: bool):
    if not per_payoff:
        return fixings
    if fixings is None:
        return None
    return fixings.get(payoff_id)


def payoff_qc_flags(payoff: Payoff, fixings: Any) -> List[str]:
    flags: List[str] = []

    if not payoff.is_priceable:
        flags.append("NOT_PRICEABLE")

    if fixings is None:
        flags.append("NO_FIXINGS")
        return flags

    shape, is_path, data = classify_fixings(fixings)
    if is_path and data is not None and len(data) == 0:
        flags.append("NO_FIXINGS")
        return flags
    if shape is None:
        flags.append("BAD_FIXING")
        return flags

    last = data[-1] if is_path else data
    if shape == MAPPING:
        missing = [v for v in payoff.variables if v not in last]
        if missing:
            flags.append("MISSING_VARIABLE")
        if any(v in last and not is_finite_number(last[v]) for v in payoff.variables):
            flags.append("BAD_FIXING")
    elif not is_finite_number(last):
        flags.append("BAD_FIXING")

    return flags


def price_payoffs(book: Book, fixings: Any, per_payoff: bool = False) -> pd.DataFrame:
    """
    Price every payoff in `book`. One row per payoff; failures stay on their own row.

    `fixings` is one observation/path shared by the whole book, or (per_payoff=True)
    a mapping payoff_id -> observation/path.
    """
    rows = []
    for payoff_id, payoff in book.items():
        try:
            fx = fixings_for(payoff_id, fixings, per_payoff)
            flags = payoff_qc_flags(payoff, fx)
            px = evaluate(payoff, fx)
        except Exception:
            LOGGER.exception("Pricing failed for %s", payoff_id)
            flags, px = ["ERROR"], np.nan

        if not is_finite_number(px) and not flags:
            flags.append("UNDEFINED")

        rows.append(
            (
                payoff_id,
                payoff.payoff_type,
                ",".join(payoff.variables),
                bool(getattr(payoff, "knocked_in", False)),
                payoff.is_priceable,
                float(px),
                "|".join(flags),
            )
        )

    return pd.DataFrame(
        rows,
        columns=["payoff_id", "type", "variables", "knocked_in", "priceable", "price", "flags"],
    )


def build_event_table(
    book: Book,
    period: CalculationPeriod,
    sampling: SamplingConfig = DEFAULT_SAMPLING,
) -> pd.DataFrame:
    rows = []
    for payoff_id, payoff in book.items():
        for d in payoff.event_dates(period, sampling):
            rows.append((payoff_id, pd.Timestamp(d)))

    return pd.DataFrame(rows, columns=["payoff_id", "event_date"])
