from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union

import pandas as pd

from .evaluator import evaluate
from .fixings import (
    DEFAULT_FIXING_INFO,
    FixingInformation,
    HistoricalFixingStore,
    knock_in_from_history,
)
from .interpreters import MappingInterpreter, ScalarInterpreter
from .schedule import DEFAULT_SAMPLING, CalculationPeriod, SamplingConfig, barrier_observation_dates
from .utils import (
    as_double,
    as_list,
    as_percent,
    format_date,
    is_finite_number,
    json_number,
    parse_date,
    parse_float,
    parse_string,
)

LOGGER = logging.getLogger(__name__)

Formula = Union[str, Mapping[str, Any]]

PAYOFF_TYPES: Dict[str, Type["Payoff"]] = {}


def register_payoff(name: str):
    def deco(cls):
        cls.payoff_type = name
        PAYOFF_TYPES[name] = cls
        return cls
    return deco


def load_formula(formula: Formula) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Formula text/mapping -> (fields, original text). Invalid JSON gives no fields.
    """
    if isinstance(formula, Mapping):
        return dict(formula), None
    if not isinstance(formula, str):
        LOGGER.warning("Unsupported formula type %s", type(formula).__name__)
        return {}, None
    try:
        parsed = json.loads(formula)
    except ValueError:
        LOGGER.warning("Unparseable payoff formula: %r", formula)
        return {}, formula
    if not isinstance(parsed, dict):
        LOGGER.warning("Payoff formula is not a JSON object: %r", formula)
        return {}, formula
    return parsed, formula


class Payoff(ABC):
    """
    Common surface of declaratively specified payoffs.

    Subclasses bind their interpreters through `scalar_interpreter` and
    `mapping_interpreter`; evaluation dispatch lives in `evaluator.evaluate`.
    """
    payoff_type: str = ""
    scalar_interpreter = None
    mapping_interpreter = None

    @property
    @abstractmethod
    def variables(self) -> Tuple[str, ...]:
        ...

    @property
    @abstractmethod
    def is_priceable(self) -> bool:
        ...

    @abstractmethod
    def event_dates(self, period: CalculationPeriod, sampling: SamplingConfig = DEFAULT_SAMPLING) -> List[pd.Timestamp]:
        ...

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        ...

    def json_string(self) -> str:
        return json.dumps(self.to_dict())

    def price(self, fixings=None) -> float:
        return evaluate(self, fixings)


@register_payoff("putdiamerican")
@dataclass(frozen=True)
class PutDIAmericanPayoff(Payoff):
    """
    Down-and-in American put on the worst of `put_variables`.

    Knocked in (history or observed fixing <= trigger): pays
    amount * min(1, min_v fixing_v / strike_v). Otherwise pays amount.
    """
    put_variables: Tuple[Optional[str], ...]
    trigger: Tuple[float, ...]
    strike: Tuple[float, ...]
    refstart: Optional[pd.Timestamp]
    refend: Optional[pd.Timestamp]
    knocked_in: bool = False
    amount: float = 1.0
    description: Optional[str] = None
    input_string: Optional[str] = field(default=None, compare=False, repr=False)
    fixing_info: FixingInformation = field(default=DEFAULT_FIXING_INFO, compare=False, repr=False)

    trigger_map: Dict[str, float] = field(init=False, compare=False, repr=False)
    strike_map: Dict[str, float] = field(init=False, compare=False, repr=False)

    scalar_interpreter = ScalarInterpreter
    mapping_interpreter = MappingInterpreter

    def __post_init__(self):
        object.__setattr__(self, "put_variables", tuple(parse_string(v) for v in as_list(self.put_variables)))
        object.__setattr__(self, "trigger", tuple(parse_float(x) for x in as_list(self.trigger)))
        object.__setattr__(self, "strike", tuple(parse_float(x) for x in as_list(self.strike)))
        object.__setattr__(self, "refstart", parse_date(self.refstart))
        object.__setattr__(self, "refend", parse_date(self.refend))
        object.__setattr__(self, "knocked_in", bool(self.knocked_in))
        object.__setattr__(self, "amount", parse_float(self.amount))
        object.__setattr__(self, "trigger_map", dict(zip(self.put_variables, self.trigger)))
        object.__setattr__(self, "strike_map", dict(zip(self.put_variables, self.strike)))

    @property
    def variables(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(v for v in self.put_variables if v is not None))

    @property
    def is_priceable(self) -> bool:
        n = len(self.put_variables)
        if n == 0 or len(self.trigger) != n or len(self.strike) != n:
            return False
        if any(v is None for v in self.put_variables):
            return False
        if not all(is_finite_number(x) for x in self.trigger + self.strike):
            return False
        if not is_finite_number(self.amount):
            return False
        if self.refstart is None or self.refend is None:
            return False
        return self.refstart <= self.refend

    def event_dates(self, period: CalculationPeriod, sampling: SamplingConfig = DEFAULT_SAMPLING) -> List[pd.Timestamp]:
        if not self.is_priceable:
            return [pd.Timestamp(period.end_date)]
        return barrier_observation_dates(self.refstart, self.refend, sampling)

    @classmethod
    def from_json(
        cls,
        formula: Formula,
        store: Optional[HistoricalFixingStore] = None,
        fixing_info: Optional[FixingInformation] = None,
    ) -> "PutDIAmericanPayoff":
        """
        Build from the JSON schema
        {type, variable, trigger, strike, refstart, refend, amount, description}.

        Bad fields become NaN/None and leave the payoff unpriceable. Knock-in is
        resolved against `store` over [refstart, refend]; store errors propagate.
        """
        info = fixing_info if fixing_info is not None else DEFAULT_FIXING_INFO
        fields_, text = load_formula(formula)

        variables = [parse_string(v) for v in as_list(fields_.get("variable"))]
        trigger = [info.resolve(x) for x in as_list(fields_.get("trigger"))]
        strike = [info.resolve(x) for x in as_list(fields_.get("strike"))]
        amount = info.resolve(fields_["amount"]) if fields_.get("amount") is not None else 1.0
        refstart = parse_date(fields_.get("refstart"))
        refend = parse_date(fields_.get("refend"))
        description = parse_string(fields_.get("description"))

        knocked_in = False
        if refstart is not None and refend is not None:
            if store is None:
                LOGGER.debug("No fixing store supplied; knock-in for %s left to live fixings", variables)
            else:
                knocked_in = any(
                    knock_in_from_history(store, v, trig, refstart, refend)
                    for v, trig in zip(variables, trigger)
                    if v is not None
                )

        return cls(
            put_variables=tuple(variables),
            trigger=tuple(trigger),
            strike=tuple(strike),
            refstart=refstart,
            refend=refend,
            knocked_in=knocked_in,
            amount=amount,
            description=description,
            input_string=text if text is not None else json.dumps(fields_, default=str),
            fixing_info=info,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.payoff_type,
            "variable": list(self.put_variables),
            "trigger": [json_number(x) for x in self.trigger],
            "strike": [json_number(x) for x in self.strike],
            "refstart": format_date(self.refstart),
            "refend": format_date(self.refend),
            "amount": json_number(self.amount),
            "description": self.description,
        }

    def __str__(self) -> str:
        triggers = ",".join(as_double(x) for x in self.trigger)
        strikes = ",".join(as_double(x) for x in self.strike)
        names = ",".join(self.variables)
        pct = as_percent(self.amount)
        return f"{pct} [{triggers}](Amer) {pct} x Min([{names}] / [{strikes}])"


def payoff_from_json(
    formula: Formula,
    store: Optional[HistoricalFixingStore] = None,
    fixing_info: Optional[FixingInformation] = None,
    default_type: Optional[str] = None,
) -> Payoff:
    """
    Build any registered payoff; the class is chosen by the formula's `type`,
    falling back to `default_type` when the formula names none.
    """
    fields_, _ = load_formula(formula)
    kind = fields_.get("type") or default_type
    cls = PAYOFF_TYPES.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise ValueError(f"Unknown payoff type: {kind!r}")
    return cls.from_json(formula, store=store, fixing_info=fixing_info)

