"""
Structured Payoff Engine

Production-style modules:
- payoffs: declarative payoff specifications, JSON factory + serialization, type registry
- schedule: barrier observation schedules + calculation periods
- interpreters: knock-in / pricing logic for scalar and multi-asset fixings
- evaluator: shape dispatch from raw fixings to interpreters
- fixings: historical fixing store contract + fixing context
- portfolio: batch construction, batch pricing with QC flags, event tables
- scenarios: fixing shock scenario runners
- utils: serial dates, tolerant parsers, display helpers
"""
from .evaluator import evaluate, is_knock_in
from .fixings import FixingInformation, HistoricalFixingStore, InMemoryFixingStore
from .payoffs import Payoff, PutDIAmericanPayoff, payoff_from_json
from .schedule import CalculationPeriod, SamplingConfig
from .utils import UNDEFINED, is_undefined

__all__ = [
    "evaluate",
    "is_knock_in",
    "FixingInformation",
    "HistoricalFixingStore",
    "InMemoryFixingStore",
    "Payoff",
    "PutDIAmericanPayoff",
    "payoff_from_json",
    "CalculationPeriod",
    "SamplingConfig",
    "UNDEFINED",
    "is_undefined",
]
