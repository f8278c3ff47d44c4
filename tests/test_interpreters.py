import math

import numpy as np
import pandas as pd
import pytest

from structured_payoff_engine.interpreters import MappingInterpreter, ScalarInterpreter
from structured_payoff_engine.payoffs import PutDIAmericanPayoff


def make_payoff(variables, triggers, strikes, knocked_in=False, amount=1.0):
    return PutDIAmericanPayoff(
        put_variables=tuple(variables),
        trigger=tuple(triggers),
        strike=tuple(strikes),
        refstart=pd.Timestamp("2020-01-01"),
        refend=pd.Timestamp("2020-06-01"),
        knocked_in=knocked_in,
        amount=amount,
    )


@pytest.fixture(scope="module")
def single():
    return make_payoff(["A"], [80.0], [100.0])


@pytest.fixture(scope="module")
def basket():
    return make_payoff(["A", "B"], [80.0, 40.0], [100.0, 50.0], knocked_in=True)


def test_scalar_knock_in_is_inclusive(single):
    interp = ScalarInterpreter(single)
    assert interp.is_knock_in(80.0)
    assert interp.is_knock_in(79.99)
    assert not interp.is_knock_in(80.01)
    assert not interp.is_knock_in(float("nan"))


def test_scalar_price(single):
    interp = ScalarInterpreter(single)
    assert interp.price_given(90.0, True) == pytest.approx(0.9)
    assert interp.price_given(90.0, False) == 1.0
    assert interp.price_given(120.0, True) == 1.0, "payout floored at full notional"
    assert math.isnan(interp.price_given(float("nan"), True))
    assert math.isnan(interp.price_given(float("inf"), False))


def test_scalar_price_scaled_by_amount():
    interp = ScalarInterpreter(make_payoff(["A"], [80.0], [100.0], amount=0.5))
    assert interp.price_given(60.0, True) == pytest.approx(0.3)
    assert interp.price_given(60.0, False) == 0.5


def test_scalar_undefined_for_baskets(basket):
    interp = ScalarInterpreter(basket)
    for x in (10.0, 50.0, 90.0, 200.0):
        assert math.isnan(interp.price_given(x, True))
        assert math.isnan(interp.price_given(x, False))


def test_knocked_in_never_exceeds_notional(single):
    interp = ScalarInterpreter(single)
    for x in np.linspace(1.0, 150.0, 60):
        assert interp.price_given(x, True) <= interp.price_given(x, False) + 1e-15


def test_knocked_in_price_monotone_until_notional(single):
    interp = ScalarInterpreter(single)
    prices = np.array([interp.price_given(x, True) for x in np.linspace(1.0, 150.0, 60)])
    assert np.all(np.diff(prices) >= 0.0)
    assert prices[-1] == 1.0


def test_scalar_path(single):
    interp = ScalarInterpreter(single)
    assert interp.is_knock_in_path([100.0, 79.0, 95.0])
    assert not interp.is_knock_in_path([100.0, 90.0, 95.0])
    assert interp.price_path([100.0, 79.0, 95.0]) == pytest.approx(0.95), "priced on last fixing"
    assert interp.price_path([100.0, 90.0, 95.0]) == 1.0
    assert math.isnan(interp.price_path([]))


def test_stored_knock_in_applies_without_live_breach():
    interp = ScalarInterpreter(make_payoff(["A"], [80.0], [100.0], knocked_in=True))
    assert interp.price(90.0) == pytest.approx(0.9)
    assert interp.price_path([100.0, 95.0]) == pytest.approx(0.95)
    assert interp.price(90.0, knocked_in=False) == 1.0, "explicit state wins"


def test_mapping_knock_in_ignores_absent_variables(basket):
    interp = MappingInterpreter(basket)
    assert not interp.is_knock_in({"A": 85.0})
    assert interp.is_knock_in({"B": 40.0})
    assert interp.is_knock_in({"A": 120.0, "B": 30.0})
    assert not interp.is_knock_in({})
    assert not interp.is_knock_in({"C": 1.0})


def test_mapping_worst_of(basket):
    interp = MappingInterpreter(basket)
    assert interp.price_given({"A": 120.0, "B": 30.0}, True) == pytest.approx(0.6)
    assert interp.price_given({"A": 120.0, "B": 30.0}, False) == 1.0
    assert interp.price_given({"A": 120.0, "B": 60.0}, True) == 1.0


def test_mapping_requires_all_variables(basket):
    interp = MappingInterpreter(basket)
    assert math.isnan(interp.price_given({"A": 90.0}, True))
    assert math.isnan(interp.price_given({"A": 90.0, "B": float("nan")}, True))
    assert interp.price_given({"A": 90.0, "B": 45.0, "C": 1.0}, True) == pytest.approx(0.9), "extra keys are fine"


def test_mapping_path(basket):
    interp = MappingInterpreter(basket)
    path = [{"A": 100.0, "B": 50.0}, {"A": 70.0}, {"A": 95.0, "B": 49.0}]
    assert interp.is_knock_in_path(path)
    assert interp.price_path(path) == pytest.approx(0.95)
    assert math.isnan(interp.price_path(path[:2])), "last observation misses B"


def test_mapping_on_single_name(single):
    interp = MappingInterpreter(single)
    assert interp.price({"A": 50.0}) == pytest.approx(0.5)
    assert interp.price({"A": 90.0}) == 1.0


def test_unpriceable_never_prices():
    broken = make_payoff(["A"], [80.0, 70.0], [100.0])
    assert math.isnan(ScalarInterpreter(broken).price_given(90.0, True))
    assert math.isnan(MappingInterpreter(broken).price_given({"A": 90.0}, False))


def test_zero_strike_does_not_raise():
    interp = ScalarInterpreter(make_payoff(["A"], [80.0], [0.0]))
    assert interp.price_given(50.0, True) == 1.0, "50 / 0 is +inf, capped at notional"
    assert math.isnan(interp.price_given(0.0, True))
