import math

import numpy as np
import pandas as pd
import pytest

from structured_payoff_engine import UNDEFINED, evaluate, is_knock_in, is_undefined
from structured_payoff_engine.evaluator import MAPPING, SCALAR, classify_fixings
from structured_payoff_engine.payoffs import PutDIAmericanPayoff


@pytest.fixture(scope="module")
def single():
    return PutDIAmericanPayoff(
        put_variables=("A",),
        trigger=(80.0,),
        strike=(100.0,),
        refstart=pd.Timestamp("2020-01-01"),
        refend=pd.Timestamp("2020-06-01"),
    )


@pytest.fixture(scope="module")
def basket():
    return PutDIAmericanPayoff(
        put_variables=("A", "B"),
        trigger=(80.0, 40.0),
        strike=(100.0, 50.0),
        refstart=pd.Timestamp("2020-01-01"),
        refend=pd.Timestamp("2020-06-01"),
        knocked_in=True,
    )


def test_sentinel_is_nan_not_zero():
    assert math.isnan(UNDEFINED)
    assert is_undefined(UNDEFINED)
    assert is_undefined(None)
    assert not is_undefined(0.0)


def test_no_fixings_is_undefined(single):
    assert math.isnan(evaluate(single))
    assert math.isnan(single.price())
    assert math.isnan(evaluate(single, []))


def test_classification():
    assert classify_fixings(1.5) == (SCALAR, False, 1.5)
    assert classify_fixings({"A": 1.0})[:2] == (MAPPING, False)
    assert classify_fixings([1.0, 2.0])[:2] == (SCALAR, True)
    assert classify_fixings([{"A": 1.0}])[:2] == (MAPPING, True)
    assert classify_fixings([1.0, {"A": 1.0}])[0] is None
    assert classify_fixings("90")[0] is None
    assert classify_fixings(True)[0] is None


def test_scalar_shapes(single):
    assert evaluate(single, 50.0) == pytest.approx(0.5)
    assert evaluate(single, 50) == pytest.approx(0.5)
    assert evaluate(single, np.float64(90.0)) == 1.0
    assert evaluate(single, [100.0, 75.0, 90.0]) == pytest.approx(0.9)
    assert evaluate(single, np.array([100.0, 75.0, 90.0])) == pytest.approx(0.9)


def test_time_series_is_a_path(single):
    s = pd.Series([100.0, 75.0, 92.0], index=pd.date_range("2020-05-01", periods=3, freq="D"))
    assert evaluate(single, s) == pytest.approx(0.92)
    assert is_knock_in(single, s)


def test_mapping_shapes(basket):
    assert evaluate(basket, {"A": 120.0, "B": 30.0}) == pytest.approx(0.6)
    snapshot = pd.Series({"A": 120.0, "B": 30.0})
    assert evaluate(basket, snapshot) == pytest.approx(0.6)
    path = [{"A": 100.0, "B": 45.0}, {"A": 120.0, "B": 30.0}]
    assert evaluate(basket, path) == pytest.approx(0.6)


def test_frame_is_a_mapping_path(single):
    frame = pd.DataFrame(
        {"A": [100.0, 79.0, 85.0], "B": [1.0, 2.0, 3.0]},
        index=pd.date_range("2020-05-01", periods=3, freq="D"),
    )
    assert evaluate(single, frame) == pytest.approx(0.85)
    assert is_knock_in(single, frame)
    assert not is_knock_in(single, frame.iloc[[0, 2]])


def test_scalar_on_basket_is_undefined(basket):
    assert math.isnan(evaluate(basket, 90.0))
    assert math.isnan(evaluate(basket, [90.0, 95.0]))


def test_bad_shapes_are_undefined(single):
    assert math.isnan(evaluate(single, "90"))
    assert math.isnan(evaluate(single, [1.0, {"A": 1.0}]))
    assert math.isnan(evaluate(single, np.array([[1.0, 2.0]])))
    assert math.isnan(evaluate(single, {"A": "ninety"}))
    assert not is_knock_in(single, None)


def test_inputs_not_mutated(basket):
    fixings = [{"A": 100.0, "B": 45.0}, {"A": 120.0, "B": 30.0}]
    before = [dict(f) for f in fixings]
    evaluate(basket, fixings)
    assert fixings == before
