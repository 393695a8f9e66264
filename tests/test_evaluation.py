import math

import pytest

from inventory_demand.evaluation import (
    calculate_accuracy,
    calculate_basic_metrics,
    interpret_accuracy,
    reconciliation_metrics,
)


def test_basic_metrics():
    metrics = calculate_basic_metrics([10, 20], [12, 18])

    assert metrics["mae"] == pytest.approx(2.0)
    assert metrics["rmse"] == pytest.approx(2.0)
    assert metrics["mape"] == pytest.approx(15.0)


def test_rmse_weights_large_errors():
    metrics = calculate_basic_metrics([10, 10], [10, 14])

    assert metrics["mae"] == pytest.approx(2.0)
    assert metrics["rmse"] == pytest.approx(math.sqrt(8))


def test_zero_actuals_skipped_but_counted():
    # only the second point contributes to the sum; the divisor stays 2
    metrics = calculate_basic_metrics([0, 10], [5, 5])

    assert metrics["mape"] == pytest.approx(25.0)
    assert metrics["mae"] == pytest.approx(5.0)


def test_all_zero_actuals_give_zero_mape():
    assert calculate_basic_metrics([0, 0], [3, 4])["mape"] == 0.0


def test_length_mismatch_rejected():
    with pytest.raises(ValueError):
        calculate_basic_metrics([1, 2, 3], [1, 2])


def test_empty_series_rejected():
    with pytest.raises(ValueError):
        calculate_basic_metrics([], [])


def test_accuracy_is_not_clamped():
    assert calculate_accuracy(15.0) == 85.0
    assert calculate_accuracy(250.0) == -150.0


def test_reconciliation_metrics_single_point():
    metrics = reconciliation_metrics(predicted_quantity=5, actual_quantity=8)

    assert metrics == pytest.approx({
        "mae": 3.0,
        "rmse": 3.0,
        "mape": 37.5,
        "accuracy": 62.5,
    })


def test_reconciliation_with_zero_actual():
    metrics = reconciliation_metrics(predicted_quantity=4, actual_quantity=0)

    assert metrics["mae"] == 4.0
    assert metrics["mape"] == 0.0
    assert metrics["accuracy"] == 100.0


@pytest.mark.parametrize("score, prefix", [
    (95, "Excellent"),
    (90, "Excellent"),
    (85, "Good"),
    (72, "Moderate"),
    (60, "Fair"),
    (-12.5, "Low"),
])
def test_interpret_accuracy(score, prefix):
    assert interpret_accuracy(score).startswith(prefix)
