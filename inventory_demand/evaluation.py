# inventory_demand/evaluation.py
# ------------------------------
# Responsibility:
# - Accuracy metrics calculation (MAE, RMSE, MAPE)
# - Accuracy percentage derived from MAPE
# - Single-point metrics used when a prediction is reconciled

import numpy as np
from typing import Dict, Sequence


def calculate_basic_metrics(actual: Sequence[float], predicted: Sequence[float]) -> Dict[str, float]:
    """
    Calculate basic forecast accuracy metrics.

    MAPE skips terms whose actual is zero but still divides by the full
    number of points, so zero actuals pull MAPE down.

    Args:
        actual: Actual values
        predicted: Predicted values

    Returns:
        dict: Dictionary of metrics (MAE, RMSE, MAPE)

    Raises:
        ValueError: If the sequences differ in length or are empty
    """
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)

    if len(actual) != len(predicted):
        raise ValueError("Actual and predicted series must have same length")

    if len(actual) == 0:
        raise ValueError("Cannot calculate metrics over an empty series")

    errors = predicted - actual

    # Mean Absolute Error
    mae = np.mean(np.abs(errors))

    # Root Mean Square Error
    rmse = np.sqrt(np.mean(errors ** 2))

    # Mean Absolute Percentage Error (zero actuals add nothing to the sum)
    non_zero_mask = actual != 0
    ape_sum = np.sum(np.abs(errors[non_zero_mask] / actual[non_zero_mask]))
    mape = ape_sum * 100 / len(actual)

    return {
        "mae": float(mae),
        "rmse": float(rmse),
        "mape": float(mape)
    }


def calculate_accuracy(mape: float) -> float:
    """Accuracy percentage as 100 - MAPE. Not clamped; may be negative."""
    return 100 - mape


def reconciliation_metrics(predicted_quantity: int, actual_quantity: int) -> Dict[str, float]:
    """
    Metrics for a single reconciled prediction.

    Returns:
        dict: mae, rmse, mape and accuracy
    """
    metrics = calculate_basic_metrics([actual_quantity], [predicted_quantity])
    metrics["accuracy"] = calculate_accuracy(metrics["mape"])
    return metrics


def interpret_accuracy(score: float) -> str:
    """Interpret accuracy score for business users."""
    if score >= 90:
        return "Excellent - Highly reliable forecast"
    elif score >= 80:
        return "Good - Reliable for planning"
    elif score >= 70:
        return "Moderate - Use with caution"
    elif score >= 60:
        return "Fair - Consider additional factors"
    else:
        return "Low - Significant uncertainty"
