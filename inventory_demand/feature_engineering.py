# inventory_demand/feature_engineering.py
# ---------------------------------------
# Responsibility:
# - Order sales history chronologically
# - Turn sales records into fixed-width numeric feature vectors
#   (temporal, holiday, lag and category features)
# - Align feature rows with training labels

from datetime import datetime
from typing import Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import CATEGORIES, HOLIDAYS
from .exceptions import UnknownCategoryError
from .schemas import Category, SalesRecord

# Number of preceding records used as lag features. The first LAG_WINDOW
# records of a history only serve as lag inputs and never become labels.
LAG_WINDOW = 3

LAG_COLUMNS = [f"lag_{k}" for k in range(1, LAG_WINDOW + 1)]

FEATURE_COLUMNS = ["month", "day_of_week", "is_holiday", *LAG_COLUMNS, "category"]


def sort_sales_history(records: Iterable[SalesRecord]) -> List[SalesRecord]:
    """
    Sort sales records by date (ties broken by id).

    Collaborators return history in arbitrary order; the extractor relies on
    array position for lag features, so every caller sorts first.
    """
    return sorted(records, key=lambda r: (r.date, r.id))


def is_holiday(date: datetime) -> int:
    """Return 1 if the date is on the placeholder holiday calendar, else 0."""
    return 1 if (date.month, date.day) in HOLIDAYS else 0


def category_index(category) -> float:
    """
    Encode a category as its position in the category list, scaled to [0, 1].

    Raises:
        UnknownCategoryError: If the category is not in the list
    """
    label = category.value if isinstance(category, Category) else category
    if label not in CATEGORIES:
        raise UnknownCategoryError(category)
    return CATEGORIES.index(label) / (len(CATEGORIES) - 1)


def build_feature_frame(records: Sequence[SalesRecord], category) -> pd.DataFrame:
    """
    Build one feature row per sales record.

    Args:
        records: Sales records already ordered by date
        category: Category label or Category member

    Returns:
        pd.DataFrame: FEATURE_COLUMNS, one row per input record

    Raises:
        UnknownCategoryError: If the category is not in the list
    """
    category_value = category_index(category)

    dates = [r.date for r in records]
    quantities = pd.Series([r.quantity for r in records], dtype=float)

    frame = pd.DataFrame({
        "month": [(d.month - 1) / 11 for d in dates],
        # Sunday = 0 ... Saturday = 6
        "day_of_week": [(d.isoweekday() % 7) / 6 for d in dates],
        "is_holiday": [is_holiday(d) for d in dates],
    }, dtype=float)

    # Lags are by position in the sequence, zero-filled at the start
    for k, column in enumerate(LAG_COLUMNS, start=1):
        frame[column] = quantities.shift(k, fill_value=0.0).to_numpy()

    frame["category"] = category_value

    return frame[FEATURE_COLUMNS]


def build_training_set(
    records: Sequence[SalesRecord],
    category
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build aligned (features, labels) arrays.

    Labels are the quantities from the (LAG_WINDOW + 1)th record onward;
    feature rows are sliced to match.

    Returns:
        tuple: (X of shape (n - LAG_WINDOW, len(FEATURE_COLUMNS)), y of shape (n - LAG_WINDOW,))
    """
    frame = build_feature_frame(records, category)
    labels = np.array([r.quantity for r in records[LAG_WINDOW:]], dtype=float)
    features = frame.iloc[LAG_WINDOW:].to_numpy(dtype=float)

    if len(features) != len(labels):
        raise ValueError("Feature rows and labels must have same length")

    return features, labels
