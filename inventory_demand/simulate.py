# inventory_demand/simulate.py
# ----------------------------
# Responsibility:
# - Generate synthetic seasonal sales histories per category
# - Train, predict and evaluate one model per category from the command line

import argparse
import logging
import math
import random
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pandas as pd

from .config import Settings, settings as default_settings
from .evaluation import calculate_accuracy, interpret_accuracy
from .feature_engineering import sort_sales_history
from .logging_setup import setup_logging
from .regression_model import DemandRegressionModel, clamp_quantity
from .schemas import Category, SalesRecord

logger = logging.getLogger(__name__)

BASE_QUANTITIES = {
    Category.LIVING_ROOM: 5,
    Category.BEDROOM: 4,
    Category.DINING_ROOM: 3,
    Category.OFFICE: 2,
}


def generate_sales_history(
    category: Category,
    months: int = 12,
    user_id: str = "test-user",
    end: Optional[datetime] = None,
    rng: Optional[random.Random] = None
) -> List[SalesRecord]:
    """
    One sale per month for `months` months ending at `end`, with a yearly
    sine seasonality and +/-20% noise.
    """
    rng = rng or random.Random()
    end = end or datetime.now(timezone.utc)
    item_id = list(Category).index(category) + 1
    dates = pd.date_range(end=end, periods=months, freq="MS")

    records = []
    for i, date in enumerate(dates):
        seasonal_factor = 1 + 0.3 * math.sin(i * math.pi / 6)
        random_factor = 0.8 + rng.random() * 0.4
        records.append(SalesRecord(
            id=len(records) + 1,
            item_id=item_id,
            user_id=user_id,
            quantity=clamp_quantity(BASE_QUANTITIES[category] * seasonal_factor * random_factor),
            date=date.to_pydatetime()
        ))
    return records


def simulate_category(
    category: Category,
    months: int = 12,
    app_settings: Optional[Settings] = None,
    seed: Optional[int] = None
) -> Dict:
    """Train a fresh model on a synthetic history and score it."""
    app_settings = app_settings or default_settings
    history = sort_sales_history(
        generate_sales_history(category, months, rng=random.Random(seed))
    )

    model = DemandRegressionModel(app_settings)
    model.train(history, category)
    predicted = model.predict(history, category)
    metrics = model.evaluate(history, category)
    accuracy = calculate_accuracy(metrics["mape"])

    return {
        "category": category.value,
        "records": len(history),
        "predicted_quantity": predicted,
        **metrics,
        "accuracy": accuracy,
        "interpretation": interpret_accuracy(accuracy),
        "last_actuals": [r.quantity for r in history[-3:]],
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Train and evaluate the demand model on synthetic sales histories"
    )
    parser.add_argument(
        "--category", action="append", choices=[c.value for c in Category],
        help="Category to simulate (repeatable, default: all)"
    )
    parser.add_argument("--months", type=int, default=12, help="Months of history per category")
    parser.add_argument("--epochs", type=int, default=None, help="Override training epochs")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the synthetic data")
    args = parser.parse_args(argv)

    if args.months < default_settings.min_training_records:
        parser.error(
            f"--months must be at least {default_settings.min_training_records} to train a model"
        )

    app_settings = default_settings
    if args.epochs is not None:
        app_settings = default_settings.model_copy(update={"epochs": args.epochs})
    setup_logging(app_settings)

    categories = [Category(c) for c in args.category] if args.category else list(Category)

    for category in categories:
        result = simulate_category(category, args.months, app_settings, args.seed)
        logger.info(
            "%s: predicted next quantity=%d MAE=%.2f RMSE=%.2f MAPE=%.2f%% accuracy=%.2f%% (%s)",
            result["category"], result["predicted_quantity"], result["mae"], result["rmse"],
            result["mape"], result["accuracy"], result["interpretation"]
        )

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
