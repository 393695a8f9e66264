# inventory_demand/prediction_service.py
# --------------------------------------
# Responsibility:
# - Keep one regression model per (user, category), trained at most once
# - Predict demand from a sales history, training first when possible
# - Fall back to the history mean, the category default, then a constant
# - Aggregate predictions and metrics per category for a user

import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import Settings, settings as default_settings
from .evaluation import calculate_accuracy
from .exceptions import DemandPredictionError
from .feature_engineering import sort_sales_history
from .regression_model import DemandRegressionModel, clamp_quantity
from .schemas import Category, CategoryPrediction, SalesRecord
from .storage import CategoryThresholdStore, InventoryStore, SalesHistoryStore

logger = logging.getLogger(__name__)

ModelKey = Tuple[str, Category]


class ModelRegistry:
    """
    Regression models keyed by (user_id, category).

    Each key has its own lock. Callers hold it around train/predict so a
    second concurrent request for the same key waits for the first to
    finish training and then reuses the trained model.
    """

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        model_factory: Callable[[], DemandRegressionModel] = None
    ):
        self.settings = app_settings or default_settings
        self._model_factory = model_factory or (lambda: DemandRegressionModel(self.settings))
        self._models: Dict[ModelKey, DemandRegressionModel] = {}
        self._locks: Dict[ModelKey, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, user_id: str, category: Category) -> threading.Lock:
        key = (user_id, Category.parse(category))
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    def get(self, user_id: str, category: Category) -> DemandRegressionModel:
        """Return the model for the key, creating an untrained one if needed."""
        key = (user_id, Category.parse(category))
        with self._guard:
            model = self._models.get(key)
            if model is None:
                model = self._model_factory()
                self._models[key] = model
            return model

    def reset(self, user_id: str, category: Category) -> None:
        """Forget the model for the key so the next request retrains."""
        key = (user_id, Category.parse(category))
        with self._guard:
            self._models.pop(key, None)

    def trained_keys(self) -> List[ModelKey]:
        with self._guard:
            return [key for key, model in self._models.items() if model.is_trained]

    def __len__(self) -> int:
        with self._guard:
            return len(self._models)


class DemandPredictor:
    """Demand prediction with a fallback chain that never fails on model errors."""

    def __init__(
        self,
        sales_store: SalesHistoryStore,
        threshold_store: CategoryThresholdStore,
        inventory_store: InventoryStore = None,
        registry: ModelRegistry = None,
        app_settings: Optional[Settings] = None
    ):
        self.settings = app_settings or default_settings
        self.sales_store = sales_store
        self.threshold_store = threshold_store
        self.inventory_store = inventory_store
        self.registry = registry or ModelRegistry(self.settings)

    def predict_demand(
        self,
        sales_history: Sequence[SalesRecord],
        category,
        user_id: str
    ) -> int:
        """
        Predict the demand for an item from its sales history.

        Trains the (user, category) model first when it is untrained and the
        history is long enough. Any failure on the model path is logged and
        replaced by the fallback chain.

        Args:
            sales_history: Sales records of the item, any order
            category: Category label or Category member
            user_id: Owner of the history

        Returns:
            int: Predicted quantity

        Raises:
            UnknownCategoryError: If the category is not known
        """
        category = Category.parse(category)
        history = sort_sales_history(sales_history)

        try:
            return self._predict_with_model(history, category, user_id)
        except Exception as exc:
            logger.warning(
                "Model prediction failed for user=%s category=%s (%s: %s); using fallback",
                user_id, category.value, type(exc).__name__, exc
            )

        return self.fallback_quantity(history, category)

    def _predict_with_model(
        self,
        history: List[SalesRecord],
        category: Category,
        user_id: str
    ) -> int:
        model = self.registry.get(user_id, category)
        with self.registry.lock_for(user_id, category):
            if not model.is_trained and len(history) >= self.settings.min_training_records:
                logger.info(
                    "Training model for user=%s category=%s on %d records",
                    user_id, category.value, len(history)
                )
                model.train(history, category)
            return model.predict(history, category)

    def fallback_quantity(self, history: Sequence[SalesRecord], category: Category) -> int:
        """
        History mean when there is history, else the category default,
        else the configured constant.
        """
        if len(history) > 0:
            return clamp_quantity(np.mean([r.quantity for r in history]))

        threshold = self.threshold_store.get_category_threshold_by_category(category.value)
        if threshold is not None:
            return threshold.default_threshold

        return self.settings.fallback_quantity

    def evaluate_demand(
        self,
        sales_history: Sequence[SalesRecord],
        category,
        user_id: str
    ) -> Optional[Dict[str, float]]:
        """
        Metrics of the (user, category) model over a history.

        Returns:
            dict: mae, rmse, mape and accuracy, or None when the model is
            untrained or cannot be evaluated on this history
        """
        category = Category.parse(category)
        history = sort_sales_history(sales_history)

        model = self.registry.get(user_id, category)
        with self.registry.lock_for(user_id, category):
            if not model.is_trained or len(history) < self.settings.min_training_records:
                return None
            try:
                metrics = model.evaluate(history, category)
            except (DemandPredictionError, ValueError) as exc:
                logger.warning(
                    "Evaluation failed for user=%s category=%s: %s",
                    user_id, category.value, exc
                )
                return None

        metrics["accuracy"] = calculate_accuracy(metrics["mape"])
        return metrics

    def predict_by_category(self, user_id: str) -> List[CategoryPrediction]:
        """
        Predict demand for every category the user holds items in.

        Sales of all items in a category are pooled into one history.
        """
        if self.inventory_store is None:
            raise RuntimeError("predict_by_category needs an inventory store")

        items = self.inventory_store.get_inventory_items_by_user_id(user_id)
        item_categories = {item.id: Category.parse(item.category) for item in items}

        pooled: Dict[Category, List[SalesRecord]] = {
            category: [] for category in set(item_categories.values())
        }
        for record in self.sales_store.get_sales_history_by_user_id(user_id):
            category = item_categories.get(record.item_id)
            if category is not None:
                pooled[category].append(record)

        results = []
        for category in Category:
            if category not in pooled:
                continue
            history = pooled[category]
            predicted = self.predict_demand(history, category, user_id)
            metrics = self.evaluate_demand(history, category, user_id) or {}
            results.append(CategoryPrediction(
                category=category.value,
                predicted_quantity=predicted,
                mae=metrics.get("mae"),
                rmse=metrics.get("rmse"),
                mape=metrics.get("mape"),
                accuracy=metrics.get("accuracy")
            ))

        return results
