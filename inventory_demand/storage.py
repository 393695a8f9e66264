# inventory_demand/storage.py
# ---------------------------
# Responsibility:
# - Collaborator interfaces the prediction core reads from and writes to
# - In-memory implementation backing the REST layer and the tests

import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from .config import Settings, settings as default_settings
from .exceptions import PredictionNotFoundError
from .schemas import CategoryThreshold, InventoryItem, Prediction, SalesRecord


class SalesHistoryStore(Protocol):
    def get_sales_history_by_item_id(self, item_id: int, user_id: str) -> List[SalesRecord]: ...

    def get_sales_history_by_user_id(self, user_id: str) -> List[SalesRecord]: ...

    def create_sales_record(
        self, item_id: int, user_id: str, quantity: int, date: Optional[datetime] = None
    ) -> SalesRecord: ...


class CategoryThresholdStore(Protocol):
    def get_category_threshold_by_category(self, category: str) -> Optional[CategoryThreshold]: ...


class InventoryStore(Protocol):
    def get_inventory_item(self, item_id: int) -> Optional[InventoryItem]: ...

    def get_inventory_items_by_user_id(self, user_id: str) -> List[InventoryItem]: ...

    def update_inventory_item(self, item_id: int, **updates) -> Optional[InventoryItem]: ...


class PredictionStore(Protocol):
    def create_prediction(
        self, item_id: int, user_id: str, predicted_quantity: int,
        prediction_date: datetime, target_date: datetime
    ) -> Prediction: ...

    def get_prediction(self, prediction_id: int) -> Optional[Prediction]: ...

    def update_prediction(self, prediction_id: int, actual_quantity: int, **metrics) -> Prediction: ...

    def get_predictions_by_item_id(self, item_id: int, user_id: str) -> List[Prediction]: ...

    def get_predictions_by_user_id(self, user_id: str) -> List[Prediction]: ...


class MemoryStorage:
    """Process-local storage. Records are returned in insertion order."""

    def __init__(self, app_settings: Optional[Settings] = None):
        app_settings = app_settings or default_settings

        self._lock = threading.Lock()
        self._inventory_items: Dict[int, InventoryItem] = {}
        self._sales_history: Dict[int, SalesRecord] = {}
        self._category_thresholds: Dict[str, CategoryThreshold] = {}
        self._predictions: Dict[int, Prediction] = {}

        self._next_item_id = 1
        self._next_sales_id = 1
        self._next_prediction_id = 1

        for category, threshold in app_settings.category_thresholds.items():
            self.create_category_threshold(category, threshold)

    # ===== INVENTORY =====

    def create_inventory_item(
        self, user_id: str, name: str, category: str, quantity: int, reorder_point: int
    ) -> InventoryItem:
        with self._lock:
            item = InventoryItem(
                id=self._next_item_id,
                user_id=user_id,
                name=name,
                category=category,
                quantity=quantity,
                reorder_point=reorder_point
            )
            self._inventory_items[item.id] = item
            self._next_item_id += 1
        return item.model_copy()

    def get_inventory_item(self, item_id: int) -> Optional[InventoryItem]:
        item = self._inventory_items.get(item_id)
        return item.model_copy() if item else None

    def get_inventory_items_by_user_id(self, user_id: str) -> List[InventoryItem]:
        return [
            item.model_copy() for item in list(self._inventory_items.values())
            if item.user_id == user_id
        ]

    def update_inventory_item(self, item_id: int, **updates) -> Optional[InventoryItem]:
        with self._lock:
            item = self._inventory_items.get(item_id)
            if item is None:
                return None
            item = item.model_copy(update=updates)
            self._inventory_items[item_id] = item
        return item.model_copy()

    # ===== SALES HISTORY =====

    def create_sales_record(
        self, item_id: int, user_id: str, quantity: int, date: Optional[datetime] = None
    ) -> SalesRecord:
        with self._lock:
            record = SalesRecord(
                id=self._next_sales_id,
                item_id=item_id,
                user_id=user_id,
                quantity=quantity,
                date=date or datetime.now(timezone.utc)
            )
            self._sales_history[record.id] = record
            self._next_sales_id += 1
        return record

    def get_sales_history_by_item_id(self, item_id: int, user_id: str) -> List[SalesRecord]:
        return [
            record for record in list(self._sales_history.values())
            if record.item_id == item_id and record.user_id == user_id
        ]

    def get_sales_history_by_user_id(self, user_id: str) -> List[SalesRecord]:
        return [
            record for record in list(self._sales_history.values())
            if record.user_id == user_id
        ]

    # ===== CATEGORY THRESHOLDS =====

    def create_category_threshold(self, category: str, default_threshold: int) -> CategoryThreshold:
        threshold = CategoryThreshold(category=category, default_threshold=default_threshold)
        self._category_thresholds[category] = threshold
        return threshold

    def get_all_category_thresholds(self) -> List[CategoryThreshold]:
        return list(self._category_thresholds.values())

    def get_category_threshold_by_category(self, category: str) -> Optional[CategoryThreshold]:
        return self._category_thresholds.get(category)

    # ===== PREDICTIONS =====

    def create_prediction(
        self, item_id: int, user_id: str, predicted_quantity: int,
        prediction_date: datetime, target_date: datetime
    ) -> Prediction:
        with self._lock:
            prediction = Prediction(
                id=self._next_prediction_id,
                item_id=item_id,
                user_id=user_id,
                predicted_quantity=predicted_quantity,
                prediction_date=prediction_date,
                target_date=target_date
            )
            self._predictions[prediction.id] = prediction
            self._next_prediction_id += 1
        return prediction.model_copy()

    def get_prediction(self, prediction_id: int) -> Optional[Prediction]:
        prediction = self._predictions.get(prediction_id)
        return prediction.model_copy() if prediction else None

    def update_prediction(self, prediction_id: int, actual_quantity: int, **metrics) -> Prediction:
        """Write the actual quantity and metrics of a prediction in one step."""
        with self._lock:
            prediction = self._predictions.get(prediction_id)
            if prediction is None:
                raise PredictionNotFoundError(prediction_id)
            prediction = prediction.model_copy(
                update={"actual_quantity": actual_quantity, **metrics}
            )
            self._predictions[prediction_id] = prediction
        return prediction.model_copy()

    def get_predictions_by_item_id(self, item_id: int, user_id: str) -> List[Prediction]:
        return [
            p.model_copy() for p in list(self._predictions.values())
            if p.item_id == item_id and p.user_id == user_id
        ]

    def get_predictions_by_user_id(self, user_id: str) -> List[Prediction]:
        return [p.model_copy() for p in list(self._predictions.values()) if p.user_id == user_id]
