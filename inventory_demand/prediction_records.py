# inventory_demand/prediction_records.py
# --------------------------------------
# Responsibility:
# - Persist predictions as pending records
# - Reconcile a pending prediction with the observed actual quantity, once
# - Accuracy summary over the reconciled predictions of an item

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .config import Settings, settings as default_settings
from .evaluation import (
    calculate_accuracy,
    calculate_basic_metrics,
    interpret_accuracy,
    reconciliation_metrics,
)
from .exceptions import PredictionAlreadyReconciledError, PredictionNotFoundError
from .schemas import Prediction
from .storage import PredictionStore

logger = logging.getLogger(__name__)


class PredictionLedger:
    """
    Lifecycle of stored predictions.

    A prediction is created pending (no actual quantity, no metrics) and
    moves to reconciled exactly once. Reconciled metrics are never rewritten.
    """

    def __init__(self, store: PredictionStore, app_settings: Optional[Settings] = None):
        self.settings = app_settings or default_settings
        self.store = store
        self._lock = threading.Lock()

    def record_prediction(
        self,
        item_id: int,
        user_id: str,
        predicted_quantity: int,
        prediction_date: datetime = None
    ) -> Prediction:
        """
        Store a pending prediction.

        The target date is the prediction date plus the configured horizon.
        """
        if predicted_quantity < 1:
            raise ValueError(f"Predicted quantity must be at least 1, got {predicted_quantity}")

        prediction_date = prediction_date or datetime.now(timezone.utc)
        target_date = prediction_date + timedelta(days=self.settings.prediction_horizon_days)

        prediction = self.store.create_prediction(
            item_id=item_id,
            user_id=user_id,
            predicted_quantity=predicted_quantity,
            prediction_date=prediction_date,
            target_date=target_date
        )
        logger.info(
            "Recorded prediction %d for item %d: %d units by %s",
            prediction.id, item_id, predicted_quantity, target_date.date()
        )
        return prediction

    def reconcile(self, prediction_id: int, actual_quantity: int) -> Prediction:
        """
        Attach the observed quantity to a pending prediction and score it.

        Raises:
            PredictionNotFoundError: If the prediction does not exist
            PredictionAlreadyReconciledError: If it was reconciled before
        """
        if actual_quantity < 0:
            raise ValueError(f"Actual quantity cannot be negative, got {actual_quantity}")

        with self._lock:
            prediction = self.store.get_prediction(prediction_id)
            if prediction is None:
                raise PredictionNotFoundError(prediction_id)
            if prediction.is_reconciled:
                raise PredictionAlreadyReconciledError(prediction_id)

            metrics = reconciliation_metrics(prediction.predicted_quantity, actual_quantity)
            reconciled = self.store.update_prediction(prediction_id, actual_quantity, **metrics)

        logger.info(
            "Reconciled prediction %d: predicted=%d actual=%d accuracy=%.2f",
            prediction_id, reconciled.predicted_quantity, actual_quantity, reconciled.accuracy
        )
        return reconciled

    def list_predictions(self, user_id: str, item_id: int = None) -> List[Prediction]:
        if item_id is not None:
            return self.store.get_predictions_by_item_id(item_id, user_id)
        return self.store.get_predictions_by_user_id(user_id)

    def accuracy_for_item(self, item_id: int, user_id: str) -> Optional[dict]:
        """
        Metrics over every reconciled prediction of an item.

        Returns:
            dict: mae, rmse, mape, accuracy, interpretation and
            reconciled_count, or None when nothing is reconciled yet
        """
        reconciled = [
            p for p in self.store.get_predictions_by_item_id(item_id, user_id)
            if p.is_reconciled
        ]
        if not reconciled:
            return None

        metrics = calculate_basic_metrics(
            [p.actual_quantity for p in reconciled],
            [p.predicted_quantity for p in reconciled]
        )
        metrics["accuracy"] = calculate_accuracy(metrics["mape"])
        metrics["interpretation"] = interpret_accuracy(metrics["accuracy"])
        metrics["reconciled_count"] = len(reconciled)
        return metrics
