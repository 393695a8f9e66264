# inventory_demand/regression_model.py
# ------------------------------------
# Responsibility:
# - Small feed-forward regression model mapping feature vectors to demand
# - Epoch-by-epoch training with a monitoring validation split
# - Inference with rounding and a floor of one unit
# - Evaluation against the labelled part of a sales history

import logging
import math
import time
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.base import clone
from sklearn.metrics import mean_squared_error
from sklearn.neural_network import MLPRegressor

from .config import Settings, settings as default_settings
from .evaluation import calculate_basic_metrics
from .exceptions import InsufficientDataError, ModelNotTrainedError, ModelNumericalError
from .feature_engineering import LAG_WINDOW, build_feature_frame, build_training_set
from .schemas import Category, SalesRecord

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounded up."""
    return int(math.floor(value + 0.5))


def clamp_quantity(value: float) -> int:
    """Round a raw quantity and floor it at 1."""
    return max(1, round_half_up(value))


class DemandRegressionModel:
    """
    Feed-forward demand regressor for one (user, category) history.

    Constructed untrained; `train` fits it once, after which `predict` and
    `evaluate` can be called any number of times.
    """

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        hidden_layer_sizes: Tuple[int, ...] = None,
        learning_rate: float = None,
        epochs: int = None,
        random_state: int = None
    ):
        """
        Initialize the regression model.

        Args:
            app_settings: Settings to read defaults from (default: global settings)
            hidden_layer_sizes: Override hidden layer widths
            learning_rate: Override Adam learning rate
            epochs: Override the number of training passes
            random_state: Override the weight initialisation seed
        """
        self.settings = app_settings or default_settings

        self.hidden_layer_sizes = tuple(hidden_layer_sizes or self.settings.hidden_layer_sizes)
        self.learning_rate = learning_rate or self.settings.learning_rate
        self.epochs = epochs if epochs is not None else self.settings.epochs
        self.random_state = random_state if random_state is not None else self.settings.random_state

        # L2 penalty stands in for dropout regularisation
        self.model = MLPRegressor(
            hidden_layer_sizes=self.hidden_layer_sizes,
            activation="relu",
            solver="adam",
            learning_rate_init=self.learning_rate,
            alpha=self.settings.l2_penalty,
            batch_size=self.settings.batch_size,
            random_state=self.random_state
        )

        self._is_trained = False
        self._category = None
        self._training_records = 0
        self._epochs_run = 0
        self._last_loss = None
        self._last_val_loss = None

    def _split(self, features: np.ndarray, labels: np.ndarray):
        """Chronological split: the last `validation_split` share is held out."""
        n_val = int(len(labels) * self.settings.validation_split)
        if n_val == 0:
            return features, labels, features[:0], labels[:0]
        return features[:-n_val], labels[:-n_val], features[-n_val:], labels[-n_val:]

    def train(self, records: Sequence[SalesRecord], category) -> None:
        """
        Fit the model on a chronologically ordered sales history.

        Args:
            records: Sales records ordered by date
            category: Category of the item the history belongs to

        Raises:
            InsufficientDataError: If fewer than `min_training_records` records are given
            UnknownCategoryError: If the category is not known
        """
        category = Category.parse(category)
        min_records = self.settings.min_training_records

        if len(records) < min_records:
            raise InsufficientDataError(
                f"Insufficient data for training. Need at least {min_records} sales records.",
                details={"records": len(records)}
            )

        features, labels = build_training_set(records, category)
        x_train, y_train, x_val, y_val = self._split(features, labels)

        # Fresh weights on every call to train
        self.model = clone(self.model)
        self.model.set_params(batch_size=min(self.settings.batch_size, len(x_train)))

        budget = self.settings.max_training_seconds
        log_every = max(1, self.settings.log_every_n_epochs)
        started = time.monotonic()
        epochs_run = 0
        loss = val_loss = None

        for epoch in range(1, self.epochs + 1):
            self.model.partial_fit(x_train, y_train)
            epochs_run = epoch

            loss = float(mean_squared_error(y_train, self.model.predict(x_train)))
            val_loss = (
                float(mean_squared_error(y_val, self.model.predict(x_val)))
                if len(y_val) else None
            )

            if epoch % log_every == 0 or epoch == self.epochs:
                logger.info(
                    "[%s] Epoch %d: loss = %.4f, val_loss = %s",
                    category.value, epoch, loss,
                    f"{val_loss:.4f}" if val_loss is not None else "n/a"
                )

            if time.monotonic() - started > budget:
                logger.warning(
                    "[%s] Training budget of %.1fs exhausted after %d/%d epochs",
                    category.value, budget, epoch, self.epochs
                )
                break

        self._is_trained = True
        self._category = category
        self._training_records = len(records)
        self._epochs_run = epochs_run
        self._last_loss = loss
        self._last_val_loss = val_loss

    def _infer(self, features: np.ndarray) -> List[int]:
        raw = self.model.predict(features)
        if not np.all(np.isfinite(raw)):
            raise ModelNumericalError(details={"outputs": [float(v) for v in raw]})
        return [clamp_quantity(v) for v in raw]

    def predict(self, records: Sequence[SalesRecord], category) -> int:
        """
        Predict the next quantity from a chronologically ordered history.

        Histories shorter than the lag window fall back to the rounded mean.

        Returns:
            int: Predicted quantity, at least 1

        Raises:
            ModelNotTrainedError: If the model has not been trained
            InsufficientDataError: If the history is empty
            ModelNumericalError: If the model output is not finite
        """
        if not self._is_trained:
            raise ModelNotTrainedError()

        category = Category.parse(category)

        if len(records) == 0:
            raise InsufficientDataError("Cannot predict from an empty sales history")

        if len(records) < LAG_WINDOW:
            return clamp_quantity(np.mean([r.quantity for r in records]))

        frame = build_feature_frame(records, category)
        latest = frame.iloc[[-1]].to_numpy(dtype=float)
        return self._infer(latest)[0]

    def evaluate(self, records: Sequence[SalesRecord], category) -> Dict[str, float]:
        """
        Score the model on the labelled part of a history.

        Each labelled row is inferred on its own, rounded and floored at 1,
        then compared with the actual quantity.

        Returns:
            dict: mae, rmse and mape

        Raises:
            ModelNotTrainedError: If the model has not been trained
            InsufficientDataError: If the history has no labelled rows
        """
        if not self._is_trained:
            raise ModelNotTrainedError("Model needs to be trained before evaluation")

        category = Category.parse(category)
        min_records = self.settings.min_training_records

        if len(records) < min_records:
            raise InsufficientDataError(
                f"Insufficient data for evaluation. Need at least {min_records} sales records.",
                details={"records": len(records)}
            )

        features, actuals = build_training_set(records, category)
        predictions = [self._infer(row.reshape(1, -1))[0] for row in features]

        return calculate_basic_metrics(actuals, predictions)

    def get_model_info(self) -> dict:
        """
        Get information about the model configuration and training run.

        Returns:
            dict: Model configuration and training information
        """
        return {
            "is_trained": self._is_trained,
            "category": self._category.value if self._category else None,
            "training_records": self._training_records,
            "hidden_layer_sizes": list(self.hidden_layer_sizes),
            "learning_rate": self.learning_rate,
            "epochs": self.epochs,
            "epochs_run": self._epochs_run,
            "last_loss": self._last_loss,
            "last_val_loss": self._last_val_loss
        }

    @property
    def is_trained(self) -> bool:
        """Check if the model has been trained."""
        return self._is_trained
