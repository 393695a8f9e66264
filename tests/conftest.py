"""Shared fixtures for the inventory_demand test-suite."""

from datetime import datetime, timezone

import pytest

from inventory_demand.config import Settings
from inventory_demand.exceptions import ModelNotTrainedError
from inventory_demand.schemas import SalesRecord
from inventory_demand.storage import MemoryStorage


def monthly_history(quantities, item_id=1, user_id="user-1", start_year=2024, day=15):
    """Sales records on consecutive months, one per quantity."""
    records = []
    for i, quantity in enumerate(quantities):
        records.append(SalesRecord(
            id=i + 1,
            item_id=item_id,
            user_id=user_id,
            quantity=quantity,
            date=datetime(start_year + i // 12, i % 12 + 1, day, tzinfo=timezone.utc),
        ))
    return records


class StubModel:
    """Stand-in for DemandRegressionModel with scripted behaviour."""

    def __init__(self, prediction=7, fail_with=None, on_train=None):
        self.prediction = prediction
        self.fail_with = fail_with
        self.on_train = on_train
        self.train_calls = 0
        self.trained_on = None
        self._is_trained = False

    @property
    def is_trained(self):
        return self._is_trained

    def train(self, records, category):
        if self.fail_with is not None:
            raise self.fail_with
        if self.on_train is not None:
            self.on_train()
        self.train_calls += 1
        self.trained_on = list(records)
        self._is_trained = True

    def predict(self, records, category):
        if not self._is_trained:
            raise ModelNotTrainedError()
        return self.prediction

    def evaluate(self, records, category):
        return {"mae": 1.0, "rmse": 1.5, "mape": 12.5}


@pytest.fixture
def fast_settings():
    return Settings(
        _env_file=None,
        epochs=5,
        log_every_n_epochs=1,
        max_training_seconds=30.0,
    )


@pytest.fixture
def storage(fast_settings):
    return MemoryStorage(fast_settings)


@pytest.fixture
def office_history():
    return monthly_history([2, 3, 2, 4, 3, 5])
