import math
import threading
import time
from datetime import datetime, timezone

import pytest

from inventory_demand.config import Settings
from inventory_demand.exceptions import StorageError, UnknownCategoryError
from inventory_demand.prediction_service import DemandPredictor, ModelRegistry
from inventory_demand.schemas import Category, SalesRecord
from inventory_demand.storage import MemoryStorage

from conftest import StubModel, monthly_history


class FailingThresholdStore:
    def get_category_threshold_by_category(self, category):
        raise StorageError("threshold store unavailable")


def _registry_with(fast_settings, *models):
    """Registry handing out the given stub models in creation order."""
    pending = list(models)
    return ModelRegistry(fast_settings, model_factory=lambda: pending.pop(0))


@pytest.fixture
def predictor(fast_settings, storage):
    return DemandPredictor(storage, storage, storage, app_settings=fast_settings)


def test_empty_history_uses_category_default(predictor):
    assert predictor.predict_demand([], "Bedroom", "user-1") == 10
    assert predictor.predict_demand([], "Dining Room", "user-1") == 6


def test_empty_history_without_thresholds_uses_constant():
    app_settings = Settings(_env_file=None, category_thresholds={}, fallback_quantity=7)
    storage = MemoryStorage(app_settings)
    predictor = DemandPredictor(storage, storage, app_settings=app_settings)

    assert predictor.predict_demand([], "Office", "user-1") == 7


def test_unknown_category_is_not_swallowed(predictor, office_history):
    with pytest.raises(UnknownCategoryError):
        predictor.predict_demand(office_history, "Garden", "user-1")


def test_short_history_returns_mean_without_training(predictor):
    predicted = predictor.predict_demand(monthly_history([2, 3]), "Office", "user-1")

    assert predicted == 3
    assert predictor.registry.trained_keys() == []


def test_trains_once_and_predicts(fast_settings, storage, office_history):
    stub = StubModel(prediction=9)
    predictor = DemandPredictor(
        storage, storage, registry=_registry_with(fast_settings, stub), app_settings=fast_settings
    )

    assert predictor.predict_demand(office_history, "Office", "user-1") == 9
    assert predictor.predict_demand(office_history, "Office", "user-1") == 9
    assert stub.train_calls == 1


def test_models_are_isolated_per_user_and_category(fast_settings, storage, office_history):
    first, second, third = StubModel(prediction=4), StubModel(prediction=5), StubModel(prediction=6)
    predictor = DemandPredictor(
        storage, storage,
        registry=_registry_with(fast_settings, first, second, third),
        app_settings=fast_settings
    )

    assert predictor.predict_demand(office_history, "Office", "alice") == 4
    assert predictor.predict_demand(office_history, "Office", "bob") == 5
    assert predictor.predict_demand(office_history, Category.BEDROOM, "alice") == 6
    assert len(predictor.registry) == 3
    assert [first.train_calls, second.train_calls, third.train_calls] == [1, 1, 1]


def test_model_failure_falls_back_to_mean(fast_settings, storage, office_history):
    stub = StubModel(fail_with=RuntimeError("diverged"))
    predictor = DemandPredictor(
        storage, storage, registry=_registry_with(fast_settings, stub), app_settings=fast_settings
    )

    # mean of 2, 3, 2, 4, 3, 5 is 3.17
    assert predictor.predict_demand(office_history, "Office", "user-1") == 3
    assert not stub.is_trained


def test_threshold_store_error_propagates(fast_settings, storage):
    predictor = DemandPredictor(storage, FailingThresholdStore(), app_settings=fast_settings)

    with pytest.raises(StorageError):
        predictor.predict_demand([], "Office", "user-1")


def test_concurrent_requests_train_once(fast_settings, storage, office_history):
    stub = StubModel(prediction=8, on_train=lambda: time.sleep(0.05))
    predictor = DemandPredictor(
        storage, storage, registry=_registry_with(fast_settings, stub), app_settings=fast_settings
    )
    results = []

    def request():
        results.append(predictor.predict_demand(office_history, "Office", "user-1"))

    threads = [threading.Thread(target=request) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == [8, 8, 8, 8]
    assert stub.train_calls == 1


def test_history_is_sorted_before_training(fast_settings, storage, office_history):
    stub = StubModel()
    predictor = DemandPredictor(
        storage, storage, registry=_registry_with(fast_settings, stub), app_settings=fast_settings
    )

    predictor.predict_demand(list(reversed(office_history)), "Office", "user-1")

    dates = [r.date for r in stub.trained_on]
    assert dates == sorted(dates)


def test_reset_forces_retraining(fast_settings, storage, office_history):
    first, second = StubModel(prediction=3), StubModel(prediction=11)
    predictor = DemandPredictor(
        storage, storage, registry=_registry_with(fast_settings, first, second),
        app_settings=fast_settings
    )

    predictor.predict_demand(office_history, "Office", "user-1")
    predictor.registry.reset("user-1", "Office")

    assert predictor.predict_demand(office_history, "Office", "user-1") == 11
    assert second.train_calls == 1


def test_evaluate_demand_untrained_returns_none(predictor, office_history):
    assert predictor.evaluate_demand(office_history, "Office", "user-1") is None


def test_evaluate_demand_adds_accuracy(fast_settings, storage, office_history):
    predictor = DemandPredictor(
        storage, storage, registry=_registry_with(fast_settings, StubModel()),
        app_settings=fast_settings
    )
    predictor.predict_demand(office_history, "Office", "user-1")

    metrics = predictor.evaluate_demand(office_history, "Office", "user-1")

    assert metrics == {"mae": 1.0, "rmse": 1.5, "mape": 12.5, "accuracy": 87.5}


def test_predict_by_category_pools_item_sales(fast_settings, storage):
    office_a = storage.create_inventory_item("user-1", "Desk", "Office", 10, 3)
    office_b = storage.create_inventory_item("user-1", "Chair", "Office", 10, 3)
    storage.create_inventory_item("user-1", "Bed", "Bedroom", 4, 2)
    storage.create_inventory_item("user-2", "Sofa", "Living Room", 4, 2)
    for quantity in [2, 3, 4]:
        storage.create_sales_record(office_a.id, "user-1", quantity)
    for quantity in [5, 6]:
        storage.create_sales_record(office_b.id, "user-1", quantity)

    def factory():
        return StubModel(prediction=12)

    predictor = DemandPredictor(
        storage, storage, storage,
        registry=ModelRegistry(fast_settings, model_factory=factory),
        app_settings=fast_settings
    )

    results = predictor.predict_by_category("user-1")

    assert [r.category for r in results] == ["Bedroom", "Office"]
    bedroom, office = results
    assert bedroom.predicted_quantity == 10
    assert bedroom.accuracy is None
    assert office.predicted_quantity == 12
    assert office.accuracy == pytest.approx(87.5)


def test_predict_by_category_needs_inventory_store(fast_settings, storage):
    predictor = DemandPredictor(storage, storage, app_settings=fast_settings)

    with pytest.raises(RuntimeError):
        predictor.predict_by_category("user-1")


def _history(dates, quantities=(2, 3, 2, 4, 3, 5)):
    return [
        SalesRecord(id=i + 1, item_id=1, user_id="user-1", quantity=q, date=d)
        for i, (d, q) in enumerate(zip(dates, quantities))
    ]


NAIVE_DATES = [datetime(2024, month, 15) for month in range(1, 7)]
AWARE_DATES = [datetime(2024, month, 15, tzinfo=timezone.utc) for month in range(1, 7)]
MIXED_DATES = [d if i % 2 else a for i, (d, a) in enumerate(zip(NAIVE_DATES, AWARE_DATES))]


@pytest.mark.parametrize("dates", [NAIVE_DATES, AWARE_DATES, MIXED_DATES],
                         ids=["naive", "aware", "mixed"])
def test_predict_demand_accepts_any_date_form(predictor, dates):
    history = _history(dates)

    predicted = predictor.predict_demand(list(reversed(history)), "Office", "user-1")

    assert isinstance(predicted, int)
    assert predicted >= 1
    assert predictor.evaluate_demand(history, "Office", "user-1") is not None


def test_sales_dates_are_stored_as_utc():
    record = _history(NAIVE_DATES[:1])[0]

    assert record.date.tzinfo is timezone.utc


def test_predict_by_category_with_trained_model(fast_settings, storage):
    desk = storage.create_inventory_item("user-1", "Desk", "Office", 10, 3)
    for month, quantity in enumerate([2, 3, 2, 4, 3, 5], start=1):
        storage.create_sales_record(desk.id, "user-1", quantity, date=datetime(2024, month, 15))
    predictor = DemandPredictor(storage, storage, storage, app_settings=fast_settings)

    [office] = predictor.predict_by_category("user-1")

    assert office.category == "Office"
    assert office.predicted_quantity >= 1
    for value in (office.mae, office.rmse, office.mape, office.accuracy):
        assert value is not None and math.isfinite(value)
    assert office.accuracy == pytest.approx(100 - office.mape)
