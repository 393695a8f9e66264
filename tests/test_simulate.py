import random
from datetime import datetime, timezone

import pytest

from inventory_demand.config import Settings
from inventory_demand.schemas import Category
from inventory_demand.simulate import generate_sales_history, main, simulate_category


def test_generated_history_is_monthly_and_positive():
    end = datetime(2024, 12, 20, tzinfo=timezone.utc)

    history = generate_sales_history(Category.OFFICE, months=12, end=end, rng=random.Random(1))

    assert len(history) == 12
    assert all(record.quantity >= 1 for record in history)
    assert [record.date.month for record in history] == list(range(1, 13))
    assert {record.item_id for record in history} == {4}


def test_generated_history_is_reproducible():
    end = datetime(2024, 6, 1, tzinfo=timezone.utc)

    first = generate_sales_history(Category.BEDROOM, end=end, rng=random.Random(7))
    second = generate_sales_history(Category.BEDROOM, end=end, rng=random.Random(7))

    assert [r.quantity for r in first] == [r.quantity for r in second]


def test_simulate_category(fast_settings):
    result = simulate_category(Category.LIVING_ROOM, months=8, app_settings=fast_settings, seed=3)

    assert result["category"] == "Living Room"
    assert result["records"] == 8
    assert result["predicted_quantity"] >= 1
    assert result["accuracy"] == pytest.approx(100 - result["mape"])
    assert len(result["last_actuals"]) == 3


def test_main_runs_selected_category():
    assert main(["--category", "Office", "--months", "6", "--epochs", "2", "--seed", "1"]) == 0


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("INVENTORY_DEMAND_EPOCHS", "12")
    monkeypatch.setenv("INVENTORY_DEMAND_FALLBACK_QUANTITY", "4")

    app_settings = Settings(_env_file=None)

    assert app_settings.epochs == 12
    assert app_settings.fallback_quantity == 4


def test_main_rejects_too_few_months():
    with pytest.raises(SystemExit) as excinfo:
        main(["--months", "3"])

    assert excinfo.value.code == 2
