# inventory_demand/schemas.py
# ---------------------------
# Responsibility:
# - Domain records read and written by the prediction core
# - Closed category enumeration validated at the boundary
# - Request/response bodies for the HTTP layer

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .exceptions import UnknownCategoryError


class Category(str, Enum):
    LIVING_ROOM = "Living Room"
    BEDROOM = "Bedroom"
    DINING_ROOM = "Dining Room"
    OFFICE = "Office"

    @classmethod
    def parse(cls, value) -> "Category":
        """Return the matching category or raise UnknownCategoryError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownCategoryError(value) from None


class StockStatus(str, Enum):
    DANGER = "danger"
    WARNING = "warning"
    NORMAL = "normal"


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to dates without a timezone so histories sort consistently."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ===== DOMAIN RECORDS =====

class SalesRecord(CamelModel):
    """A single sale. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: int
    item_id: int
    user_id: str
    quantity: int = Field(ge=0)
    date: datetime

    @field_validator("date")
    @classmethod
    def date_as_utc(cls, value):
        return as_utc(value)


class InventoryItem(CamelModel):
    id: int
    user_id: str
    name: str
    category: str
    quantity: int = Field(ge=0)
    reorder_point: int = Field(ge=0)
    demand: Optional[int] = None


class CategoryThreshold(CamelModel):
    category: str
    default_threshold: int


class Prediction(CamelModel):
    """
    A stored prediction.

    Pending while actual_quantity is None; reconciled once the actual
    quantity and all four metrics are written.
    """

    id: int
    item_id: int
    user_id: str
    predicted_quantity: int
    actual_quantity: Optional[int] = None
    prediction_date: datetime
    target_date: datetime
    accuracy: Optional[float] = None
    mae: Optional[float] = None
    rmse: Optional[float] = None
    mape: Optional[float] = None

    @property
    def is_reconciled(self) -> bool:
        return self.actual_quantity is not None


# ===== API BODIES =====

class PredictDemandRequest(CamelModel):
    """Per-item prediction when item_id is set, per-category aggregate otherwise."""

    user_id: str = Field(min_length=1)
    item_id: Optional[int] = None
    category: Optional[str] = None


class PredictDemandResponse(CamelModel):
    item_id: int
    predicted_quantity: int
    prediction_id: int
    status: StockStatus


class CategoryPrediction(CamelModel):
    category: str
    predicted_quantity: int
    mae: Optional[float] = None
    rmse: Optional[float] = None
    mape: Optional[float] = None
    accuracy: Optional[float] = None


class ReconcileRequest(CamelModel):
    actual_quantity: int = Field(ge=0)


class AccuracyResponse(CamelModel):
    mae: float
    rmse: float
    mape: float
    accuracy: float
    interpretation: str
    reconciled_count: int


class SalesRecordCreate(CamelModel):
    item_id: int
    user_id: str = Field(min_length=1)
    quantity: int = Field(ge=0)
    date: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def date_as_utc(cls, value):
        return as_utc(value)


class InventoryItemCreate(CamelModel):
    user_id: str = Field(min_length=1)
    name: str
    category: str
    quantity: int = Field(ge=0)
    reorder_point: int = Field(ge=0)


class ItemStatusResponse(CamelModel):
    item_id: int
    quantity: int
    reorder_point: int
    status: StockStatus
    demand: Optional[int] = None


class StatusSummary(CamelModel):
    danger: int = 0
    warning: int = 0
    normal: int = 0
    alerts: List[int] = []
