# inventory_demand/main.py
# ------------------------
# Responsibility:
# - HTTP surface of the demand prediction service
# - Map domain errors to HTTP status codes
# - Thin sales/inventory feeds so the service runs standalone

import logging
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .exceptions import (
    CategoryMismatchError,
    DemandPredictionError,
    ItemNotFoundError,
    PredictionAlreadyReconciledError,
    PredictionNotFoundError,
    StorageError,
    UnknownCategoryError,
)
from .logging_setup import setup_logging
from .prediction_records import PredictionLedger
from .prediction_service import DemandPredictor, ModelRegistry
from .schemas import (
    AccuracyResponse,
    Category,
    InventoryItemCreate,
    ItemStatusResponse,
    PredictDemandRequest,
    PredictDemandResponse,
    ReconcileRequest,
    SalesRecordCreate,
)
from .status import classify_status, summarize_statuses
from .storage import MemoryStorage

logger = logging.getLogger(__name__)

router = APIRouter()


# ===== DEPENDENCIES =====

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> MemoryStorage:
    return request.app.state.storage


def get_predictor(request: Request) -> DemandPredictor:
    return request.app.state.predictor


def get_ledger(request: Request) -> PredictionLedger:
    return request.app.state.ledger


def _to_http_exception(error: DemandPredictionError) -> HTTPException:
    """Translate a domain error into an HTTPException with a JSON detail."""
    if isinstance(error, (UnknownCategoryError, CategoryMismatchError)):
        status_code = 400
    elif isinstance(error, (ItemNotFoundError, PredictionNotFoundError)):
        status_code = 404
    elif isinstance(error, PredictionAlreadyReconciledError):
        status_code = 409
    elif isinstance(error, StorageError):
        status_code = 503
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail=error.to_dict())


def _get_owned_item(storage: MemoryStorage, item_id: int, user_id: str):
    item = storage.get_inventory_item(item_id)
    if item is None or item.user_id != user_id:
        raise ItemNotFoundError(item_id)
    return item


# ===== HEALTH =====

@router.get("/")
def root(app_settings: Settings = Depends(get_settings)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app": app_settings.app_name,
        "version": app_settings.app_version,
    }


@router.get("/health")
def health_check(
    app_settings: Settings = Depends(get_settings),
    predictor: DemandPredictor = Depends(get_predictor)
):
    """Detailed health check"""
    return {
        "status": "healthy",
        "categories": [c.value for c in Category],
        "min_training_records": app_settings.min_training_records,
        "models_loaded": len(predictor.registry),
        "models_trained": len(predictor.registry.trained_keys()),
    }


# ===== PREDICTIONS =====

@router.post("/predict-demand")
def predict_demand(
    body: PredictDemandRequest,
    storage: MemoryStorage = Depends(get_storage),
    predictor: DemandPredictor = Depends(get_predictor),
    ledger: PredictionLedger = Depends(get_ledger)
):
    """
    Predict demand for one item, or for every category of the user when no
    item id is given.
    """
    try:
        if body.item_id is None:
            return [
                p.model_dump(by_alias=True, mode="json")
                for p in predictor.predict_by_category(body.user_id)
            ]

        item = _get_owned_item(storage, body.item_id, body.user_id)
        category = Category.parse(item.category)
        if body.category is not None and Category.parse(body.category) is not category:
            raise CategoryMismatchError(item.id, body.category, item.category)

        history = storage.get_sales_history_by_item_id(item.id, body.user_id)
        predicted = predictor.predict_demand(history, category, body.user_id)

        prediction = ledger.record_prediction(item.id, body.user_id, predicted)
        storage.update_inventory_item(item.id, demand=predicted)

        return PredictDemandResponse(
            item_id=item.id,
            predicted_quantity=predicted,
            prediction_id=prediction.id,
            status=classify_status(item.quantity, item.reorder_point)
        ).model_dump(by_alias=True, mode="json")

    except HTTPException:
        raise
    except DemandPredictionError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception("Prediction error")
        raise HTTPException(
            status_code=500,
            detail=f"Server error during prediction: {str(e)}"
        )


@router.get("/predictions")
def list_predictions(
    user_id: str = Query(..., alias="userId", min_length=1),
    item_id: Optional[int] = Query(None, alias="itemId"),
    ledger: PredictionLedger = Depends(get_ledger)
):
    """List stored predictions of a user, optionally for one item."""
    predictions = ledger.list_predictions(user_id, item_id)
    return [p.model_dump(by_alias=True, mode="json") for p in predictions]


@router.get("/predictions/accuracy")
def prediction_accuracy(
    item_id: int = Query(..., alias="itemId"),
    user_id: str = Query(..., alias="userId", min_length=1),
    ledger: PredictionLedger = Depends(get_ledger)
):
    """Accuracy over the reconciled predictions of an item; 204 when there are none."""
    try:
        metrics = ledger.accuracy_for_item(item_id, user_id)
        if metrics is None:
            return Response(status_code=204)
        return AccuracyResponse(**metrics).model_dump(by_alias=True, mode="json")

    except DemandPredictionError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception("Accuracy error")
        raise HTTPException(
            status_code=500,
            detail=f"Server error: {str(e)}"
        )


@router.post("/predictions/{prediction_id}/reconcile")
def reconcile_prediction(
    prediction_id: int,
    body: ReconcileRequest,
    ledger: PredictionLedger = Depends(get_ledger)
):
    """Record the actual quantity for a pending prediction."""
    try:
        prediction = ledger.reconcile(prediction_id, body.actual_quantity)
        return prediction.model_dump(by_alias=True, mode="json")

    except DemandPredictionError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception("Reconciliation error")
        raise HTTPException(
            status_code=500,
            detail=f"Server error: {str(e)}"
        )


# ===== SALES & INVENTORY FEEDS =====

@router.post("/sales-history", status_code=201)
def record_sale(
    body: SalesRecordCreate,
    storage: MemoryStorage = Depends(get_storage),
    predictor: DemandPredictor = Depends(get_predictor)
):
    """Record a sale. The (user, category) model retrains on the next prediction."""
    try:
        item = _get_owned_item(storage, body.item_id, body.user_id)
        record = storage.create_sales_record(
            item_id=item.id,
            user_id=body.user_id,
            quantity=body.quantity,
            date=body.date
        )
        predictor.registry.reset(body.user_id, Category.parse(item.category))
        return record.model_dump(by_alias=True, mode="json")

    except DemandPredictionError as e:
        raise _to_http_exception(e)


@router.post("/inventory", status_code=201)
def create_inventory_item(
    body: InventoryItemCreate,
    storage: MemoryStorage = Depends(get_storage)
):
    """Create an inventory item; its category must be a known category."""
    try:
        category = Category.parse(body.category)
        item = storage.create_inventory_item(
            user_id=body.user_id,
            name=body.name,
            category=category.value,
            quantity=body.quantity,
            reorder_point=body.reorder_point
        )
        return {
            **item.model_dump(by_alias=True, mode="json"),
            "status": classify_status(item.quantity, item.reorder_point).value,
        }

    except DemandPredictionError as e:
        raise _to_http_exception(e)


@router.get("/inventory/status-summary")
def inventory_status_summary(
    user_id: str = Query(..., alias="userId", min_length=1),
    storage: MemoryStorage = Depends(get_storage)
):
    """Counts per stock status and the ids of items in danger."""
    items = storage.get_inventory_items_by_user_id(user_id)
    return summarize_statuses(items).model_dump(by_alias=True, mode="json")


@router.get("/inventory/{item_id}/status")
def inventory_item_status(
    item_id: int,
    user_id: str = Query(..., alias="userId", min_length=1),
    storage: MemoryStorage = Depends(get_storage)
):
    """Stock status of a single item."""
    try:
        item = _get_owned_item(storage, item_id, user_id)
        return ItemStatusResponse(
            item_id=item.id,
            quantity=item.quantity,
            reorder_point=item.reorder_point,
            status=classify_status(item.quantity, item.reorder_point),
            demand=item.demand
        ).model_dump(by_alias=True, mode="json")

    except DemandPredictionError as e:
        raise _to_http_exception(e)


# ===== APP FACTORY =====

def create_app(
    app_settings: Optional[Settings] = None,
    storage: Optional[MemoryStorage] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to use (default: global settings)
        storage: Storage backend (default: fresh in-memory storage)

    Returns:
        FastAPI: Configured application with services on app.state
    """
    app_settings = app_settings or settings
    setup_logging(app_settings)

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Demand prediction and accuracy tracking for inventory items",
        debug=app_settings.debug
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    storage = storage or MemoryStorage(app_settings)
    registry = ModelRegistry(app_settings)

    app.state.settings = app_settings
    app.state.storage = storage
    app.state.predictor = DemandPredictor(
        sales_store=storage,
        threshold_store=storage,
        inventory_store=storage,
        registry=registry,
        app_settings=app_settings
    )
    app.state.ledger = PredictionLedger(storage, app_settings)

    app.include_router(router)
    return app


app = create_app()


def run():
    """Serve the app with uvicorn on the configured host and port."""
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
