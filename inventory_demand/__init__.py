# inventory_demand/__init__.py
# ----------------------------
# Package initializer for the demand prediction service

from .config import settings
from .evaluation import calculate_basic_metrics
from .feature_engineering import build_feature_frame
from .prediction_records import PredictionLedger
from .prediction_service import DemandPredictor, ModelRegistry
from .regression_model import DemandRegressionModel
from .status import classify_status

__all__ = [
    "build_feature_frame",
    "calculate_basic_metrics",
    "classify_status",
    "DemandPredictor",
    "DemandRegressionModel",
    "ModelRegistry",
    "PredictionLedger",
    "settings"
]

__version__ = "1.0.0"
