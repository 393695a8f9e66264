# inventory_demand/exceptions.py
# ------------------------------
# Responsibility:
# - Error taxonomy for the demand prediction core
# - Serializable error payloads for the HTTP layer

from .config import CATEGORIES


class DemandPredictionError(Exception):
    """Base exception for demand prediction errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the demand prediction service"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            "error": self.__class__.__name__,
            "message": self.message,
        }

        if self.code:
            error_dict["code"] = self.code

        if self.details:
            error_dict["details"] = self.details

        return error_dict


class InsufficientDataError(DemandPredictionError):
    """Raised when a sales history is too short to train or evaluate."""

    def __init__(self, message=None, code="insufficient_data", details=None):
        message = message or "Insufficient sales history"
        super().__init__(message, code, details)


class ModelNotTrainedError(DemandPredictionError):
    """Raised when predict or evaluate is called on an untrained model."""

    def __init__(self, message=None, code="model_not_trained", details=None):
        message = message or "Model needs to be trained before making predictions"
        super().__init__(message, code, details)


class ModelNumericalError(DemandPredictionError):
    """Raised when the model produces a non-finite output."""

    def __init__(self, message=None, code="numerical_failure", details=None):
        message = message or "Model produced a non-finite prediction"
        super().__init__(message, code, details)


class UnknownCategoryError(DemandPredictionError):
    """Raised for a category outside the known category list."""

    def __init__(self, category, code="unknown_category", details=None):
        self.category = category
        message = f"Unknown category '{category}'. Expected one of: {', '.join(CATEGORIES)}"
        super().__init__(message, code, details)


class CategoryMismatchError(DemandPredictionError):
    """Raised when a request names a category other than the item's own."""

    def __init__(self, item_id, category, item_category, code="category_mismatch", details=None):
        self.item_id = item_id
        super().__init__(
            f"Item {item_id} belongs to '{item_category}', not '{category}'",
            code,
            details or {"category": category, "item_category": item_category}
        )


class ItemNotFoundError(DemandPredictionError):
    """Raised when an inventory item does not exist for the user."""

    def __init__(self, item_id, code="item_not_found", details=None):
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found", code, details)


class PredictionNotFoundError(DemandPredictionError):
    """Raised when a prediction id is unknown."""

    def __init__(self, prediction_id, code="prediction_not_found", details=None):
        self.prediction_id = prediction_id
        super().__init__(f"Prediction {prediction_id} not found", code, details)


class PredictionAlreadyReconciledError(DemandPredictionError):
    """Raised when reconciling a prediction that already has an actual quantity."""

    def __init__(self, prediction_id, code="already_reconciled", details=None):
        self.prediction_id = prediction_id
        super().__init__(f"Prediction {prediction_id} is already reconciled", code, details)


class StorageError(DemandPredictionError):
    """Raised when a storage collaborator fails."""

    def __init__(self, message=None, code="storage_error", details=None):
        message = message or "Storage error"
        super().__init__(message, code, details)
