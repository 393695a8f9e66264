# inventory_demand/config.py
# --------------------------
# Responsibility:
# - Application settings with environment variable support
# - Closed category list and placeholder holiday calendar
# - Default category thresholds used when there is no sales history

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Tuple


# ===== CATEGORIES =====

# Order matters: the feature extractor encodes a category by its position.
CATEGORIES: List[str] = ["Living Room", "Bedroom", "Dining Room", "Office"]

# ===== HOLIDAY CALENDAR =====

# Placeholder calendar (month, day). Deliberately incomplete.
HOLIDAYS: List[Tuple[int, int]] = [
    (1, 1),    # New Year's Day
    (7, 4),    # Independence Day
    (12, 25),  # Christmas Day
]


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_prefix="INVENTORY_DEMAND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # App Settings
    app_name: str = "Inventory Demand Prediction API"
    app_version: str = "1.0.0"
    debug: bool = False
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Data Requirements
    min_training_records: int = 4

    # Regression Model Settings
    hidden_layer_sizes: Tuple[int, ...] = (64, 32)
    learning_rate: float = 0.001
    l2_penalty: float = 0.0001
    epochs: int = 100
    batch_size: int = 32
    validation_split: float = 0.2
    log_every_n_epochs: int = 10
    max_training_seconds: float = 30.0
    random_state: int = 42

    # Fallbacks
    fallback_quantity: int = 10

    # Stock status
    warning_multiplier: float = 1.5

    # Prediction lifecycle
    prediction_horizon_days: int = 30

    # Default demand per category when no sales history exists
    category_thresholds: Dict[str, int] = {
        "Living Room": 12,
        "Bedroom": 10,
        "Dining Room": 6,
        "Office": 8,
    }


# Global settings instance
settings = Settings()
