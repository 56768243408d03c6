"""核心模組 (v1.0)"""
from .exceptions import (
    GPickError,
    ValidationError,
    ConfigurationError,
    ReferentialIntegrityError,
    NotFoundError,
    StockSentinelError,
    LifecycleError,
    PersistenceError,
    TransientPersistenceError,
    ErrorCodes,
)
from .error_handler import ErrorHandler, RecoveryAction, error_handler
from .config import (
    GlobalSettings,
    PricingRule,
    CustomerLevels,
    DEFAULT_SETTINGS,
    DEFAULT_BILLING_TEMPLATE,
)

__all__ = [
    # 例外
    "GPickError",
    "ValidationError",
    "ConfigurationError",
    "ReferentialIntegrityError",
    "NotFoundError",
    "StockSentinelError",
    "LifecycleError",
    "PersistenceError",
    "TransientPersistenceError",
    "ErrorCodes",
    "ErrorHandler",
    "RecoveryAction",
    "error_handler",
    # 設定
    "GlobalSettings",
    "PricingRule",
    "CustomerLevels",
    "DEFAULT_SETTINGS",
    "DEFAULT_BILLING_TEMPLATE",
]
