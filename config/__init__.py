"""設定模組"""
from .settings import (
    settings,
    get_settings,
    AppSettings,
    ROOT_DIR,
    DATA_DIR,
    LOGS_DIR,
)
from .logging_config import (
    setup_logging,
    PerformanceLogger,
    JSONFormatter,
)

__all__ = [
    "settings",
    "get_settings",
    "AppSettings",
    "ROOT_DIR",
    "DATA_DIR",
    "LOGS_DIR",
    "setup_logging",
    "PerformanceLogger",
    "JSONFormatter",
]
