"""
logging_config.py - 日誌設定 (v1.0)

功能:
- rich 主控台輸出
- 檔案輪替 (一般 + 錯誤專用)
- JSON 格式 (選用)
- 執行時間追蹤
"""

import json
import logging
import functools
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Callable, Union
from contextlib import contextmanager

from rich.logging import RichHandler

from .settings import LOGS_DIR


class JSONFormatter(logging.Formatter):
    """JSON 格式 log"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "context"):
            log_data["context"] = record.context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class PerformanceLogger:
    """執行時間追蹤"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @contextmanager
    def track(self, operation: str, **context):
        """
        追蹤區塊執行時間

        用法:
            with perf_logger.track("封存場次", orders=12):
                archive()
        """
        start_time = time.perf_counter()
        self.logger.debug(f"開始: {operation}", extra={"context": context})

        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            self.logger.error(
                f"失敗: {operation} ({elapsed:.3f}s) - {str(e)}",
                extra={"context": {**context, "error": str(e), "duration_ms": elapsed * 1000}},
            )
            raise
        else:
            elapsed = time.perf_counter() - start_time
            self.logger.info(
                f"完成: {operation} ({elapsed:.3f}s)",
                extra={"context": {**context, "duration_ms": elapsed * 1000}}
            )

    def timed(self, operation: str = None):
        """函式執行時間 decorator"""
        def decorator(func: Callable):
            op_name = operation or func.__name__

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                with self.track(op_name):
                    return func(*args, **kwargs)

            return wrapper
        return decorator


def setup_logging(
    name: str = "gpick",
    level: Union[str, int] = "INFO",
    log_to_file: bool = False,
    log_to_console: bool = True,
    json_format: bool = False,
    logs_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    設定 logger (重複呼叫會替換既有 handler)

    Args:
        name: logger 名稱
        level: log 等級
        log_to_file: 是否寫入檔案
        log_to_console: 是否輸出到主控台
        json_format: 是否使用 JSON 格式
        logs_dir: log 目錄 (預設: project_root/logs)

    Returns:
        設定好的 logger
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_to_console:
        if json_format:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(JSONFormatter())
        else:
            console_handler = RichHandler(rich_tracebacks=True, show_path=False)
            console_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console_handler)

    if log_to_file:
        log_dir = Path(logs_dir) if logs_dir else LOGS_DIR
        log_dir.mkdir(parents=True, exist_ok=True)

        # 一般 log
        log_file = log_dir / f"{name}_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8"
        )
        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
        logger.addHandler(file_handler)

        # 錯誤專用 log
        error_file = log_dir / f"{name}_errors.log"
        error_handler = RotatingFileHandler(
            error_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(lineno)d\n%(message)s\n",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(error_handler)

    return logger
