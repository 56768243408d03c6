"""
錯誤處理器

集中式錯誤處理與復原策略
"""

import functools
import logging
import traceback
import time
from typing import Callable, Optional, Type, Any, Dict, List
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime

from .exceptions import (
    GPickError,
    ValidationError,
    ReferentialIntegrityError,
    StockSentinelError,
    PersistenceError,
    TransientPersistenceError,
)


class RecoveryAction(Enum):
    """復原動作"""
    RETRY = "retry"
    SKIP = "skip"
    FALLBACK = "fallback"
    ABORT = "abort"
    LOG_AND_CONTINUE = "log_and_continue"


@dataclass
class ErrorRecord:
    """錯誤紀錄"""
    error_code: str
    message: str
    timestamp: str
    traceback: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    recovery_action: Optional[RecoveryAction] = None
    recovered: bool = False


class ErrorHandler:
    """錯誤處理器"""

    def __init__(self, logger: logging.Logger = None, max_retries: int = 3):
        self.logger = logger or logging.getLogger(__name__)
        self.max_retries = max_retries
        self.error_history: List[ErrorRecord] = []

        # 依例外類型對應復原策略 (子類別需排在父類別之前)
        self._recovery_strategies = {
            StockSentinelError: self._handle_stock_sentinel,
            PersistenceError: self._handle_persistence_error,
            ValidationError: self._handle_validation_error,
            ReferentialIntegrityError: self._handle_reference_error,
        }

    def handle(
        self,
        error: Exception,
        context: Dict[str, Any] = None
    ) -> RecoveryAction:
        """
        處理錯誤

        Args:
            error: 發生的例外
            context: 錯誤發生時的上下文

        Returns:
            復原動作
        """
        context = context or {}

        record = self._create_record(error, context)
        self.error_history.append(record)

        self._log_error(error, context)

        recovery = self._determine_recovery(error, context)
        record.recovery_action = recovery

        return recovery

    def _create_record(
        self,
        error: Exception,
        context: Dict[str, Any]
    ) -> ErrorRecord:
        """建立錯誤紀錄"""
        error_code = "UNKNOWN"
        details = {}

        if isinstance(error, GPickError):
            error_code = error.error_code
            details = error.details

        return ErrorRecord(
            error_code=error_code,
            message=str(error),
            timestamp=datetime.now().isoformat(),
            traceback=traceback.format_exc(),
            details={**details, **context}
        )

    def _log_error(self, error: Exception, context: Dict[str, Any]):
        """錯誤記錄到 log"""
        if isinstance(error, GPickError):
            self.logger.error(
                f"[{error.error_code}] {error.message}",
                extra={"context": {**error.details, **context}},
            )
        else:
            self.logger.error(
                f"Unhandled error: {str(error)}",
                extra={"context": context},
                exc_info=True
            )

    def _determine_recovery(
        self,
        error: Exception,
        context: Dict[str, Any]
    ) -> RecoveryAction:
        """決定復原策略"""
        for error_type, handler in self._recovery_strategies.items():
            if isinstance(error, error_type):
                return handler(error, context)

        if isinstance(error, GPickError):
            return RecoveryAction.LOG_AND_CONTINUE
        return RecoveryAction.ABORT

    def _handle_stock_sentinel(
        self,
        error: StockSentinelError,
        context: Dict[str, Any]
    ) -> RecoveryAction:
        """庫存帳號遺失: 操作中不得自行補建"""
        self.logger.error("Stock customer unavailable, transition aborted")
        return RecoveryAction.ABORT

    def _handle_persistence_error(
        self,
        error: PersistenceError,
        context: Dict[str, Any]
    ) -> RecoveryAction:
        """儲存錯誤: 暫時性 I/O 錯誤有限次數重試，資料毀損直接中止"""
        if not isinstance(error, TransientPersistenceError):
            return RecoveryAction.ABORT
        retry_count = context.get("retry_count", 0)
        if retry_count < self.max_retries:
            return RecoveryAction.RETRY
        return RecoveryAction.ABORT

    def _handle_validation_error(
        self,
        error: ValidationError,
        context: Dict[str, Any]
    ) -> RecoveryAction:
        """驗證錯誤"""
        return RecoveryAction.SKIP

    def _handle_reference_error(
        self,
        error: ReferentialIntegrityError,
        context: Dict[str, Any]
    ) -> RecoveryAction:
        """參照不一致"""
        return RecoveryAction.LOG_AND_CONTINUE

    def get_error_summary(self) -> Dict[str, Any]:
        """錯誤摘要"""
        if not self.error_history:
            return {"total_errors": 0, "by_code": {}}

        by_code = {}
        for record in self.error_history:
            code = record.error_code
            by_code[code] = by_code.get(code, 0) + 1

        return {
            "total_errors": len(self.error_history),
            "by_code": by_code,
            "recent_errors": [
                {"code": r.error_code, "message": r.message, "time": r.timestamp}
                for r in self.error_history[-5:]
            ]
        }

    def clear_history(self):
        """清除錯誤紀錄"""
        self.error_history.clear()


def error_handler(
    fallback_value: Any = None,
    reraise: bool = False,
    log_level: str = "error",
    recovery_actions: Dict[Type[Exception], RecoveryAction] = None,
    max_retries: int = 3,
    retry_delay: float = 0.5,
):
    """
    錯誤處理 decorator

    用法:
        @error_handler(fallback_value=1, recovery_actions={ValidationError: RecoveryAction.SKIP})
        def command():
            pass

    Args:
        fallback_value: 發生錯誤時的回傳值
        reraise: ABORT 時是否重新拋出
        log_level: log 等級
        recovery_actions: 例外類型 -> 復原動作
        max_retries: 最大重試次數
        retry_delay: 重試基本等待秒數 (指數退避)
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__)
            retry_count = 0

            while True:
                try:
                    return func(*args, **kwargs)

                except Exception as e:
                    action = RecoveryAction.ABORT
                    if recovery_actions:
                        for exc_type, act in recovery_actions.items():
                            if isinstance(e, exc_type):
                                action = act
                                break

                    log_method = getattr(logger, log_level)
                    log_method(
                        f"Error in {func.__name__}: {str(e)}",
                        exc_info=not isinstance(e, GPickError),
                        extra={"context": {"retry_count": retry_count}}
                    )

                    if action == RecoveryAction.RETRY and retry_count < max_retries:
                        retry_count += 1
                        wait_time = retry_delay * (2 ** (retry_count - 1))
                        logger.warning(f"Retrying {func.__name__} in {wait_time}s (attempt {retry_count})")
                        time.sleep(wait_time)
                        continue

                    if action in (
                        RecoveryAction.SKIP,
                        RecoveryAction.FALLBACK,
                        RecoveryAction.LOG_AND_CONTINUE,
                    ):
                        return fallback_value

                    if reraise:
                        raise
                    return fallback_value

        return wrapper
    return decorator
