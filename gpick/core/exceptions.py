"""
自訂例外類別

GPick 使用的所有自訂例外
"""

from typing import Optional, Dict, Any


class GPickError(Exception):
    """基本例外類別"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        """
        Args:
            message: 錯誤訊息
            error_code: 錯誤代碼
            details: 附加資訊
            cause: 原始例外
        """
        self.message = message
        self.error_code = error_code or self._default_code()
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def _default_code(self) -> str:
        return "GP_UNKNOWN"

    def to_dict(self) -> Dict[str, Any]:
        """轉為字典"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "type": self.__class__.__name__
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ValidationError(GPickError):
    """輸入資料驗證錯誤"""

    def __init__(
        self,
        message: str,
        field: str = None,
        value: Any = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        details = kwargs.pop("details", {})
        details["field"] = field
        details["value"] = str(value)[:100]
        super().__init__(message, details=details, **kwargs)

    def _default_code(self) -> str:
        return "GP_VALIDATION"


class ConfigurationError(GPickError):
    """設定錯誤"""

    def __init__(
        self,
        message: str,
        config_key: str = None,
        **kwargs
    ):
        self.config_key = config_key
        details = kwargs.pop("details", {})
        details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)

    def _default_code(self) -> str:
        return "GP_CONFIG"


class ReferentialIntegrityError(GPickError):
    """參照不一致 (訂單指向已刪除的商品/顧客)"""

    def __init__(
        self,
        message: str,
        entity: str = None,
        entity_id: str = None,
        **kwargs
    ):
        self.entity = entity
        self.entity_id = entity_id
        details = kwargs.pop("details", {})
        details["entity"] = entity
        details["entity_id"] = entity_id
        super().__init__(message, details=details, **kwargs)

    def _default_code(self) -> str:
        return "GP_REFERENCE"


class NotFoundError(ReferentialIntegrityError):
    """找不到指定的商品/顧客/訂單"""

    def _default_code(self) -> str:
        return "GP_NOT_FOUND"


class StockSentinelError(GPickError):
    """庫存帳號 (stock sentinel) 遺失或重複"""

    MISSING = "missing"
    DUPLICATE = "duplicate"

    def __init__(
        self,
        message: str,
        reason: str = MISSING,
        **kwargs
    ):
        self.reason = reason
        details = kwargs.pop("details", {})
        details["reason"] = reason
        super().__init__(message, details=details, **kwargs)

    def _default_code(self) -> str:
        if self.reason == self.DUPLICATE:
            return ErrorCodes.STOCK_DUPLICATE
        return ErrorCodes.STOCK_MISSING


class LifecycleError(GPickError):
    """場次 / 庫存轉移不合法"""

    def __init__(
        self,
        message: str,
        order_id: str = None,
        **kwargs
    ):
        self.order_id = order_id
        details = kwargs.pop("details", {})
        details["order_id"] = order_id
        super().__init__(message, details=details, **kwargs)

    def _default_code(self) -> str:
        return "GP_LIFECYCLE"


class PersistenceError(GPickError):
    """儲存層讀寫錯誤"""

    def __init__(
        self,
        message: str,
        key: str = None,
        operation: str = None,
        **kwargs
    ):
        self.key = key
        self.operation = operation
        details = kwargs.pop("details", {})
        details["key"] = key
        details["operation"] = operation
        super().__init__(message, details=details, **kwargs)

    def _default_code(self) -> str:
        return "GP_PERSISTENCE"


class TransientPersistenceError(PersistenceError):
    """暫時性 I/O 錯誤 (檔案被鎖定、磁碟忙碌等)，可重試"""

    def _default_code(self) -> str:
        return "GP_PERSISTENCE_IO"


# 錯誤代碼常數
class ErrorCodes:
    """錯誤代碼常數"""

    # 一般
    UNKNOWN = "GP_UNKNOWN"
    VALIDATION = "GP_VALIDATION"
    CONFIG = "GP_CONFIG"

    # 資料
    REFERENCE = "GP_REFERENCE"
    NOT_FOUND = "GP_NOT_FOUND"
    PERSISTENCE = "GP_PERSISTENCE"
    PERSISTENCE_IO = "GP_PERSISTENCE_IO"

    # 庫存 / 場次
    STOCK_MISSING = "GP_STOCK_MISSING"
    STOCK_DUPLICATE = "GP_STOCK_DUPLICATE"
    LIFECYCLE = "GP_LIFECYCLE"
