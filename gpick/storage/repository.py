"""
repository.py - 本機 JSON 儲存 (v1.0)

每個集合一個 JSON 檔 (products / customers / orders / settings / reports)。
寫入一律整份快照: 先寫暫存檔再 os.replace，避免寫到一半的檔案；
多集合寫入以 journal 確保全部替換或在下次開啟時補完。
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.config import GlobalSettings
from ..core.exceptions import PersistenceError, TransientPersistenceError
from ..domain.models import Customer, Order, Product
from ..domain.stats import SessionReport

logger = logging.getLogger(__name__)


PRODUCTS = "products"
CUSTOMERS = "customers"
ORDERS = "orders"
SETTINGS = "settings"
REPORTS = "reports"


class JsonStore:
    """key -> JSON 檔案

    多個 key 一起寫入時先寫 journal (暫存檔 -> 目標檔的對照)，
    替換中途失敗的話，下次開啟資料目錄會依 journal 補完，
    不會留下只更新一半集合的狀態。
    """

    JOURNAL = ".pending.json"

    def __init__(self, data_dir: str = None):
        """
        Args:
            data_dir: 資料目錄 (預設: project_root/data)
        """
        if data_dir is None:
            project_root = Path(__file__).parent.parent.parent
            data_dir = project_root / "data"

        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if self.recover():
            logger.warning(f"Completed interrupted write in {self.data_dir}")

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    @property
    def journal_path(self) -> Path:
        return self.data_dir / self.JOURNAL

    def load(self, key: str, default: Any = None) -> Any:
        """讀取，檔案不存在時回傳 default"""
        self.recover()
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                f"JSON 解析失敗: {path.name}", key=key, operation="load", cause=e
            )
        except OSError as e:
            raise TransientPersistenceError(
                f"讀取失敗: {path.name}", key=key, operation="load", cause=e
            )

    def save(self, key: str, value: Any):
        self.save_many({key: value})

    def _stage(self, prefix: str, value: Any) -> str:
        fd, tmp_path = tempfile.mkstemp(prefix=prefix, suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
        except (OSError, TypeError, ValueError):
            os.remove(tmp_path)
            raise
        return tmp_path

    def save_many(self, values: Dict[str, Any]):
        """多個 key 一起寫入: 暫存檔與 journal 全部寫完才開始替換"""
        self.recover()
        staged: Dict[str, str] = {}
        journal_tmp = None
        try:
            for key, value in values.items():
                staged[key] = self._stage(f".{key}.", value)
            pending = {key: os.path.basename(p) for key, p in staged.items()}
            journal_tmp = self._stage(".journal.", pending)
            os.replace(journal_tmp, self.journal_path)
        except (OSError, TypeError, ValueError) as e:
            for tmp_path in [*staged.values(), journal_tmp]:
                if tmp_path and os.path.exists(tmp_path):
                    os.remove(tmp_path)
            error_cls = TransientPersistenceError if isinstance(e, OSError) else PersistenceError
            raise error_cls(
                f"寫入失敗: {', '.join(values)}", key=",".join(values),
                operation="save", cause=e
            )

        self._commit(pending)

    def _commit(self, pending: Dict[str, str]):
        try:
            for key, tmp_name in pending.items():
                tmp_path = self.data_dir / tmp_name
                if tmp_path.exists():
                    os.replace(tmp_path, self._path(key))
            os.remove(self.journal_path)
        except OSError as e:
            raise TransientPersistenceError(
                f"替換失敗: {', '.join(pending)}", key=",".join(pending),
                operation="commit", cause=e
            )

    def recover(self) -> bool:
        """依 journal 補完上次中斷的寫入，有補完時回傳 True"""
        if not self.journal_path.exists():
            return False
        try:
            with open(self.journal_path, "r", encoding="utf-8") as f:
                pending = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                f"JSON 解析失敗: {self.JOURNAL}", key=self.JOURNAL, operation="recover", cause=e
            )
        except OSError as e:
            raise TransientPersistenceError(
                f"讀取失敗: {self.JOURNAL}", key=self.JOURNAL, operation="recover", cause=e
            )
        self._commit(pending)
        return True


class StoreRepository:
    """把 JsonStore 的原始資料轉成領域物件"""

    def __init__(self, store: JsonStore):
        self.store = store

    # ========== 讀取 ==========

    def load_products(self) -> List[Product]:
        return [Product.from_dict(d) for d in self.store.load(PRODUCTS, [])]

    def load_customers(self) -> List[Customer]:
        return [Customer.from_dict(d) for d in self.store.load(CUSTOMERS, [])]

    def load_orders(self) -> List[Order]:
        return [Order.from_dict(d) for d in self.store.load(ORDERS, [])]

    def load_settings(self) -> GlobalSettings:
        return GlobalSettings.from_dict(self.store.load(SETTINGS, None))

    def load_reports(self) -> List[SessionReport]:
        return [SessionReport.from_dict(d) for d in self.store.load(REPORTS, [])]

    # ========== 寫入 ==========

    def save(
        self,
        products: Optional[List[Product]] = None,
        customers: Optional[List[Customer]] = None,
        orders: Optional[List[Order]] = None,
        settings: Optional[GlobalSettings] = None,
        reports: Optional[List[SessionReport]] = None,
    ):
        """一次寫入多個集合的完整快照 (None = 不變)"""
        values: Dict[str, Any] = {}
        if products is not None:
            values[PRODUCTS] = [p.to_dict() for p in products]
        if customers is not None:
            values[CUSTOMERS] = [c.to_dict() for c in customers]
        if orders is not None:
            values[ORDERS] = [o.to_dict() for o in orders]
        if settings is not None:
            values[SETTINGS] = settings.to_dict()
        if reports is not None:
            values[REPORTS] = [r.to_dict() for r in reports]
        if values:
            self.store.save_many(values)
