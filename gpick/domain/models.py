"""
models.py - 領域模型 (v1.0)

純 Python dataclass，無外部依賴。
所有實體皆為不可變快照，變更一律透過 replace 產生新物件。
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from ..core.exceptions import ValidationError


def now_ms() -> int:
    """目前時間 (epoch 毫秒)"""
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex[:12]


class OrderStatus(Enum):
    """訂單狀態"""
    PENDING = "PENDING"     # 待採購 (含部分到貨)
    BOUGHT = "BOUGHT"       # 已買齊
    PACKED = "PACKED"       # 已包裝
    SHIPPED = "SHIPPED"     # 已出貨


class NotificationStatus(Enum):
    """到貨通知狀態"""
    UNNOTIFIED = "UNNOTIFIED"
    NOTIFIED = "NOTIFIED"


@dataclass(frozen=True)
class Product:
    """商品"""
    id: str
    name: str
    variants: Tuple[str, ...] = ()          # 款式 (尺寸/顏色)，空 = 單一品項
    price_jpy: int = 0                      # 日幣原價
    price_twd: int = 0                      # 台幣售價
    category: str = ""
    brand: Optional[str] = None
    created_at: int = field(default_factory=now_ms)

    @property
    def has_variants(self) -> bool:
        return len(self.variants) > 0

    def accepts_variant(self, variant: Optional[str]) -> bool:
        """款式政策檢查 (不強制)"""
        if not self.has_variants:
            return not variant
        return variant in self.variants

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "variants": list(self.variants),
            "price_jpy": self.price_jpy,
            "price_twd": self.price_twd,
            "category": self.category,
            "brand": self.brand,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            variants=tuple(data.get("variants") or ()),
            price_jpy=int(data.get("price_jpy", 0)),
            price_twd=int(data.get("price_twd", 0)),
            category=data.get("category", ""),
            brand=data.get("brand"),
            created_at=int(data.get("created_at") or now_ms()),
        )


@dataclass(frozen=True)
class Customer:
    """顧客 (is_stock=True 為庫存帳號，不是真實顧客)"""
    id: str
    line_name: str                          # LINE 顯示名稱 (比對/去重用)
    nickname: Optional[str] = None
    note: str = ""
    is_blacklisted: bool = False
    is_stock: bool = False
    total_spent: int = 0                    # 歷次場次累積消費
    session_count: int = 0                  # 參與場次數

    def matches_name(self, name: str) -> bool:
        name = name.strip()
        return bool(name) and (self.line_name == name or self.nickname == name)

    def with_changes(self, **changes) -> "Customer":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "line_name": self.line_name,
            "nickname": self.nickname,
            "note": self.note,
            "is_blacklisted": self.is_blacklisted,
            "is_stock": self.is_stock,
            "total_spent": self.total_spent,
            "session_count": self.session_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Customer":
        return cls(
            id=data["id"],
            line_name=data.get("line_name", ""),
            nickname=data.get("nickname"),
            note=data.get("note", ""),
            is_blacklisted=bool(data.get("is_blacklisted", False)),
            is_stock=bool(data.get("is_stock", False)),
            total_spent=int(data.get("total_spent", 0)),
            session_count=int(data.get("session_count", 0)),
        )


@dataclass(frozen=True)
class Order:
    """喊單 (一位顧客 x 一個商品款式)"""
    id: str
    product_id: str
    customer_id: str
    quantity: int = 1                       # 喊單數量
    quantity_bought: int = 0                # 已分配到的數量
    variant: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    notification_status: NotificationStatus = NotificationStatus.UNNOTIFIED
    is_archived: bool = False
    timestamp: int = field(default_factory=now_ms)   # 喊單時間，分配優先序

    # 付款
    is_paid: bool = False
    payment_method: Optional[str] = None    # 轉帳 / 面交
    payment_note: Optional[str] = None      # 帳號後五碼等

    @classmethod
    def create(
        cls,
        product_id: str,
        customer_id: str,
        quantity: int,
        variant: Optional[str] = None,
        timestamp: Optional[int] = None,
        order_id: Optional[str] = None,
    ) -> "Order":
        """建立新喊單 (數量至少 1)"""
        if not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("喊單數量至少為 1", field="quantity", value=quantity)
        return cls(
            id=order_id or new_id(),
            product_id=product_id,
            customer_id=customer_id,
            quantity=quantity,
            variant=variant or None,
            timestamp=timestamp if timestamp is not None else now_ms(),
        )

    @property
    def is_active(self) -> bool:
        return not self.is_archived

    @property
    def variant_key(self) -> Optional[str]:
        """分組用款式鍵，無款式一律為 None"""
        return self.variant or None

    @property
    def is_fully_bought(self) -> bool:
        return self.quantity_bought >= self.quantity

    def with_changes(self, **changes) -> "Order":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "customer_id": self.customer_id,
            "quantity": self.quantity,
            "quantity_bought": self.quantity_bought,
            "variant": self.variant,
            "status": self.status.value,
            "notification_status": self.notification_status.value,
            "is_archived": self.is_archived,
            "timestamp": self.timestamp,
            "is_paid": self.is_paid,
            "payment_method": self.payment_method,
            "payment_note": self.payment_note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            id=data["id"],
            product_id=data["product_id"],
            customer_id=data["customer_id"],
            quantity=int(data.get("quantity", 1)),
            quantity_bought=int(data.get("quantity_bought") or 0),
            variant=data.get("variant") or None,
            status=OrderStatus(data.get("status", OrderStatus.PENDING.value)),
            notification_status=NotificationStatus(
                data.get("notification_status") or NotificationStatus.UNNOTIFIED.value
            ),
            is_archived=bool(data.get("is_archived", False)),
            timestamp=int(data.get("timestamp") or 0),
            is_paid=bool(data.get("is_paid", False)),
            payment_method=data.get("payment_method"),
            payment_note=data.get("payment_note"),
        )


@dataclass(frozen=True)
class OrderUpdate:
    """分配結果 (每筆訂單一個)"""
    order_id: str
    quantity_bought: int
    status: OrderStatus

    def apply_to(self, order: Order) -> Order:
        return replace(order, quantity_bought=self.quantity_bought, status=self.status)


def active_orders(orders: Iterable[Order]) -> Tuple[Order, ...]:
    """未封存的訂單"""
    return tuple(o for o in orders if o.is_active)


def index_by_id(items: Iterable[Any]) -> Dict[str, Any]:
    return {item.id: item for item in items}


def find_customer_by_name(customers: Iterable[Customer], name: str) -> Optional[Customer]:
    """以 LINE 名稱或暱稱找顧客 (快速喊單去重)"""
    return next((c for c in customers if c.matches_name(name)), None)
