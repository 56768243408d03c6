"""
lifecycle.py - 場次 / 庫存轉移 (v1.0)

三種批次轉移:
- 封存場次: 非庫存帳號的未封存訂單全部 is_archived = True
- 棄單轉庫存: 訂單改掛到庫存帳號
- 庫存轉出: 庫存訂單整筆改掛到真實顧客

全部都是純函式: 先算出完整的新快照再回傳，任何錯誤都在變更前拋出。
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.exceptions import (
    LifecycleError,
    NotFoundError,
    StockSentinelError,
    ValidationError,
)
from .models import (
    Customer,
    NotificationStatus,
    Order,
    OrderStatus,
    Product,
    new_id,
    now_ms,
)


STOCK_CUSTOMER_ID = "stock-001"
STOCK_CUSTOMER_NAME = "📦 庫存/現貨區"


def find_stock_customer(customers: Iterable[Customer]) -> Optional[Customer]:
    """找出庫存帳號，重複時拋出 StockSentinelError"""
    found = [c for c in customers if c.is_stock]
    if len(found) > 1:
        raise StockSentinelError(
            f"庫存帳號重複 ({len(found)} 個)",
            reason=StockSentinelError.DUPLICATE,
            details={"customer_ids": [c.id for c in found]},
        )
    return found[0] if found else None


def require_stock_customer(customers: Iterable[Customer]) -> Customer:
    """轉移操作用: 找不到庫存帳號即中止，不在操作中補建"""
    stock = find_stock_customer(customers)
    if stock is None:
        raise StockSentinelError("系統錯誤：找不到預設庫存帳號")
    return stock


def ensure_stock_customer(
    customers: Sequence[Customer],
) -> Tuple[List[Customer], Customer, bool]:
    """啟動時檢查庫存帳號，不存在就建立 (可重複呼叫)

    Returns:
        (新顧客清單, 庫存帳號, 是否新建立)
    """
    stock = find_stock_customer(customers)
    if stock is not None:
        return list(customers), stock, False

    stock = Customer(
        id=STOCK_CUSTOMER_ID,
        line_name=STOCK_CUSTOMER_NAME,
        nickname="Stock",
        is_stock=True,
    )
    if any(c.id == STOCK_CUSTOMER_ID for c in customers):
        stock = Customer(
            id=f"stock-{new_id()}",
            line_name=STOCK_CUSTOMER_NAME,
            nickname="Stock",
            is_stock=True,
        )
    return [stock, *customers], stock, True


@dataclass(frozen=True)
class ArchiveResult:
    orders: List[Order]
    archived: Tuple[Order, ...]             # 封存前的訂單內容


def archive_session(orders: Sequence[Order], stock_customer_id: Optional[str]) -> ArchiveResult:
    """封存場次 (庫存帳號的訂單保留，跨場次沿用)"""
    archived = []
    result = []
    for order in orders:
        if order.is_active and order.customer_id != stock_customer_id:
            archived.append(order)
            result.append(order.with_changes(is_archived=True))
        else:
            result.append(order)
    return ArchiveResult(orders=result, archived=tuple(archived))


def _require_orders(orders: Sequence[Order], order_ids: Iterable[str]) -> List[str]:
    known = {o.id for o in orders}
    ids = list(dict.fromkeys(order_ids))
    missing = [i for i in ids if i not in known]
    if missing:
        raise NotFoundError(
            f"找不到訂單: {', '.join(missing)}", entity="order", entity_id=missing[0]
        )
    return ids


def abandon_to_stock(
    orders: Sequence[Order],
    order_ids: Iterable[str],
    customers: Sequence[Customer],
) -> List[Order]:
    """棄單: 訂單轉入庫存帳號

    狀態強制為 BOUGHT，通知與付款狀態重置 (顧客關係已改變)。
    """
    stock = require_stock_customer(customers)
    ids = set(_require_orders(orders, order_ids))
    return [
        o.with_changes(
            customer_id=stock.id,
            status=OrderStatus.BOUGHT,
            notification_status=NotificationStatus.UNNOTIFIED,
            is_paid=False,
        )
        if o.id in ids else o
        for o in orders
    ]


def reassign_from_stock(
    orders: Sequence[Order],
    order_id: str,
    target: Customer,
    customers: Sequence[Customer],
) -> List[Order]:
    """庫存轉出: 整筆訂單改掛到指定顧客 (不拆數量)"""
    stock = require_stock_customer(customers)
    _require_orders(orders, [order_id])
    if target.is_stock:
        raise LifecycleError("不可轉給庫存帳號本身", order_id=order_id)

    order = next(o for o in orders if o.id == order_id)
    if order.customer_id != stock.id:
        raise LifecycleError("此訂單不在庫存區", order_id=order_id)

    return [
        o.with_changes(customer_id=target.id, status=OrderStatus.BOUGHT)
        if o.id == order_id else o
        for o in orders
    ]


def add_stock(
    product: Product,
    quantity: int,
    stock_customer: Customer,
    variant: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> Order:
    """手動新增現貨 (已買到)"""
    if not stock_customer.is_stock:
        raise StockSentinelError(f"{stock_customer.line_name} 不是庫存帳號")
    if product.has_variants and not variant:
        raise ValidationError("請選擇款式", field="variant", value=variant)

    order = Order.create(
        product_id=product.id,
        customer_id=stock_customer.id,
        quantity=quantity,
        variant=variant,
        timestamp=timestamp if timestamp is not None else now_ms(),
    )
    return order.with_changes(quantity_bought=quantity, status=OrderStatus.BOUGHT)
