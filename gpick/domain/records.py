"""
records.py - 商品 / 顧客 / 訂單 維護 (v1.0)

明確的編輯與刪除操作，皆為純函式:
回傳新的清單快照，找不到對象或檢查不通過時在變更前拋出例外。

刪除商品不會連帶刪除訂單，這些訂單會出現在參照不一致清單中；
刪除顧客則連同其所有訂單一起刪除。
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.exceptions import NotFoundError, ValidationError
from .models import Customer, Order, OrderStatus, Product


EDITABLE_CUSTOMER_FIELDS = ("line_name", "nickname", "note", "is_blacklisted")


def _find(items: Iterable, item_id: str, entity: str, label: str):
    for item in items:
        if item.id == item_id:
            return item
    raise NotFoundError(f"找不到{label}: {item_id}", entity=entity, entity_id=item_id)


def update_order(
    orders: Sequence[Order],
    order_id: str,
    product: Optional[Product] = None,
    quantity: Optional[int] = None,
    variant: Optional[str] = None,
) -> List[Order]:
    """修改喊單數量或款式

    已分配數量保留，待下次登記採購時重新分配。
    PENDING / BOUGHT 依新數量重算；已包裝或已出貨的狀態不動。
    """
    target = _find(orders, order_id, "order", "訂單")
    changes = {}

    if quantity is not None:
        if not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("喊單數量至少為 1", field="quantity", value=quantity)
        changes["quantity"] = quantity

    if variant is not None:
        variant = variant or None
        if product is not None and not product.accepts_variant(variant):
            raise ValidationError(
                f"{product.name} 沒有款式 {variant!r}", field="variant", value=variant
            )
        changes["variant"] = variant

    if not changes:
        return list(orders)

    updated = target.with_changes(**changes)
    if updated.status in (OrderStatus.PENDING, OrderStatus.BOUGHT):
        updated = updated.with_changes(
            status=OrderStatus.BOUGHT if updated.is_fully_bought else OrderStatus.PENDING
        )
    return [updated if o.id == order_id else o for o in orders]


def delete_order(orders: Sequence[Order], order_id: str) -> List[Order]:
    _find(orders, order_id, "order", "訂單")
    return [o for o in orders if o.id != order_id]


def delete_product(products: Sequence[Product], product_id: str) -> List[Product]:
    """刪除商品 (訂單保留)"""
    _find(products, product_id, "product", "商品")
    return [p for p in products if p.id != product_id]


def delete_customer(
    customers: Sequence[Customer],
    orders: Sequence[Order],
    customer_id: str,
) -> Tuple[List[Customer], List[Order], List[Order]]:
    """刪除顧客與其所有訂單 (含已封存)

    Returns:
        (新顧客清單, 新訂單清單, 被刪除的訂單)
    """
    customer = _find(customers, customer_id, "customer", "顧客")
    if customer.is_stock:
        raise ValidationError("庫存帳號不可刪除", field="customer", value=customer_id)

    removed = [o for o in orders if o.customer_id == customer_id]
    return (
        [c for c in customers if c.id != customer_id],
        [o for o in orders if o.customer_id != customer_id],
        removed,
    )


def update_customer(
    customers: Sequence[Customer],
    customer_id: str,
    **changes,
) -> List[Customer]:
    """修改顧客資料 (LINE 名稱、暱稱、備註、黑名單)"""
    unknown = [k for k in changes if k not in EDITABLE_CUSTOMER_FIELDS]
    if unknown:
        raise ValidationError(
            f"不可修改的欄位: {', '.join(unknown)}", field=unknown[0], value=changes[unknown[0]]
        )

    customer = _find(customers, customer_id, "customer", "顧客")
    if "line_name" in changes:
        line_name = (changes["line_name"] or "").strip()
        if not line_name:
            raise ValidationError("LINE 名稱不可為空", field="line_name", value=changes["line_name"])
        changes["line_name"] = line_name
    if customer.is_stock and changes.get("is_blacklisted"):
        raise ValidationError("庫存帳號不可列入黑名單", field="is_blacklisted", value=True)

    updated = customer.with_changes(**changes)
    return [updated if c.id == customer_id else c for c in customers]
