"""
billing.py - 對帳引擎 (v1.0)

以「實際分配到的數量」計價，套用運費 / 賣貨便取貨支付政策，
並產生可直接傳給顧客的對帳訊息。
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date as Date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..core.config import GlobalSettings
from .models import Customer, Order, Product, index_by_id

logger = logging.getLogger(__name__)

FREE_SHIPPING_NOTE = "(滿額免運)"
ITEM_BULLET = "–"

_TOKEN_PATTERN = re.compile(r"\{\{(\w+)\}\}")


@dataclass(frozen=True)
class BillItem:
    """對帳明細"""
    order_id: str
    product_id: str
    name: str
    variant: Optional[str]
    qty: int
    price: int
    total: int

    def render(self) -> str:
        variant = f" ({self.variant})" if self.variant else ""
        return f"{ITEM_BULLET} {self.name}{variant} x{self.qty} ${self.total}"


@dataclass(frozen=True)
class Bill:
    """單一顧客的對帳單"""
    customer: Customer
    orders: Tuple[Order, ...]               # 該顧客全部未封存訂單
    items: Tuple[BillItem, ...]
    subtotal: int
    shipping_fee: int
    is_free_shipping: bool
    pickup_payment: int
    remittance_amount: int                  # 需匯款金額 (>= 0)
    is_fully_paid: bool
    payment_method: Optional[str] = None
    payment_note: Optional[str] = None
    skipped_order_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def shipping_charged(self) -> int:
        return 0 if self.is_free_shipping else self.shipping_fee

    @property
    def total(self) -> int:
        """總金額 (含運)"""
        return self.subtotal + self.shipping_charged


def build_bill(
    customer: Customer,
    active_orders_for_customer: Sequence[Order],
    products: Union[Sequence[Product], Dict[str, Product]],
    settings: GlobalSettings,
) -> Optional[Bill]:
    """計算一位顧客的對帳單

    庫存帳號不是真實顧客，不產生對帳單。
    沒有任何已分配數量 > 0 的未封存訂單時回傳 None。
    參照已刪除商品的訂單略過該行並記錄 warning。
    """
    if customer.is_stock:
        return None

    product_map = products if isinstance(products, dict) else index_by_id(products)
    orders = tuple(
        o for o in active_orders_for_customer
        if o.is_active and o.customer_id == customer.id
    )

    items: List[BillItem] = []
    skipped: List[str] = []
    qualifying: List[Order] = []
    for order in orders:
        if order.quantity_bought <= 0:
            continue
        product = product_map.get(order.product_id)
        if product is None:
            logger.warning(
                f"Skipping bill line: order {order.id} of {customer.line_name} "
                f"references missing product {order.product_id}"
            )
            skipped.append(order.id)
            continue
        qualifying.append(order)
        items.append(BillItem(
            order_id=order.id,
            product_id=product.id,
            name=product.name,
            variant=order.variant,
            qty=order.quantity_bought,
            price=product.price_twd,
            total=product.price_twd * order.quantity_bought,
        ))

    if not items:
        return None

    subtotal = sum(i.total for i in items)
    is_free_shipping = subtotal >= settings.free_shipping_threshold
    shipping = 0 if is_free_shipping else settings.shipping_fee
    remittance = max(0, subtotal - settings.pickup_payment - shipping)

    # 同一顧客通常一次付清，取任一筆已付款訂單的付款資訊
    paid = next((o for o in orders if o.is_paid), None)

    return Bill(
        customer=customer,
        orders=orders,
        items=tuple(items),
        subtotal=subtotal,
        shipping_fee=settings.shipping_fee,
        is_free_shipping=is_free_shipping,
        pickup_payment=settings.pickup_payment,
        remittance_amount=remittance,
        is_fully_paid=all(o.is_paid for o in qualifying),
        payment_method=paid.payment_method if paid else None,
        payment_note=paid.payment_note if paid else None,
        skipped_order_ids=tuple(skipped),
    )


def build_bills(
    customers: Sequence[Customer],
    orders: Iterable[Order],
    products: Sequence[Product],
    settings: GlobalSettings,
    search: str = "",
) -> List[Bill]:
    """所有顧客的對帳單: 未付清在前，已付清在後 (其餘維持顧客順序)"""
    term = search.strip().lower()
    product_map = index_by_id(products)
    by_customer: Dict[str, List[Order]] = {}
    for order in orders:
        if order.is_active:
            by_customer.setdefault(order.customer_id, []).append(order)

    bills = []
    for customer in customers:
        if term and term not in customer.line_name.lower() \
                and term not in (customer.nickname or "").lower():
            continue
        bill = build_bill(customer, by_customer.get(customer.id, []), product_map, settings)
        if bill is not None:
            bills.append(bill)

    return sorted(bills, key=lambda b: b.is_fully_paid)


def render_items(bill: Bill) -> str:
    return "\n".join(item.render() for item in bill.items)


def render_message(
    bill: Bill,
    template: str,
    session_name: str = "連線",
    on_date: Optional[Union[Date, str]] = None,
) -> str:
    """以 {{token}} 置換產生對帳訊息，無法辨識的 token 原樣保留"""
    if on_date is None:
        on_date = Date.today()
    date_text = on_date if isinstance(on_date, str) else on_date.strftime("%Y/%m/%d")

    values = {
        "date": date_text,
        "name": bill.customer.line_name,
        "items": render_items(bill),
        "subtotal": str(bill.subtotal),
        "shipping": str(bill.shipping_charged),
        "freeShippingNote": FREE_SHIPPING_NOTE if bill.is_free_shipping else "",
        "total": str(bill.total),
        "pickupPayment": str(bill.pickup_payment),
        "remittance": str(bill.remittance_amount),
        "sessionName": session_name,
    }

    def substitute(match: "re.Match") -> str:
        return values.get(match.group(1), match.group(0))

    return _TOKEN_PATTERN.sub(substitute, template or "").strip()


def register_payment(
    orders: Sequence[Order],
    bill: Bill,
    method: str,
    note: str = "",
) -> List[Order]:
    """登記收款: 對帳單內所有訂單標記為已付款"""
    bill_ids = {o.id for o in bill.orders}
    return [
        o.with_changes(is_paid=True, payment_method=method, payment_note=note or None)
        if o.id in bill_ids else o
        for o in orders
    ]
