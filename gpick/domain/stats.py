"""
stats.py - 營運統計 (v1.0)

本場統計一律以 quantity_bought (實際到貨) 計算，不混用喊單數量。
"""

from dataclasses import dataclass, field, replace
from datetime import date as Date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.config import GlobalSettings
from .models import Customer, Order, Product, index_by_id, new_id, now_ms
from .pricing import PricingCalculator


class CustomerLevel(Enum):
    """顧客等級"""
    NORMAL = "一般"
    VIP = "VIP"
    VVIP = "VVIP"


def customer_level(total_spent: int, settings: GlobalSettings) -> CustomerLevel:
    levels = settings.customer_levels
    if total_spent >= levels.vvip:
        return CustomerLevel.VVIP
    if total_spent >= levels.vip:
        return CustomerLevel.VIP
    return CustomerLevel.NORMAL


@dataclass(frozen=True)
class SessionSummary:
    """本場營運概況"""
    total_revenue: int
    total_cost: float
    total_items: int
    category_stats: Tuple[Tuple[str, int], ...] = ()
    spent_by_customer: Dict[str, int] = field(default_factory=dict)

    @property
    def net_profit(self) -> float:
        return self.total_revenue - self.total_cost


def summarize(
    products: Sequence[Product],
    orders: Iterable[Order],
    settings: GlobalSettings,
    exclude_customer_ids: Iterable[str] = (),
) -> SessionSummary:
    """未封存訂單的營收 / 成本 / 件數 / 分類統計"""
    product_map = index_by_id(products)
    excluded = set(exclude_customer_ids)
    calculator = PricingCalculator(settings)

    revenue = 0
    cost = 0.0
    items = 0
    categories: Dict[str, int] = {}
    spent: Dict[str, int] = {}

    for order in orders:
        if not order.is_active or order.customer_id in excluded:
            continue
        product = product_map.get(order.product_id)
        if product is None:
            continue
        qty = order.quantity_bought
        line = product.price_twd * qty
        revenue += line
        cost += calculator.estimate_cost_twd(product.price_jpy, qty)
        items += qty
        if qty > 0:
            categories[product.category] = categories.get(product.category, 0) + qty
            spent[order.customer_id] = spent.get(order.customer_id, 0) + line

    ranked = tuple(sorted(categories.items(), key=lambda kv: -kv[1]))
    return SessionSummary(
        total_revenue=revenue,
        total_cost=cost,
        total_items=items,
        category_stats=ranked,
        spent_by_customer=spent,
    )


@dataclass(frozen=True)
class SessionReport:
    """場次結算報表"""
    id: str
    date: str
    name: str
    total_revenue: int
    total_profit: int
    total_items: int
    exchange_rate: float
    timestamp: int

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "date": self.date,
            "name": self.name,
            "total_revenue": self.total_revenue,
            "total_profit": self.total_profit,
            "total_items": self.total_items,
            "exchange_rate": self.exchange_rate,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "SessionReport":
        return cls(
            id=data["id"],
            date=data.get("date", ""),
            name=data.get("name", ""),
            total_revenue=int(data.get("total_revenue", 0)),
            total_profit=int(data.get("total_profit", 0)),
            total_items=int(data.get("total_items", 0)),
            exchange_rate=float(data.get("exchange_rate", 0)),
            timestamp=int(data.get("timestamp", 0)),
        )


def build_session_report(
    summary: SessionSummary,
    settings: GlobalSettings,
    on_date: Optional[Date] = None,
) -> SessionReport:
    on_date = on_date or Date.today()
    date_text = on_date.isoformat()
    return SessionReport(
        id=new_id(),
        date=date_text,
        name=f"{date_text} {settings.session_name}",
        total_revenue=summary.total_revenue,
        total_profit=round(summary.net_profit),
        total_items=summary.total_items,
        exchange_rate=settings.jpy_exchange_rate,
        timestamp=now_ms(),
    )


def apply_session_spending(
    customers: Sequence[Customer],
    spent_by_customer: Dict[str, int],
) -> List[Customer]:
    """有參與本場的真實顧客: 累積消費 + 場次數 +1"""
    result = []
    for customer in customers:
        if customer.id in spent_by_customer and not customer.is_stock:
            customer = replace(
                customer,
                total_spent=customer.total_spent + spent_by_customer[customer.id],
                session_count=customer.session_count + 1,
            )
        result.append(customer)
    return result
