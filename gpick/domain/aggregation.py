"""
aggregation.py - 需求彙整 (v1.0)

把扁平的訂單清單依 (商品, 款式) 分組。
純函式，每次訂單變動後重新計算，不作為快取狀態保存。
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Customer, Order, OrderStatus, Product, active_orders, index_by_id


GroupKey = Tuple[str, Optional[str]]


@dataclass(frozen=True)
class DemandGroup:
    """同一商品款式的需求群組 (orders 依喊單時間排序)"""
    product_id: str
    variant: Optional[str]
    orders: Tuple[Order, ...]
    product: Optional[Product] = None

    @property
    def key(self) -> GroupKey:
        return (self.product_id, self.variant)

    @property
    def total_needed(self) -> int:
        return sum(o.quantity for o in self.orders)

    @property
    def total_bought(self) -> int:
        return sum(o.quantity_bought for o in self.orders)

    @property
    def remaining(self) -> int:
        return max(0, self.total_needed - self.total_bought)

    @property
    def is_complete(self) -> bool:
        return self.total_bought >= self.total_needed

    @property
    def display_name(self) -> str:
        name = self.product.name if self.product else self.product_id
        return f"{name} ({self.variant})" if self.variant else name


def sort_by_priority(orders: Iterable[Order]) -> Tuple[Order, ...]:
    """喊單時間早者優先 (同時間維持原順序)"""
    return tuple(sorted(orders, key=lambda o: o.timestamp))


def group_by_product_variant(
    products: Sequence[Product],
    orders: Iterable[Order],
) -> List[DemandGroup]:
    """依 (商品, 款式) 分組未封存訂單

    - 分組順序: 商品清單順序，同商品內依款式首次出現順序
    - 參照不存在商品的訂單不列入 (見 find_orphan_orders)
    - total_needed == 0 的群組捨棄
    """
    by_product: Dict[str, Dict[Optional[str], List[Order]]] = {}
    for order in active_orders(orders):
        variants = by_product.setdefault(order.product_id, {})
        variants.setdefault(order.variant_key, []).append(order)

    groups: List[DemandGroup] = []
    for product in products:
        for variant, variant_orders in by_product.get(product.id, {}).items():
            group = DemandGroup(
                product_id=product.id,
                variant=variant,
                orders=sort_by_priority(variant_orders),
                product=product,
            )
            if group.total_needed > 0:
                groups.append(group)

    return groups


def find_group(
    groups: Iterable[DemandGroup],
    product_id: str,
    variant: Optional[str] = None,
) -> Optional[DemandGroup]:
    key = (product_id, variant or None)
    for group in groups:
        if group.key == key:
            return group
    return None


def shopping_list(
    products: Sequence[Product],
    orders: Iterable[Order],
    search: str = "",
) -> List[DemandGroup]:
    """採購清單: 未買齊在前，可用商品名稱搜尋"""
    term = search.strip().lower()
    groups = [
        g for g in group_by_product_variant(products, orders)
        if not term or term in g.product.name.lower()
    ]
    # sorted 為穩定排序
    return sorted(groups, key=lambda g: g.is_complete)


@dataclass(frozen=True)
class ProductTotal:
    """商品總量 (依款式細分)"""
    product: Product
    quantity: int
    variants: Dict[Optional[str], int] = field(default_factory=dict)


def product_totals(
    products: Sequence[Product],
    orders: Iterable[Order],
    search: str = "",
) -> List[ProductTotal]:
    """貨物總量檢視: 每個商品的喊單總數，多的在前"""
    term = search.strip().lower()
    totals: Dict[str, ProductTotal] = {}
    for group in group_by_product_variant(products, orders):
        if term and term not in group.product.name.lower():
            continue
        current = totals.get(group.product_id)
        variants = dict(current.variants) if current else {}
        variants[group.variant] = group.total_needed
        totals[group.product_id] = ProductTotal(
            product=group.product,
            quantity=(current.quantity if current else 0) + group.total_needed,
            variants=variants,
        )
    return sorted(totals.values(), key=lambda t: -t.quantity)


@dataclass(frozen=True)
class CustomerPackage:
    """包裝檢視: 一位顧客的未封存訂單"""
    customer: Customer
    orders: Tuple[Order, ...]

    @property
    def is_fully_packed(self) -> bool:
        return all(o.status in (OrderStatus.PACKED, OrderStatus.SHIPPED) for o in self.orders)


def customer_packages(
    customers: Sequence[Customer],
    orders: Iterable[Order],
    search: str = "",
) -> List[CustomerPackage]:
    """真實顧客 (排除庫存帳號) 的包裝清單，未包完在前"""
    term = search.strip().lower()
    active = active_orders(orders)
    packages = []
    for customer in customers:
        if customer.is_stock:
            continue
        if term and term not in customer.line_name.lower():
            continue
        mine = tuple(o for o in active if o.customer_id == customer.id)
        if mine:
            packages.append(CustomerPackage(customer=customer, orders=mine))
    return sorted(packages, key=lambda p: p.is_fully_packed)


@dataclass(frozen=True)
class OrphanOrder:
    order: Order
    missing_product: bool
    missing_customer: bool


def find_orphan_orders(
    products: Sequence[Product],
    customers: Sequence[Customer],
    orders: Iterable[Order],
) -> List[OrphanOrder]:
    """未封存訂單中參照已刪除商品/顧客者"""
    product_ids = index_by_id(products)
    customer_ids = index_by_id(customers)
    orphans = []
    for order in active_orders(orders):
        missing_product = order.product_id not in product_ids
        missing_customer = order.customer_id not in customer_ids
        if missing_product or missing_customer:
            orphans.append(OrphanOrder(order, missing_product, missing_customer))
    return orphans
