"""領域模組 (v1.0) - 純商業邏輯"""
from .models import (
    Product,
    Customer,
    Order,
    OrderUpdate,
    OrderStatus,
    NotificationStatus,
)
from .aggregation import (
    DemandGroup,
    group_by_product_variant,
    shopping_list,
    product_totals,
    customer_packages,
    find_orphan_orders,
)
from .allocation import (
    IncrementResult,
    reallocate,
    allocate_increment,
    apply_updates,
    surplus_for,
)
from .billing import Bill, BillItem, build_bill, build_bills, render_message
from .lifecycle import (
    archive_session,
    abandon_to_stock,
    reassign_from_stock,
    ensure_stock_customer,
    require_stock_customer,
    add_stock,
)
from .records import (
    update_order,
    delete_order,
    delete_product,
    delete_customer,
    update_customer,
)
from .pricing import PricingCalculator
from .stats import CustomerLevel, SessionSummary, SessionReport, summarize, customer_level

__all__ = [
    # 模型
    "Product",
    "Customer",
    "Order",
    "OrderUpdate",
    "OrderStatus",
    "NotificationStatus",
    # 需求彙整
    "DemandGroup",
    "group_by_product_variant",
    "shopping_list",
    "product_totals",
    "customer_packages",
    "find_orphan_orders",
    # 分配
    "IncrementResult",
    "reallocate",
    "allocate_increment",
    "apply_updates",
    "surplus_for",
    # 對帳
    "Bill",
    "BillItem",
    "build_bill",
    "build_bills",
    "render_message",
    # 場次 / 庫存
    "archive_session",
    "abandon_to_stock",
    "reassign_from_stock",
    "ensure_stock_customer",
    "require_stock_customer",
    "add_stock",
    # 編輯 / 刪除
    "update_order",
    "delete_order",
    "delete_product",
    "delete_customer",
    "update_customer",
    # 售價 / 統計
    "PricingCalculator",
    "CustomerLevel",
    "SessionSummary",
    "SessionReport",
    "summarize",
    "customer_level",
]
