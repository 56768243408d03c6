"""
order_desk.py - 訂單作業協調 (v1.0)

所有操作都是: 讀取快照 -> 純函式計算 -> 一次寫回。
寫入以整個集合為單位，因此所有會寫入的操作都在同一把鎖內執行，
同一群組的「讀取已買總數 -> 重寫每筆訂單」不會被其他寫入插隊。
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date as Date
from typing import List, Optional, Sequence

from config.logging_config import PerformanceLogger

from ..core.config import GlobalSettings
from ..core.exceptions import ConfigurationError, NotFoundError, ValidationError
from ..domain import aggregation, allocation, billing, lifecycle, records, stats
from ..domain.aggregation import DemandGroup
from ..domain.billing import Bill
from ..domain.models import (
    Customer,
    NotificationStatus,
    Order,
    OrderStatus,
    OrderUpdate,
    Product,
    find_customer_by_name,
    index_by_id,
    new_id,
)
from ..domain.pricing import PricingCalculator
from ..storage.repository import StoreRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationOutcome:
    """採購數量更新結果"""
    group: DemandGroup
    updates: List[OrderUpdate]
    surplus: int = 0
    surplus_order: Optional[Order] = None
    newly_satisfied_order_ids: frozenset = frozenset()
    newly_completed_order_ids: frozenset = frozenset()


class OrderDesk:
    """連線作業入口"""

    def __init__(self, repository: StoreRepository):
        """
        Args:
            repository: 儲存庫
        """
        self.repository = repository
        self._lock = threading.RLock()
        self._perf = PerformanceLogger(logger)

    # ========== 啟動 ==========

    def bootstrap(self) -> Customer:
        """確保庫存帳號存在 (只在啟動時補建)"""
        with self._lock:
            customers = self.repository.load_customers()
            customers, stock, created = lifecycle.ensure_stock_customer(customers)
            if created:
                self.repository.save(customers=customers)
                logger.info(f"Created stock customer {stock.id}")
            return stock

    # ========== 查詢 ==========

    @property
    def settings(self) -> GlobalSettings:
        return self.repository.load_settings()

    def get_product(self, ref: str) -> Product:
        """以 id 或完整名稱找商品"""
        products = self.repository.load_products()
        for product in products:
            if product.id == ref:
                return product
        for product in products:
            if product.name == ref:
                return product
        raise NotFoundError(f"找不到商品: {ref}", entity="product", entity_id=ref)

    def get_customer(self, ref: str) -> Customer:
        """以 id、LINE 名稱或暱稱找顧客"""
        customers = self.repository.load_customers()
        for customer in customers:
            if customer.id == ref or customer.matches_name(ref):
                return customer
        raise NotFoundError(f"找不到顧客: {ref}", entity="customer", entity_id=ref)

    def shopping_list(self, search: str = "") -> List[DemandGroup]:
        return aggregation.shopping_list(
            self.repository.load_products(), self.repository.load_orders(), search
        )

    def product_totals(self, search: str = "") -> List[aggregation.ProductTotal]:
        return aggregation.product_totals(
            self.repository.load_products(), self.repository.load_orders(), search
        )

    def packing_list(self, search: str = "") -> List[aggregation.CustomerPackage]:
        return aggregation.customer_packages(
            self.repository.load_customers(), self.repository.load_orders(), search
        )

    def stock_items(self) -> List[Order]:
        stock = lifecycle.require_stock_customer(self.repository.load_customers())
        return [
            o for o in self.repository.load_orders()
            if o.is_active and o.customer_id == stock.id
        ]

    def bills(self, search: str = "") -> List[Bill]:
        return billing.build_bills(
            self.repository.load_customers(),
            self.repository.load_orders(),
            self.repository.load_products(),
            self.settings,
            search,
        )

    def bill_for(self, customer_ref: str) -> Optional[Bill]:
        customer = self.get_customer(customer_ref)
        orders = [o for o in self.repository.load_orders() if o.customer_id == customer.id]
        return billing.build_bill(
            customer, [o for o in orders if o.is_active],
            self.repository.load_products(), self.settings,
        )

    def bill_message(
        self,
        customer_ref: str,
        template: Optional[str] = None,
        on_date: Optional[Date] = None,
    ) -> Optional[str]:
        """對帳通知訊息 (沒有可對帳的項目時回傳 None)"""
        bill = self.bill_for(customer_ref)
        if bill is None:
            return None
        settings = self.settings
        return billing.render_message(
            bill,
            template if template is not None else settings.billing_message_template,
            session_name=settings.session_name,
            on_date=on_date,
        )

    def summary(self) -> stats.SessionSummary:
        return stats.summarize(
            self.repository.load_products(), self.repository.load_orders(), self.settings
        )

    def diagnostics(self) -> List[aggregation.OrphanOrder]:
        """參照不一致的訂單"""
        orphans = aggregation.find_orphan_orders(
            self.repository.load_products(),
            self.repository.load_customers(),
            self.repository.load_orders(),
        )
        if orphans:
            logger.warning(f"{len(orphans)} active orders reference missing products/customers")
        return orphans

    def suggest_price(self, price_jpy: float) -> Optional[int]:
        return PricingCalculator(self.settings).suggest_price_twd(price_jpy)

    # ========== 商品 / 顧客 / 喊單 ==========

    def add_product(
        self,
        name: str,
        price_jpy: int,
        price_twd: Optional[int] = None,
        variants: Sequence[str] = (),
        category: str = "",
        brand: Optional[str] = None,
    ) -> Product:
        """新增商品 (未指定台幣售價時依價格區間建議)"""
        if not name.strip():
            raise ValidationError("商品名稱不可為空", field="name", value=name)
        if price_jpy < 0:
            raise ValidationError("價格不可為負數", field="price_jpy", value=price_jpy)

        with self._lock:
            settings = self.settings
            if price_twd is None:
                price_twd = PricingCalculator(settings).suggest_price_twd(price_jpy) or 0
            if price_twd < 0:
                raise ValidationError("價格不可為負數", field="price_twd", value=price_twd)

            product = Product(
                id=new_id(),
                name=name.strip(),
                variants=tuple(v.strip() for v in variants if v.strip()),
                price_jpy=price_jpy,
                price_twd=price_twd,
                category=category or (settings.product_categories[0] if settings.product_categories else ""),
                brand=brand,
            )
            products = self.repository.load_products()
            self.repository.save(products=[*products, product])
            logger.info(f"Added product {product.name} ({product.id})")
            return product

    def add_customer(self, line_name: str, nickname: Optional[str] = None) -> Customer:
        if not line_name.strip():
            raise ValidationError("LINE 名稱不可為空", field="line_name", value=line_name)
        with self._lock:
            customers = self.repository.load_customers()
            customer = Customer(id=new_id(), line_name=line_name.strip(), nickname=nickname)
            self.repository.save(customers=[*customers, customer])
            return customer

    def add_order(
        self,
        product_ref: str,
        customer_name: str,
        quantity: int,
        variant: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> Order:
        """新增喊單，顧客不存在時自動建立 (以 LINE 名稱或暱稱比對)"""
        with self._lock:
            product = self.get_product(product_ref)
            if not product.accepts_variant(variant):
                raise ValidationError(
                    f"{product.name} 沒有款式 {variant!r}", field="variant", value=variant
                )

            customers = self.repository.load_customers()
            customer = find_customer_by_name(customers, customer_name)
            if customer is None:
                name = customer_name.strip()
                if not name:
                    raise ValidationError("顧客名稱不可為空", field="customer", value=customer_name)
                customer = Customer(id=new_id(), line_name=name, nickname=name)
                customers = [*customers, customer]
                logger.info(f"Auto-created customer {name}")
            elif customer.is_blacklisted:
                logger.warning(f"Order from blacklisted customer {customer.line_name}")

            order = Order.create(
                product_id=product.id,
                customer_id=customer.id,
                quantity=quantity,
                variant=variant,
                timestamp=timestamp,
            )
            orders = self.repository.load_orders()
            self.repository.save(customers=customers, orders=[*orders, order])
            return order

    # ========== 採購分配 ==========

    def _load_group(self, product_id: str, variant: Optional[str]):
        products = self.repository.load_products()
        orders = self.repository.load_orders()
        group = aggregation.find_group(
            aggregation.group_by_product_variant(products, orders), product_id, variant
        )
        return orders, group

    def set_bought(
        self,
        product_ref: str,
        total_bought: int,
        variant: Optional[str] = None,
        stock_surplus: bool = False,
    ) -> AllocationOutcome:
        """輸入實際買到的總數，依喊單順序重新分配"""
        with self._lock:
            product = self.get_product(product_ref)
            orders, group = self._load_group(product.id, variant)
            if group is None:
                raise NotFoundError(
                    f"{product.name} 沒有進行中的喊單", entity="group", entity_id=product.id
                )

            with self._perf.track("reallocate", group=group.display_name, total=total_bought):
                updates = allocation.reallocate(group, total_bought)
                return self._persist_allocation(
                    product, group, orders, updates, total_bought, stock_surplus
                )

    def add_bought(
        self,
        product_ref: str,
        added_quantity: int,
        variant: Optional[str] = None,
        stock_surplus: bool = False,
    ) -> AllocationOutcome:
        """追加買到 N 個"""
        with self._lock:
            product = self.get_product(product_ref)
            orders, group = self._load_group(product.id, variant)
            if group is None:
                raise NotFoundError(
                    f"{product.name} 沒有進行中的喊單", entity="group", entity_id=product.id
                )

            with self._perf.track("allocate_increment", group=group.display_name, added=added_quantity):
                result = allocation.allocate_increment(group, added_quantity)
                outcome = self._persist_allocation(
                    product, group, orders, result.updates, result.new_total_bought, stock_surplus
                )
            return AllocationOutcome(
                group=outcome.group,
                updates=outcome.updates,
                surplus=outcome.surplus,
                surplus_order=outcome.surplus_order,
                newly_satisfied_order_ids=result.newly_satisfied_order_ids,
                newly_completed_order_ids=result.newly_completed_order_ids,
            )

    def _persist_allocation(
        self,
        product: Product,
        group: DemandGroup,
        orders: List[Order],
        updates: List[OrderUpdate],
        total_bought: int,
        stock_surplus: bool,
    ) -> AllocationOutcome:
        new_orders = allocation.apply_updates(orders, updates)
        surplus = allocation.surplus_for(group, total_bought)
        surplus_order = None

        if surplus > 0:
            logger.warning(f"Bought {surplus} more {group.display_name} than requested")
            if stock_surplus:
                stock = lifecycle.require_stock_customer(self.repository.load_customers())
                surplus_order = lifecycle.add_stock(product, surplus, stock, group.variant)
                new_orders.append(surplus_order)

        self.repository.save(orders=new_orders)
        # group.orders 已依優先序排列，與 updates 一一對應
        updated_group = DemandGroup(
            product_id=group.product_id,
            variant=group.variant,
            orders=tuple(u.apply_to(o) for u, o in zip(updates, group.orders)),
            product=group.product,
        )
        logger.info(f"Reallocated {group.display_name}: {updated_group.total_bought}/{group.total_needed}")
        return AllocationOutcome(
            group=updated_group,
            updates=updates,
            surplus=surplus,
            surplus_order=surplus_order,
        )

    # ========== 單筆狀態 ==========

    def _update_order(self, order_id: str, change) -> Order:
        with self._lock:
            orders = self.repository.load_orders()
            target = next((o for o in orders if o.id == order_id), None)
            if target is None:
                raise NotFoundError(f"找不到訂單: {order_id}", entity="order", entity_id=order_id)
            updated = change(target)
            self.repository.save(orders=[updated if o.id == order_id else o for o in orders])
            return updated

    def toggle_notification(self, order_id: str) -> Order:
        def flip(order: Order) -> Order:
            notified = order.notification_status == NotificationStatus.NOTIFIED
            return order.with_changes(
                notification_status=NotificationStatus.UNNOTIFIED if notified else NotificationStatus.NOTIFIED
            )
        return self._update_order(order_id, flip)

    def toggle_packed(self, order_id: str) -> Order:
        def flip(order: Order) -> Order:
            packed = order.status == OrderStatus.PACKED
            return order.with_changes(status=OrderStatus.BOUGHT if packed else OrderStatus.PACKED)
        return self._update_order(order_id, flip)

    # ========== 編輯 / 刪除 ==========

    def update_order(
        self,
        order_id: str,
        quantity: Optional[int] = None,
        variant: Optional[str] = None,
    ) -> Order:
        """修改喊單數量或款式 (已分配數量在下次登記採購時重新分配)"""
        with self._lock:
            orders = self.repository.load_orders()
            target = next((o for o in orders if o.id == order_id), None)
            product = None
            if target is not None:
                product = index_by_id(self.repository.load_products()).get(target.product_id)
            orders = records.update_order(orders, order_id, product, quantity, variant)
            self.repository.save(orders=orders)
            logger.info(f"Updated order {order_id}")
            return next(o for o in orders if o.id == order_id)

    def delete_order(self, order_id: str) -> Order:
        """刪除單筆訂單 (含庫存現貨)"""
        with self._lock:
            orders = self.repository.load_orders()
            removed = next((o for o in orders if o.id == order_id), None)
            self.repository.save(orders=records.delete_order(orders, order_id))
            logger.info(f"Deleted order {order_id}")
            return removed

    def delete_product(self, product_ref: str) -> Product:
        """刪除商品，相關訂單保留 (之後會列在參照不一致清單)"""
        with self._lock:
            product = self.get_product(product_ref)
            products = records.delete_product(self.repository.load_products(), product.id)
            self.repository.save(products=products)
            affected = sum(
                1 for o in self.repository.load_orders()
                if o.is_active and o.product_id == product.id
            )
            if affected:
                logger.warning(f"Deleted product {product.name} still has {affected} active orders")
            else:
                logger.info(f"Deleted product {product.name}")
            return product

    def delete_customer(self, customer_ref: str) -> List[Order]:
        """刪除顧客與其所有訂單，回傳被刪除的訂單"""
        with self._lock:
            customer = self.get_customer(customer_ref)
            customers, orders, removed = records.delete_customer(
                self.repository.load_customers(), self.repository.load_orders(), customer.id
            )
            self.repository.save(customers=customers, orders=orders)
            logger.info(f"Deleted customer {customer.line_name} with {len(removed)} orders")
            return removed

    def update_customer(self, customer_ref: str, **changes) -> Customer:
        with self._lock:
            customer = self.get_customer(customer_ref)
            customers = records.update_customer(
                self.repository.load_customers(), customer.id, **changes
            )
            self.repository.save(customers=customers)
            return next(c for c in customers if c.id == customer.id)

    def set_blacklisted(self, customer_ref: str, blacklisted: bool = True) -> Customer:
        customer = self.update_customer(customer_ref, is_blacklisted=blacklisted)
        logger.info(f"{customer.line_name} blacklisted={blacklisted}")
        return customer

    # ========== 收款 ==========

    def register_payment(self, customer_ref: str, method: str, note: str = "") -> Bill:
        with self._lock:
            bill = self.bill_for(customer_ref)
            if bill is None:
                raise ValidationError(
                    "此顧客沒有可對帳的項目", field="customer", value=customer_ref
                )
            orders = billing.register_payment(self.repository.load_orders(), bill, method, note)
            self.repository.save(orders=orders)
            logger.info(f"Registered payment for {bill.customer.line_name}: ${bill.remittance_amount}")
            return bill

    # ========== 場次 / 庫存 ==========

    def abandon(self, order_ids: Sequence[str]) -> List[Order]:
        """棄單轉庫存 (全部成功或全部不變)"""
        with self._lock:
            orders = self.repository.load_orders()
            new_orders = lifecycle.abandon_to_stock(
                orders, order_ids, self.repository.load_customers()
            )
            self.repository.save(orders=new_orders)
            ids = set(order_ids)
            logger.info(f"Moved {len(ids)} orders to stock")
            return [o for o in new_orders if o.id in ids]

    def abandon_customer(self, customer_ref: str) -> List[Order]:
        """整位顧客的未封存訂單轉庫存"""
        with self._lock:
            customer = self.get_customer(customer_ref)
            if customer.is_stock:
                raise ValidationError("庫存帳號不可棄單", field="customer", value=customer_ref)
            ids = [
                o.id for o in self.repository.load_orders()
                if o.is_active and o.customer_id == customer.id
            ]
            if not ids:
                return []
            return self.abandon(ids)

    def reassign(self, order_id: str, customer_ref: str) -> Order:
        """庫存轉給顧客"""
        with self._lock:
            target = self.get_customer(customer_ref)
            orders = lifecycle.reassign_from_stock(
                self.repository.load_orders(), order_id, target,
                self.repository.load_customers(),
            )
            self.repository.save(orders=orders)
            return next(o for o in orders if o.id == order_id)

    def add_stock(self, product_ref: str, quantity: int, variant: Optional[str] = None) -> Order:
        with self._lock:
            product = self.get_product(product_ref)
            stock = lifecycle.require_stock_customer(self.repository.load_customers())
            order = lifecycle.add_stock(product, quantity, stock, variant)
            self.repository.save(orders=[*self.repository.load_orders(), order])
            return order

    def archive_session(self, on_date: Optional[Date] = None) -> Optional[stats.SessionReport]:
        """結算並封存本場 (報表、顧客累積消費、訂單封存一起寫入)

        沒有可封存的訂單時回傳 None。
        """
        with self._lock:
            products = self.repository.load_products()
            customers = self.repository.load_customers()
            orders = self.repository.load_orders()
            settings = self.settings
            stock = lifecycle.find_stock_customer(customers)
            stock_id = stock.id if stock else None

            with self._perf.track("archive_session"):
                result = lifecycle.archive_session(orders, stock_id)
                if not result.archived:
                    logger.info("Nothing to archive")
                    return None

                summary = stats.summarize(products, result.archived, settings)
                report = stats.build_session_report(summary, settings, on_date)
                customers = stats.apply_session_spending(customers, summary.spent_by_customer)
                reports = [report, *self.repository.load_reports()]

                self.repository.save(customers=customers, orders=result.orders, reports=reports)

            logger.info(f"Archived {len(result.archived)} orders into {report.name}")
            return report

    def update_settings(self, **changes) -> GlobalSettings:
        """更新營運設定 (格式或檢查不通過時拋出 ConfigurationError，不寫入)"""
        with self._lock:
            updated = self.settings.with_changes(**changes)
            errors = updated.validate()
            if errors:
                raise ConfigurationError("; ".join(errors), config_key=",".join(changes))
            self.repository.save(settings=updated)
            logger.info(f"Updated settings: {', '.join(changes)}")
            return updated
