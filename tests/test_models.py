"""models.py 測試"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from gpick.core.exceptions import ValidationError
from gpick.domain.models import (
    Customer,
    NotificationStatus,
    Order,
    OrderStatus,
    OrderUpdate,
    Product,
    active_orders,
    find_customer_by_name,
    index_by_id,
)


class TestProduct:
    """Product 測試"""

    def test_no_variants(self):
        product = Product(id="p1", name="EVE 止痛藥")
        assert product.has_variants is False
        assert product.accepts_variant(None)
        assert not product.accepts_variant("S")

    def test_variants(self):
        product = Product(id="p1", name="T恤", variants=("S", "M"))
        assert product.has_variants
        assert product.accepts_variant("M")
        assert not product.accepts_variant("XL")
        assert not product.accepts_variant(None)

    def test_dict_roundtrip_keeps_variants_tuple(self):
        product = Product(id="p1", name="T恤", variants=("S", "M"), price_jpy=1500, price_twd=525)
        restored = Product.from_dict(product.to_dict())
        assert restored == product
        assert isinstance(restored.variants, tuple)


class TestCustomer:
    """Customer 測試"""

    def test_matches_line_name_or_nickname(self):
        customer = Customer(id="c1", line_name="Amy Chen", nickname="小美")
        assert customer.matches_name("Amy Chen")
        assert customer.matches_name(" 小美 ")
        assert not customer.matches_name("")
        assert not customer.matches_name("Bob")

    def test_find_customer_by_name(self):
        amy = Customer(id="c1", line_name="Amy Chen", nickname="小美")
        bob = Customer(id="c2", line_name="Bob")
        assert find_customer_by_name([amy, bob], "小美") is amy
        assert find_customer_by_name([amy, bob], "Bob") is bob
        assert find_customer_by_name([amy, bob], "Carol") is None

    def test_from_dict_defaults(self):
        customer = Customer.from_dict({"id": "c1", "line_name": "Amy"})
        assert customer.is_stock is False
        assert customer.total_spent == 0


class TestOrder:
    """Order 測試"""

    def test_create_defaults(self):
        order = Order.create("p1", "c1", 2, timestamp=5)
        assert order.quantity == 2
        assert order.quantity_bought == 0
        assert order.status == OrderStatus.PENDING
        assert order.notification_status == NotificationStatus.UNNOTIFIED
        assert order.is_active
        assert order.timestamp == 5

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_create_rejects_non_positive_quantity(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            Order.create("p1", "c1", quantity)
        assert exc_info.value.field == "quantity"

    def test_empty_variant_normalized(self):
        order = Order.create("p1", "c1", 1, variant="")
        assert order.variant is None
        assert order.variant_key is None

    def test_is_fully_bought(self):
        order = Order.create("p1", "c1", 2)
        assert not order.is_fully_bought
        assert order.with_changes(quantity_bought=2).is_fully_bought

    def test_with_changes_returns_new_object(self):
        order = Order.create("p1", "c1", 2)
        changed = order.with_changes(is_paid=True)
        assert order.is_paid is False
        assert changed.is_paid is True

    def test_dict_roundtrip(self):
        order = Order.create("p1", "c1", 3, variant="M", timestamp=10).with_changes(
            quantity_bought=1,
            notification_status=NotificationStatus.NOTIFIED,
            is_paid=True,
            payment_method="轉帳",
            payment_note="12345",
        )
        assert Order.from_dict(order.to_dict()) == order

    def test_from_dict_missing_quantity_bought(self):
        order = Order.from_dict({
            "id": "o1", "product_id": "p1", "customer_id": "c1",
            "quantity": 2, "quantity_bought": None, "status": "PENDING", "timestamp": 1,
        })
        assert order.quantity_bought == 0


class TestOrderUpdate:
    """OrderUpdate 測試"""

    def test_apply_to(self):
        order = Order.create("p1", "c1", 2, order_id="o1")
        updated = OrderUpdate("o1", 2, OrderStatus.BOUGHT).apply_to(order)
        assert updated.quantity_bought == 2
        assert updated.status == OrderStatus.BOUGHT
        assert updated.customer_id == "c1"


class TestHelpers:
    """輔助函式測試"""

    def test_active_orders(self):
        a = Order.create("p1", "c1", 1, order_id="a")
        b = Order.create("p1", "c1", 1, order_id="b").with_changes(is_archived=True)
        assert active_orders([a, b]) == (a,)

    def test_index_by_id(self):
        a = Product(id="p1", name="A")
        assert index_by_id([a]) == {"p1": a}
