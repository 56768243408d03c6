"""billing.py 測試 - 對帳計算 / 訊息"""

import logging
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from gpick.core.config import GlobalSettings
from gpick.domain.billing import (
    FREE_SHIPPING_NOTE,
    build_bill,
    build_bills,
    register_payment,
    render_items,
    render_message,
)
from gpick.domain.models import Customer, Order, Product


SETTINGS = GlobalSettings()


def bought(order_id, product_id, customer_id, quantity_bought, variant=None, **changes):
    order = Order.create(
        product_id, customer_id, max(1, quantity_bought),
        variant=variant, timestamp=1, order_id=order_id,
    )
    return order.with_changes(quantity_bought=quantity_bought, **changes)


class TestBuildBill:
    """對帳金額計算"""

    def setup_method(self):
        self.amy = Customer(id="amy", line_name="Amy", nickname="小美")
        self.eve = Product(id="eve", name="EVE 止痛藥", price_twd=250)
        self.bag = Product(id="bag", name="托特包", price_twd=3000)
        self.products = [self.eve, self.bag]

    def test_basic_remittance(self):
        bill = build_bill(self.amy, [bought("o1", "eve", "amy", 2)], self.products, SETTINGS)

        assert bill.items[0].total == 500
        assert bill.subtotal == 500
        assert bill.is_free_shipping is False
        assert bill.shipping_charged == 38
        assert bill.total == 538
        assert bill.remittance_amount == 442

    def test_free_shipping_at_threshold(self):
        bill = build_bill(self.amy, [bought("o1", "bag", "amy", 1)], self.products, SETTINGS)

        assert bill.subtotal == 3000
        assert bill.is_free_shipping is True
        assert bill.shipping_charged == 0
        assert bill.remittance_amount == 3000 - 20

    def test_remittance_never_negative(self):
        cheap = Product(id="gum", name="口香糖", price_twd=10)
        bill = build_bill(self.amy, [bought("o1", "gum", "amy", 1)], [cheap], SETTINGS)
        assert bill.remittance_amount == 0

    def test_remittance_non_negative_with_large_fees(self):
        settings = SETTINGS.with_changes(shipping_fee=900, pickup_payment=900)
        bill = build_bill(self.amy, [bought("o1", "eve", "amy", 2)], self.products, settings)
        assert bill.remittance_amount == 0

    def test_bills_on_bought_quantity(self):
        order = Order.create("eve", "amy", 5, order_id="o1").with_changes(quantity_bought=2)
        bill = build_bill(self.amy, [order], self.products, SETTINGS)
        assert bill.items[0].qty == 2
        assert bill.subtotal == 500

    def test_no_items_returns_none(self):
        order = Order.create("eve", "amy", 3, order_id="o1")
        assert build_bill(self.amy, [order], self.products, SETTINGS) is None

    def test_stock_customer_not_billed(self):
        stock = Customer(id="stock", line_name="📦 庫存", is_stock=True)
        order = bought("o1", "eve", "stock", 2)
        assert build_bill(stock, [order], self.products, SETTINGS) is None

    def test_archived_and_foreign_orders_ignored(self):
        orders = [
            bought("o1", "eve", "amy", 1),
            bought("o2", "eve", "amy", 1, is_archived=True),
            bought("o3", "eve", "bob", 1),
        ]
        bill = build_bill(self.amy, orders, self.products, SETTINGS)
        assert [i.order_id for i in bill.items] == ["o1"]

    def test_missing_product_skipped_with_warning(self, caplog):
        orders = [bought("o1", "eve", "amy", 1), bought("o2", "gone", "amy", 1)]
        with caplog.at_level(logging.WARNING, logger="gpick.domain.billing"):
            bill = build_bill(self.amy, orders, self.products, SETTINGS)

        assert [i.order_id for i in bill.items] == ["o1"]
        assert bill.skipped_order_ids == ("o2",)
        assert "gone" in caplog.text

    def test_payment_status(self):
        orders = [
            bought("o1", "eve", "amy", 1, is_paid=True, payment_method="轉帳", payment_note="12345"),
            bought("o2", "eve", "amy", 1),
        ]
        bill = build_bill(self.amy, orders, self.products, SETTINGS)
        assert bill.is_fully_paid is False
        assert bill.payment_method == "轉帳"
        assert bill.payment_note == "12345"

    def test_accepts_product_dict(self):
        bill = build_bill(
            self.amy, [bought("o1", "eve", "amy", 1)], {"eve": self.eve}, SETTINGS
        )
        assert bill.subtotal == 250


class TestBuildBills:
    """全部顧客對帳"""

    def test_unpaid_first_and_search(self):
        customers = [
            Customer(id="amy", line_name="Amy"),
            Customer(id="bob", line_name="Bob", nickname="阿伯"),
            Customer(id="cat", line_name="Cat"),
        ]
        products = [Product(id="eve", name="EVE", price_twd=100)]
        orders = [
            bought("o1", "eve", "amy", 1, is_paid=True),
            bought("o2", "eve", "bob", 1),
            Order.create("eve", "cat", 1, order_id="o3"),
        ]
        bills = build_bills(customers, orders, products, SETTINGS)
        assert [b.customer.id for b in bills] == ["bob", "amy"]

        searched = build_bills(customers, orders, products, SETTINGS, search="阿伯")
        assert [b.customer.id for b in searched] == ["bob"]


class TestRenderMessage:
    """對帳訊息"""

    def setup_method(self):
        self.amy = Customer(id="amy", line_name="Amy")
        products = [
            Product(id="eve", name="EVE 止痛藥", price_twd=250),
            Product(id="shirt", name="T恤", variants=("M",), price_twd=300),
        ]
        orders = [
            bought("o1", "eve", "amy", 2),
            bought("o2", "shirt", "amy", 1, variant="M"),
        ]
        self.bill = build_bill(self.amy, orders, products, SETTINGS)

    def test_items_lines(self):
        assert render_items(self.bill) == "– EVE 止痛藥 x2 $500\n– T恤 (M) x1 $300"

    def test_default_template(self):
        message = render_message(self.bill, SETTINGS.billing_message_template, on_date=date(2024, 5, 1))
        assert message.startswith("【2024/05/01 連線對帳單】")
        assert "哈囉 Amy" in message
        assert "商品小計：$800" in message
        assert "運費：$38" in message
        assert FREE_SHIPPING_NOTE not in message
        assert "總金額 (含運)：$838" in message
        assert "本次需匯款金額：$742" in message

    def test_unknown_tokens_preserved(self):
        message = render_message(self.bill, "{{name}} {{unknown}}", on_date="2024/01/01")
        assert message == "Amy {{unknown}}"

    def test_free_shipping_note(self):
        bag = Product(id="bag", name="托特包", price_twd=3000)
        bill = build_bill(self.amy, [bought("o1", "bag", "amy", 1)], [bag], SETTINGS)
        message = render_message(bill, "運費：${{shipping}} {{freeShippingNote}}", on_date="x")
        assert message == f"運費：$0 {FREE_SHIPPING_NOTE}"

    def test_result_stripped(self):
        assert render_message(self.bill, "\n  {{name}}  \n", on_date="x") == "Amy"


class TestRegisterPayment:
    """登記收款"""

    def test_marks_bill_orders_only(self):
        amy = Customer(id="amy", line_name="Amy")
        products = [Product(id="eve", name="EVE", price_twd=100)]
        pending = Order.create("eve", "amy", 1, order_id="pending")
        orders = [bought("o1", "eve", "amy", 1), pending, bought("o2", "eve", "bob", 1)]
        bill = build_bill(amy, orders, products, SETTINGS)

        result = register_payment(orders, bill, "面交", "")
        by_id = {o.id: o for o in result}
        assert by_id["o1"].is_paid and by_id["o1"].payment_method == "面交"
        assert by_id["o1"].payment_note is None
        assert by_id["pending"].is_paid
        assert not by_id["o2"].is_paid
