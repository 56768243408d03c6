"""
CLI 指令處理模組

- 子指令: init, product-add, order-add, list, buy, notify, pack, bills,
  message, pay, abandon, reassign, stock-add, order-edit, order-delete,
  product-delete, customer-edit, customer-delete, summary, archive, price,
  check, settings
- rich 表格輸出
- 錯誤統一交給 ErrorHandler，回傳結束碼
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import date as Date
from typing import Any, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from config.settings import get_settings

from .. import __version__
from ..core.error_handler import ErrorHandler, RecoveryAction, error_handler
from ..core.exceptions import GPickError, TransientPersistenceError
from ..domain.models import NotificationStatus, OrderStatus
from ..domain.pricing import PricingCalculator
from ..domain.stats import customer_level
from ..services.order_desk import OrderDesk
from ..storage.repository import JsonStore, StoreRepository

logger = logging.getLogger(__name__)


@dataclass
class CLIConfig:
    """CLI 設定"""
    verbose: bool = False
    data_dir: Optional[str] = None
    no_color: bool = False


class CLI:
    """連線團購 CLI"""

    VERSION = __version__

    def __init__(self, config: CLIConfig = None, console: Console = None):
        self.config = config or CLIConfig()
        self.console = console or Console(no_color=self.config.no_color)

    def banner(self):
        self.console.print(Panel.fit(
            f"[bold]gpick v{self.VERSION}[/bold]\n連線團購 喊單 / 採購分配 / 對帳",
            border_style="cyan",
        ))

    def print_header(self, title: str):
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_result(self, key: str, value: Any, indent: int = 2):
        self.console.print(f"{' ' * indent}{escape(key)}: [bold]{escape(str(value))}[/bold]")

    def print_success(self, message: str):
        self.console.print(f"✅ [green]{escape(message)}[/green]")

    def print_error(self, message: str):
        self.console.print(f"❌ [red]{escape(message)}[/red]")

    def print_warning(self, message: str):
        self.console.print(f"⚠️ [yellow]{escape(message)}[/yellow]")

    def print_plain(self, text: str):
        """原樣輸出 (對帳訊息等，不解析 rich 標記)"""
        self.console.print(text, markup=False, highlight=False, soft_wrap=True)


def create_parser() -> argparse.ArgumentParser:
    """CLI 解析器"""
    parser = argparse.ArgumentParser(
        prog="gpick",
        description="連線團購 喊單 / 採購分配 / 對帳工具",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
範例:
  %(prog)s init
  %(prog)s product-add "合利他命" --jpy 2980 --variants "90錠,180錠"
  %(prog)s order-add "合利他命" 小美 -q 2 --variant 90錠
  %(prog)s buy "合利他命" --variant 90錠 --add 3
  %(prog)s message 小美
  %(prog)s archive --yes
"""
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="詳細輸出")
    parser.add_argument("--no-color", action="store_true", help="關閉顏色")
    parser.add_argument("--data-dir", default=None, help="資料目錄 (預設: GPICK_DATA_DIR)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {CLI.VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="可用指令")

    subparsers.add_parser("init", help="初始化資料目錄與庫存帳號")

    product_parser = subparsers.add_parser("product-add", help="新增商品")
    product_parser.add_argument("name", help="商品名稱")
    product_parser.add_argument("--jpy", type=int, required=True, help="日幣原價")
    product_parser.add_argument("--twd", type=int, default=None, help="台幣售價 (預設: 依價格區間建議)")
    product_parser.add_argument("--variants", default="", help="款式，以逗號分隔")
    product_parser.add_argument("--category", default="", help="分類")
    product_parser.add_argument("--brand", default=None, help="品牌")

    order_parser = subparsers.add_parser("order-add", help="新增喊單")
    order_parser.add_argument("product", help="商品 id 或名稱")
    order_parser.add_argument("customer", help="顧客 LINE 名稱或暱稱 (不存在時自動建立)")
    order_parser.add_argument("-q", "--quantity", type=int, default=1, help="數量 (預設: 1)")
    order_parser.add_argument("--variant", default=None, help="款式")

    list_parser = subparsers.add_parser("list", help="檢視清單")
    list_parser.add_argument(
        "view",
        nargs="?",
        choices=["shopping", "totals", "packing", "stock"],
        default="shopping",
        help="採購清單 / 商品總量 / 包裝 / 庫存 (預設: shopping)",
    )
    list_parser.add_argument("-s", "--search", default="", help="搜尋")

    buy_parser = subparsers.add_parser("buy", help="登記採購數量並依喊單順序分配")
    buy_parser.add_argument("product", help="商品 id 或名稱")
    buy_parser.add_argument("--variant", default=None, help="款式")
    amount = buy_parser.add_mutually_exclusive_group(required=True)
    amount.add_argument("--total", type=int, help="實際買到的總數")
    amount.add_argument("--add", type=int, help="追加買到的數量")
    buy_parser.add_argument("--stock-surplus", action="store_true", help="多買的部分轉入庫存")

    notify_parser = subparsers.add_parser("notify", help="切換到貨通知狀態")
    notify_parser.add_argument("order_id", help="訂單 id")

    pack_parser = subparsers.add_parser("pack", help="切換包裝狀態")
    pack_parser.add_argument("order_id", help="訂單 id")

    bills_parser = subparsers.add_parser("bills", help="對帳總覽")
    bills_parser.add_argument("-s", "--search", default="", help="搜尋顧客")

    message_parser = subparsers.add_parser("message", help="產生對帳訊息")
    message_parser.add_argument("customer", help="顧客 LINE 名稱或暱稱")
    message_parser.add_argument("--date", default=None, help="日期 YYYY-MM-DD (預設: 今天)")

    pay_parser = subparsers.add_parser("pay", help="登記收款")
    pay_parser.add_argument("customer", help="顧客 LINE 名稱或暱稱")
    pay_parser.add_argument("--method", choices=["轉帳", "面交"], default="轉帳", help="付款方式")
    pay_parser.add_argument("--note", default="", help="備註 (帳號後五碼等)")

    abandon_parser = subparsers.add_parser("abandon", help="棄單轉庫存")
    abandon_parser.add_argument("order_ids", nargs="*", help="訂單 id")
    abandon_parser.add_argument("--customer", default=None, help="整位顧客的訂單轉庫存")

    reassign_parser = subparsers.add_parser("reassign", help="庫存轉給顧客")
    reassign_parser.add_argument("order_id", help="庫存訂單 id")
    reassign_parser.add_argument("customer", help="顧客 LINE 名稱或暱稱")

    stock_parser = subparsers.add_parser("stock-add", help="手動新增現貨")
    stock_parser.add_argument("product", help="商品 id 或名稱")
    stock_parser.add_argument("quantity", type=int, help="數量")
    stock_parser.add_argument("--variant", default=None, help="款式")

    order_edit_parser = subparsers.add_parser("order-edit", help="修改喊單數量或款式")
    order_edit_parser.add_argument("order_id", help="訂單 id")
    order_edit_parser.add_argument("-q", "--quantity", type=int, default=None, help="新數量")
    order_edit_parser.add_argument("--variant", default=None, help="新款式")

    order_delete_parser = subparsers.add_parser("order-delete", help="刪除訂單 (含庫存現貨)")
    order_delete_parser.add_argument("order_id", help="訂單 id")
    order_delete_parser.add_argument("--yes", action="store_true", help="確認刪除")

    product_delete_parser = subparsers.add_parser("product-delete", help="刪除商品 (訂單保留)")
    product_delete_parser.add_argument("product", help="商品 id 或名稱")
    product_delete_parser.add_argument("--yes", action="store_true", help="確認刪除")

    customer_edit_parser = subparsers.add_parser("customer-edit", help="修改顧客資料")
    customer_edit_parser.add_argument("customer", help="顧客 id、LINE 名稱或暱稱")
    customer_edit_parser.add_argument("--line-name", default=None, help="LINE 名稱")
    customer_edit_parser.add_argument("--nickname", default=None, help="暱稱")
    customer_edit_parser.add_argument("--note", default=None, help="備註")
    blacklist = customer_edit_parser.add_mutually_exclusive_group()
    blacklist.add_argument("--blacklist", dest="blacklisted", action="store_true", default=None, help="列入黑名單")
    blacklist.add_argument("--unblacklist", dest="blacklisted", action="store_false", default=None, help="移出黑名單")

    customer_delete_parser = subparsers.add_parser("customer-delete", help="刪除顧客及其所有訂單")
    customer_delete_parser.add_argument("customer", help="顧客 id、LINE 名稱或暱稱")
    customer_delete_parser.add_argument("--yes", action="store_true", help="確認刪除")

    subparsers.add_parser("summary", help="本場營運概況")

    archive_parser = subparsers.add_parser("archive", help="結算並封存本場")
    archive_parser.add_argument("--yes", action="store_true", help="確認封存")
    archive_parser.add_argument("--date", default=None, help="報表日期 YYYY-MM-DD (預設: 今天)")

    price_parser = subparsers.add_parser("price", help="依價格區間建議台幣售價")
    price_parser.add_argument("jpy", type=float, help="日幣原價")

    subparsers.add_parser("check", help="檢查參照不一致的訂單")

    settings_parser = subparsers.add_parser("settings", help="檢視 / 更新營運設定")
    settings_parser.add_argument("--rate", type=float, help="匯率 (JPY -> TWD)")
    settings_parser.add_argument("--shipping-fee", type=int, help="運費")
    settings_parser.add_argument("--threshold", type=int, help="滿額免運門檻")
    settings_parser.add_argument("--pickup", type=int, help="賣貨便取貨支付金額")
    settings_parser.add_argument("--session-name", help="場次名稱")

    return parser


def parse_date(value: Optional[str]) -> Optional[Date]:
    if not value:
        return None
    try:
        return Date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"日期格式錯誤: {value} (需為 YYYY-MM-DD)")


def split_variants(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@error_handler(
    reraise=True,
    recovery_actions={TransientPersistenceError: RecoveryAction.RETRY},
    max_retries=2,
)
def open_desk(data_dir: Optional[str]) -> OrderDesk:
    """開啟資料目錄並確認庫存帳號"""
    store = JsonStore(data_dir or get_settings().data_dir)
    desk = OrderDesk(StoreRepository(store))
    desk.bootstrap()
    return desk


def cmd_init(args, cli: CLI, desk: OrderDesk):
    cli.banner()
    stock = desk.bootstrap()
    cli.print_result("資料目錄", desk.repository.store.data_dir)
    cli.print_result("庫存帳號", f"{stock.line_name} ({stock.id})")
    cli.print_success("初始化完成")


def cmd_product_add(args, cli: CLI, desk: OrderDesk):
    product = desk.add_product(
        name=args.name,
        price_jpy=args.jpy,
        price_twd=args.twd,
        variants=split_variants(args.variants),
        category=args.category,
        brand=args.brand,
    )
    cli.print_result("商品", f"{product.name} ({product.id})")
    cli.print_result("售價", f"¥{product.price_jpy} → ${product.price_twd}")
    margin = PricingCalculator(desk.settings).margin_percent(product.price_jpy, product.price_twd)
    cli.print_result("毛利率", f"{margin}%")
    if product.variants:
        cli.print_result("款式", ", ".join(product.variants))
    cli.print_success("已新增商品")


def cmd_order_add(args, cli: CLI, desk: OrderDesk):
    order = desk.add_order(args.product, args.customer, args.quantity, args.variant)
    cli.print_result("訂單", order.id)
    cli.print_success(f"{args.customer} +{order.quantity}")


def _show_shopping(cli: CLI, desk: OrderDesk, search: str):
    table = Table(title="🛒 採購清單")
    table.add_column("商品", style="cyan")
    table.add_column("需求", justify="right")
    table.add_column("已買", justify="right")
    table.add_column("尚缺", justify="right")
    table.add_column("狀態")
    for group in desk.shopping_list(search):
        table.add_row(
            group.display_name,
            str(group.total_needed),
            str(group.total_bought),
            str(group.remaining),
            "[green]已買齊[/green]" if group.is_complete else "[yellow]採購中[/yellow]",
        )
    cli.console.print(table)


def _show_totals(cli: CLI, desk: OrderDesk, search: str):
    table = Table(title="📦 商品總量")
    table.add_column("商品", style="cyan")
    table.add_column("總數", justify="right")
    table.add_column("款式")
    for total in desk.product_totals(search):
        variants = ", ".join(f"{v} x{q}" for v, q in total.variants.items() if v)
        table.add_row(total.product.name, str(total.quantity), variants)
    cli.console.print(table)


def _show_packing(cli: CLI, desk: OrderDesk, search: str):
    products = {p.id: p for p in desk.repository.load_products()}
    for package in desk.packing_list(search):
        mark = "✅" if package.is_fully_packed else "📋"
        table = Table(title=f"{mark} {package.customer.line_name}")
        table.add_column("訂單", style="dim")
        table.add_column("商品", style="cyan")
        table.add_column("數量", justify="right")
        table.add_column("通知")
        table.add_column("包裝")
        for order in package.orders:
            product = products.get(order.product_id)
            name = product.name if product else order.product_id
            if order.variant:
                name = f"{name} ({order.variant})"
            table.add_row(
                order.id,
                name,
                f"{order.quantity_bought}/{order.quantity}",
                "已通知" if order.notification_status == NotificationStatus.NOTIFIED else "-",
                "已包裝" if order.status in (OrderStatus.PACKED, OrderStatus.SHIPPED) else "-",
            )
        cli.console.print(table)


def _show_stock(cli: CLI, desk: OrderDesk, search: str):
    products = {p.id: p for p in desk.repository.load_products()}
    table = Table(title="📦 庫存/現貨")
    table.add_column("訂單", style="dim")
    table.add_column("商品", style="cyan")
    table.add_column("數量", justify="right")
    for order in desk.stock_items():
        product = products.get(order.product_id)
        name = product.name if product else order.product_id
        if search and search.lower() not in name.lower():
            continue
        if order.variant:
            name = f"{name} ({order.variant})"
        table.add_row(order.id, name, str(order.quantity_bought))
    cli.console.print(table)


def cmd_list(args, cli: CLI, desk: OrderDesk):
    views = {
        "shopping": _show_shopping,
        "totals": _show_totals,
        "packing": _show_packing,
        "stock": _show_stock,
    }
    views[args.view](cli, desk, args.search)


def cmd_buy(args, cli: CLI, desk: OrderDesk):
    if args.total is not None:
        outcome = desk.set_bought(args.product, args.total, args.variant, args.stock_surplus)
    else:
        outcome = desk.add_bought(args.product, args.add, args.variant, args.stock_surplus)

    group = outcome.group
    cli.print_result(group.display_name, f"{group.total_bought}/{group.total_needed}")

    customers = {c.id: c for c in desk.repository.load_customers()}
    for order in group.orders:
        customer = customers.get(order.customer_id)
        name = customer.line_name if customer else order.customer_id
        flag = " 🔔" if order.id in outcome.newly_satisfied_order_ids else ""
        cli.print_result(name, f"{order.quantity_bought}/{order.quantity}{flag}", indent=4)

    if outcome.surplus > 0:
        if outcome.surplus_order is not None:
            cli.print_warning(f"多買 {outcome.surplus} 個，已轉入庫存")
        else:
            cli.print_warning(f"多買 {outcome.surplus} 個")
    cli.print_success("分配完成")


def cmd_notify(args, cli: CLI, desk: OrderDesk):
    order = desk.toggle_notification(args.order_id)
    state = "已通知" if order.notification_status == NotificationStatus.NOTIFIED else "未通知"
    cli.print_success(f"{order.id}: {state}")


def cmd_pack(args, cli: CLI, desk: OrderDesk):
    order = desk.toggle_packed(args.order_id)
    state = "已包裝" if order.status == OrderStatus.PACKED else "未包裝"
    cli.print_success(f"{order.id}: {state}")


def cmd_bills(args, cli: CLI, desk: OrderDesk):
    settings = desk.settings
    table = Table(title="💰 對帳")
    table.add_column("顧客", style="cyan")
    table.add_column("等級")
    table.add_column("小計", justify="right")
    table.add_column("運費", justify="right")
    table.add_column("應匯款", justify="right")
    table.add_column("付款")
    for bill in desk.bills(args.search):
        shipping = "免運" if bill.is_free_shipping else str(bill.shipping_fee)
        paid = f"[green]{bill.payment_method or '已付'}[/green]" if bill.is_fully_paid else "[red]未付[/red]"
        table.add_row(
            bill.customer.line_name,
            customer_level(bill.customer.total_spent, settings).value,
            str(bill.subtotal),
            shipping,
            str(bill.remittance_amount),
            paid,
        )
    cli.console.print(table)


def cmd_message(args, cli: CLI, desk: OrderDesk):
    message = desk.bill_message(args.customer, on_date=parse_date(args.date))
    if message is None:
        cli.print_warning(f"{args.customer} 沒有可對帳的項目")
        return
    cli.print_plain(message)


def cmd_pay(args, cli: CLI, desk: OrderDesk):
    bill = desk.register_payment(args.customer, args.method, args.note)
    cli.print_success(f"{bill.customer.line_name} 已付款 ({args.method}) ${bill.remittance_amount}")


def cmd_abandon(args, cli: CLI, desk: OrderDesk):
    if args.customer:
        moved = desk.abandon_customer(args.customer)
    elif args.order_ids:
        moved = desk.abandon(args.order_ids)
    else:
        cli.print_error("請指定訂單 id 或 --customer")
        return 1
    cli.print_success(f"{len(moved)} 筆訂單已轉入庫存")


def cmd_reassign(args, cli: CLI, desk: OrderDesk):
    order = desk.reassign(args.order_id, args.customer)
    cli.print_success(f"{order.id} 已轉給 {args.customer}")


def cmd_stock_add(args, cli: CLI, desk: OrderDesk):
    order = desk.add_stock(args.product, args.quantity, args.variant)
    cli.print_success(f"已新增現貨 {order.id} x{order.quantity}")


def _confirmed(args, cli: CLI, what: str) -> bool:
    if args.yes:
        return True
    cli.print_warning(f"{what}無法復原，請加上 --yes 確認")
    return False


def cmd_order_edit(args, cli: CLI, desk: OrderDesk):
    if args.quantity is None and args.variant is None:
        cli.print_error("請指定 --quantity 或 --variant")
        return 1
    order = desk.update_order(args.order_id, args.quantity, args.variant)
    cli.print_result("訂單", order.id)
    cli.print_result("數量", f"{order.quantity_bought}/{order.quantity}")
    if order.variant:
        cli.print_result("款式", order.variant)
    cli.print_success("已修改訂單")


def cmd_order_delete(args, cli: CLI, desk: OrderDesk):
    if not _confirmed(args, cli, "刪除訂單"):
        return 1
    order = desk.delete_order(args.order_id)
    cli.print_success(f"已刪除訂單 {order.id}")


def cmd_product_delete(args, cli: CLI, desk: OrderDesk):
    if not _confirmed(args, cli, "刪除商品"):
        return 1
    product = desk.delete_product(args.product)
    cli.print_success(f"已刪除商品 {product.name}")
    orphans = desk.diagnostics()
    if orphans:
        cli.print_warning(f"{len(orphans)} 筆訂單參照已刪除的商品或顧客 (gpick check)")


def cmd_customer_edit(args, cli: CLI, desk: OrderDesk):
    changes = {
        field: value
        for field, value in (
            ("line_name", args.line_name),
            ("nickname", args.nickname),
            ("note", args.note),
        )
        if value is not None
    }
    if not changes and args.blacklisted is None:
        cli.print_error("沒有要修改的欄位")
        return 1

    customer = desk.get_customer(args.customer)
    if changes:
        customer = desk.update_customer(customer.id, **changes)
    if args.blacklisted is not None:
        customer = desk.set_blacklisted(customer.id, args.blacklisted)

    cli.print_result("顧客", f"{customer.line_name} ({customer.id})")
    if customer.is_blacklisted:
        cli.print_warning("黑名單")
    cli.print_success("已修改顧客資料")


def cmd_customer_delete(args, cli: CLI, desk: OrderDesk):
    if not _confirmed(args, cli, "刪除顧客會一併刪除其所有訂單，"):
        return 1
    removed = desk.delete_customer(args.customer)
    cli.print_success(f"已刪除 {args.customer} 及 {len(removed)} 筆訂單")


def cmd_summary(args, cli: CLI, desk: OrderDesk):
    summary = desk.summary()
    cli.print_header("📊 本場營運概況")
    cli.print_result("營收", f"${summary.total_revenue:,}")
    cli.print_result("成本", f"${summary.total_cost:,.0f}")
    cli.print_result("淨利", f"${summary.net_profit:,.0f}")
    cli.print_result("件數", summary.total_items)
    for category, count in summary.category_stats:
        cli.print_result(category or "未分類", count, indent=4)


def cmd_archive(args, cli: CLI, desk: OrderDesk):
    if not args.yes:
        cli.print_warning("封存會結算本場並清空目前訂單 (庫存保留)，請加上 --yes 確認")
        return 1
    report = desk.archive_session(on_date=parse_date(args.date))
    if report is None:
        cli.print_warning("沒有可封存的訂單")
        return
    cli.print_result("報表", report.name)
    cli.print_result("營收", f"${report.total_revenue:,}")
    cli.print_result("淨利", f"${report.total_profit:,}")
    cli.print_result("件數", report.total_items)
    cli.print_success("本場已封存")


def cmd_price(args, cli: CLI, desk: OrderDesk):
    suggested = desk.suggest_price(args.jpy)
    if suggested is None:
        cli.print_warning(f"¥{args.jpy:g} 沒有符合的價格區間")
        return 1
    cli.print_result("建議售價", f"${suggested}")
    calculator = PricingCalculator(desk.settings)
    cli.print_result("估計成本", f"${calculator.estimate_cost_twd(args.jpy):,.0f}")
    cli.print_result("毛利率", f"{calculator.margin_percent(args.jpy, suggested)}%")


def cmd_check(args, cli: CLI, desk: OrderDesk):
    orphans = desk.diagnostics()
    if not orphans:
        cli.print_success("資料一致")
        return
    table = Table(title="⚠️ 參照不一致的訂單")
    table.add_column("訂單", style="dim")
    table.add_column("缺商品")
    table.add_column("缺顧客")
    for orphan in orphans:
        table.add_row(
            orphan.order.id,
            "✗" if orphan.missing_product else "",
            "✗" if orphan.missing_customer else "",
        )
    cli.console.print(table)
    return 1


SETTINGS_FLAGS = {
    "rate": "jpy_exchange_rate",
    "shipping_fee": "shipping_fee",
    "threshold": "free_shipping_threshold",
    "pickup": "pickup_payment",
    "session_name": "session_name",
}


def cmd_settings(args, cli: CLI, desk: OrderDesk):
    changes = {
        field: getattr(args, flag)
        for flag, field in SETTINGS_FLAGS.items()
        if getattr(args, flag) is not None
    }
    settings = desk.update_settings(**changes) if changes else desk.settings

    cli.print_header("⚙️ 營運設定")
    cli.print_result("匯率", settings.jpy_exchange_rate)
    cli.print_result("運費", settings.shipping_fee)
    cli.print_result("免運門檻", settings.free_shipping_threshold)
    cli.print_result("取貨支付", settings.pickup_payment)
    cli.print_result("場次名稱", settings.session_name)
    for rule in settings.pricing_rules:
        cli.print_result(f"¥{rule.min_price}-{rule.max_price}", f"x{rule.multiplier}", indent=4)
    if changes:
        cli.print_success("設定已更新")


COMMANDS = {
    "init": cmd_init,
    "product-add": cmd_product_add,
    "order-add": cmd_order_add,
    "list": cmd_list,
    "buy": cmd_buy,
    "notify": cmd_notify,
    "pack": cmd_pack,
    "bills": cmd_bills,
    "message": cmd_message,
    "pay": cmd_pay,
    "abandon": cmd_abandon,
    "reassign": cmd_reassign,
    "stock-add": cmd_stock_add,
    "order-edit": cmd_order_edit,
    "order-delete": cmd_order_delete,
    "product-delete": cmd_product_delete,
    "customer-edit": cmd_customer_edit,
    "customer-delete": cmd_customer_delete,
    "summary": cmd_summary,
    "archive": cmd_archive,
    "price": cmd_price,
    "check": cmd_check,
    "settings": cmd_settings,
}


def run_cli(argv: Optional[List[str]] = None, console: Console = None) -> int:
    """CLI 執行，回傳結束碼"""
    parser = create_parser()
    args = parser.parse_args(argv)

    config = CLIConfig(
        verbose=args.verbose,
        data_dir=args.data_dir,
        no_color=args.no_color,
    )
    cli = CLI(config, console=console)

    if args.command is None:
        cli.banner()
        parser.print_help()
        return 0

    handler = ErrorHandler(logger)
    try:
        desk = open_desk(config.data_dir)
        result = COMMANDS[args.command](args, cli, desk)
    except argparse.ArgumentTypeError as e:
        cli.print_error(str(e))
        return 2
    except GPickError as e:
        action = handler.handle(e, context={"command": args.command})
        cli.print_error(e.message)
        if config.verbose:
            cli.print_result("錯誤代碼", e.error_code)
            cli.print_result("處理方式", action.value)
        return 1

    return result or 0


if __name__ == "__main__":
    sys.exit(run_cli())
