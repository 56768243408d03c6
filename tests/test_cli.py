"""CLI 模組測試"""

import importlib
import io
import logging
import shutil
import sys
import tempfile
from pathlib import Path

import pytest
from rich.console import Console

sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import AppSettings
from gpick.cli.commands import (
    CLI,
    CLIConfig,
    create_parser,
    parse_date,
    run_cli,
    split_variants,
)
from gpick.domain.lifecycle import STOCK_CUSTOMER_ID
from gpick.main import main
from gpick.services.order_desk import OrderDesk
from gpick.storage.repository import JsonStore, StoreRepository


class TestCLIConfig:
    """CLIConfig 測試"""

    def test_default_config(self):
        config = CLIConfig()
        assert config.verbose is False
        assert config.data_dir is None
        assert config.no_color is False


class TestParser:
    """參數解析"""

    def setup_method(self):
        self.parser = create_parser()

    def test_buy_total(self):
        args = self.parser.parse_args(["buy", "EVE", "--total", "4"])
        assert args.command == "buy"
        assert args.total == 4
        assert args.add is None
        assert args.stock_surplus is False

    def test_buy_requires_one_amount(self):
        with pytest.raises(SystemExit):
            self.parser.parse_args(["buy", "EVE"])
        with pytest.raises(SystemExit):
            self.parser.parse_args(["buy", "EVE", "--total", "1", "--add", "1"])

    def test_order_add_defaults(self):
        args = self.parser.parse_args(["order-add", "EVE", "小美"])
        assert args.quantity == 1
        assert args.variant is None

    def test_list_default_view(self):
        assert self.parser.parse_args(["list"]).view == "shopping"

    def test_global_options(self):
        args = self.parser.parse_args(["--data-dir", "/tmp/x", "-v", "summary"])
        assert args.data_dir == "/tmp/x"
        assert args.verbose is True

    def test_pay_method_choices(self):
        with pytest.raises(SystemExit):
            self.parser.parse_args(["pay", "Amy", "--method", "信用卡"])


class TestHelpers:
    """輔助函式"""

    def test_split_variants(self):
        assert split_variants("S, M,,L ") == ["S", "M", "L"]
        assert split_variants("") == []

    def test_parse_date(self):
        assert parse_date(None) is None
        assert parse_date("2024-05-01").isoformat() == "2024-05-01"


class TestRunCli:
    """指令執行"""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.buffer = io.StringIO()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def run(self, *argv):
        self.buffer.seek(0)
        self.buffer.truncate()
        console = Console(file=self.buffer, width=200, no_color=True)
        code = run_cli(["--data-dir", self.temp_dir, *argv], console=console)
        return code, self.buffer.getvalue()

    def desk(self):
        return OrderDesk(StoreRepository(JsonStore(self.temp_dir)))

    def test_no_command_shows_help(self):
        code, output = self.run()
        assert code == 0
        assert "gpick" in output

    def test_init(self):
        code, output = self.run("init")
        assert code == 0
        assert STOCK_CUSTOMER_ID in output

    def test_full_session(self):
        assert self.run("product-add", "EVE 止痛藥", "--jpy", "1000", "--twd", "250")[0] == 0
        assert self.run("order-add", "EVE 止痛藥", "Amy", "-q", "2")[0] == 0
        assert self.run("order-add", "EVE 止痛藥", "Bob", "-q", "3")[0] == 0

        code, output = self.run("buy", "EVE 止痛藥", "--total", "4")
        assert code == 0
        assert "4/5" in output

        code, output = self.run("list")
        assert code == 0
        assert "EVE 止痛藥" in output

        code, output = self.run("message", "Amy", "--date", "2024-05-01")
        assert code == 0
        assert "2024/05/01" in output
        assert "本次需匯款金額：$442" in output

        assert self.run("pay", "Amy", "--method", "面交")[0] == 0
        code, output = self.run("bills")
        assert code == 0
        assert "面交" in output

        code, output = self.run("archive", "--yes", "--date", "2024-05-01")
        assert code == 0
        assert "2024-05-01 連線" in output
        assert all(o.is_archived for o in self.desk().repository.load_orders())

    def test_product_price_suggested(self):
        code, output = self.run("product-add", "合利他命", "--jpy", "2980", "--variants", "90錠,180錠")
        assert code == 0
        assert "$1043" in output

    def test_buy_add_with_surplus(self):
        self.run("product-add", "EVE", "--jpy", "1000")
        self.run("order-add", "EVE", "Amy")
        code, output = self.run("buy", "EVE", "--add", "3", "--stock-surplus")
        assert code == 0
        assert "庫存" in output
        assert len(self.desk().stock_items()) == 1

    def test_domain_error_exit_code(self):
        code, output = self.run("order-add", "不存在", "Amy")
        assert code == 1
        assert "找不到商品" in output

    def test_verbose_shows_error_code(self):
        code, output = self.run("-v", "reassign", "missing", "Amy")
        assert code == 1
        assert "GP_NOT_FOUND" in output

    def test_archive_requires_confirmation(self):
        code, output = self.run("archive")
        assert code == 1
        assert "--yes" in output

    def test_abandon_requires_target(self):
        code, _ = self.run("abandon")
        assert code == 1

    def test_price(self):
        code, output = self.run("price", "1000")
        assert code == 0
        assert "$380" in output
        assert self.run("price", "1000000")[0] == 1

    def test_invalid_date(self):
        self.run("product-add", "EVE", "--jpy", "1000")
        code, output = self.run("message", "Amy", "--date", "05/01")
        assert code == 2
        assert "日期格式錯誤" in output

    def test_settings_update(self):
        code, output = self.run("settings", "--shipping-fee", "60")
        assert code == 0
        assert self.desk().settings.shipping_fee == 60

    def test_settings_invalid(self):
        code, output = self.run("settings", "--rate", "0")
        assert code == 1
        assert "匯率必須大於 0" in output

    def test_check(self):
        code, output = self.run("check")
        assert code == 0
        assert "資料一致" in output

    def test_price_shows_margin(self):
        code, output = self.run("price", "1000")
        assert code == 0
        assert "估計成本" in output
        assert "毛利率" in output

    def test_order_edit_and_delete(self):
        self.run("product-add", "EVE", "--jpy", "1000")
        self.run("order-add", "EVE", "Amy", "-q", "2")
        order_id = self.desk().repository.load_orders()[0].id

        assert self.run("order-edit", order_id)[0] == 1
        code, output = self.run("order-edit", order_id, "-q", "5")
        assert code == 0
        assert "0/5" in output

        assert self.run("order-delete", order_id)[0] == 1
        assert len(self.desk().repository.load_orders()) == 1
        assert self.run("order-delete", order_id, "--yes")[0] == 0
        assert self.desk().repository.load_orders() == []

    def test_product_delete_reports_orphans(self):
        self.run("product-add", "EVE", "--jpy", "1000")
        self.run("order-add", "EVE", "Amy")

        code, output = self.run("product-delete", "EVE", "--yes")
        assert code == 0
        assert "gpick check" in output

        code, output = self.run("check")
        assert "參照不一致" in output

    def test_customer_edit_blacklist(self):
        self.run("product-add", "EVE", "--jpy", "1000")
        self.run("order-add", "EVE", "Amy")

        assert self.run("customer-edit", "Amy")[0] == 1
        code, output = self.run("customer-edit", "Amy", "--nickname", "小美", "--blacklist")
        assert code == 0
        assert "黑名單" in output
        customer = self.desk().get_customer("小美")
        assert customer.is_blacklisted is True

        self.run("customer-edit", "小美", "--unblacklist")
        assert self.desk().get_customer("Amy").is_blacklisted is False

    def test_customer_delete(self):
        self.run("product-add", "EVE", "--jpy", "1000")
        self.run("order-add", "EVE", "Amy", "-q", "2")
        self.run("order-add", "EVE", "Bob")

        assert self.run("customer-delete", "Amy")[0] == 1
        code, output = self.run("customer-delete", "Amy", "--yes")
        assert code == 0
        assert "1 筆訂單" in output
        assert len(self.desk().repository.load_orders()) == 1

        code, output = self.run("customer-delete", STOCK_CUSTOMER_ID, "--yes")
        assert code == 1
        assert "庫存帳號不可刪除" in output

    def test_corrupt_data_not_retried(self, monkeypatch):
        self.run("init")
        Path(self.temp_dir, "customers.json").write_text("{broken", encoding="utf-8")
        sleeps = []
        monkeypatch.setattr(importlib.import_module("gpick.core.error_handler").time, "sleep", sleeps.append)

        code, output = self.run("list")
        assert code == 1
        assert "JSON 解析失敗" in output
        assert sleeps == []


class TestCLIOutput:
    """輸出格式"""

    def test_print_plain_keeps_brackets(self):
        buffer = io.StringIO()
        cli = CLI(console=Console(file=buffer, width=200))
        cli.print_plain("[您的賣貨便連結]")
        assert "[您的賣貨便連結]" in buffer.getvalue()


class TestMain:
    """進入點"""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        logger = logging.getLogger("gpick")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_main_configures_logging(self, monkeypatch):
        monkeypatch.setattr("gpick.main.get_settings", lambda: AppSettings(log_level="WARNING"))
        code = main(["--data-dir", self.temp_dir, "-v", "price", "1000"])

        logger = logging.getLogger("gpick")
        assert code == 0
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
