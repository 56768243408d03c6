"""
config.py - 營運設定 (v1.0)

GlobalSettings 是可持久化的設定紀錄。
所有引擎函式都以參數方式接收，不讀取模組層級的全域狀態。
"""

from dataclasses import dataclass, field, fields, replace, asdict
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import ConfigurationError


DEFAULT_BILLING_TEMPLATE = """【{{date}} 連線對帳單】
哈囉 {{name}} 👋
這是您本次連線購買的商品明細：

{{items}}
-------------------
商品小計：${{subtotal}}
運費：${{shipping}} {{freeShippingNote}}
-------------------
總金額 (含運)：${{total}}
賣貨便取貨時支付：${{pickupPayment}} (含運費/包材)

💰 本次需匯款金額：${{remittance}}
(匯款帳號: 822-xxxx-xxxx)

匯款後請填寫此連結並下單賣貨便：
[您的賣貨便連結]
收到款項後會盡快為您出貨！謝謝 ❤️"""


@dataclass(frozen=True)
class PricingRule:
    """日幣價格區間 -> 台幣售價倍率"""
    min_price: int
    max_price: int
    multiplier: float

    def matches(self, price_jpy: float) -> bool:
        """含兩端點"""
        return self.min_price <= price_jpy <= self.max_price


@dataclass(frozen=True)
class CustomerLevels:
    """顧客等級門檻 (累積消費 TWD)"""
    vip: int = 10000
    vvip: int = 30000


DEFAULT_PRICING_RULES: Tuple[PricingRule, ...] = (
    PricingRule(0, 1000, 0.38),
    PricingRule(1001, 3000, 0.35),
    PricingRule(3001, 5000, 0.32),
    PricingRule(5001, 10000, 0.30),
    PricingRule(10001, 999999, 0.28),
)

DEFAULT_CATEGORIES: Tuple[str, ...] = (
    "藥妝",
    "零食",
    "服飾",
    "雜貨",
    "伴手禮",
    "限定商品",
)


@dataclass(frozen=True)
class GlobalSettings:
    """營運設定 (v1.0)"""
    # 匯率
    jpy_exchange_rate: float = 0.23             # 成本換算 JPY -> TWD

    # 售價建議
    pricing_rules: Tuple[PricingRule, ...] = DEFAULT_PRICING_RULES

    # 運費 / 取貨
    shipping_fee: int = 38                      # 運費
    free_shipping_threshold: int = 3000         # 滿額免運門檻 (含)
    pickup_payment: int = 20                    # 賣貨便取貨時支付 (預扣)

    # 商品分類 (可自行擴充)
    product_categories: Tuple[str, ...] = DEFAULT_CATEGORIES

    # 對帳通知
    billing_message_template: str = DEFAULT_BILLING_TEMPLATE
    session_name: str = "連線"

    # CRM 等級
    customer_levels: CustomerLevels = field(default_factory=CustomerLevels)

    def with_changes(self, **changes) -> "GlobalSettings":
        """回傳套用變更後的新設定

        巢狀欄位 (價格區間、分類、顧客等級) 接受 dict / list 並轉成對應型別；
        未知欄位或格式錯誤拋出 ConfigurationError。
        """
        unknown = [k for k in changes if k not in _FIELD_NAMES]
        if unknown:
            raise ConfigurationError(
                f"未知的設定項目: {', '.join(unknown)}", config_key=",".join(unknown)
            )

        key = None
        try:
            for key, convert in _SCALAR_FIELDS.items():
                if key in changes:
                    changes[key] = convert(changes[key])
            key = "pricing_rules"
            if key in changes:
                changes[key] = tuple(_coerce_rule(r) for r in changes[key])
            key = "product_categories"
            if key in changes:
                changes[key] = tuple(str(c) for c in changes[key])
            key = "customer_levels"
            if key in changes:
                changes[key] = _coerce_levels(changes[key])
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(f"設定格式錯誤 ({key}): {e}", config_key=key, cause=e)

        return replace(self, **changes)

    def find_pricing_rule(self, price_jpy: float) -> Optional[PricingRule]:
        """第一個符合的價格區間"""
        for rule in self.pricing_rules:
            if rule.matches(price_jpy):
                return rule
        return None

    def validate(self) -> List[str]:
        """設定檢查"""
        errors = []

        if self.jpy_exchange_rate <= 0:
            errors.append("匯率必須大於 0")

        if self.shipping_fee < 0:
            errors.append("運費不可為負數")

        if self.free_shipping_threshold < 0:
            errors.append("免運門檻不可為負數")

        if self.pickup_payment < 0:
            errors.append("取貨支付金額不可為負數")

        previous: Optional[PricingRule] = None
        for idx, rule in enumerate(self.pricing_rules):
            if rule.min_price > rule.max_price:
                errors.append(f"價格區間 #{idx + 1} 下限大於上限")
            if rule.multiplier <= 0:
                errors.append(f"價格區間 #{idx + 1} 倍率必須大於 0")
            if previous is not None and rule.min_price <= previous.max_price:
                errors.append(f"價格區間 #{idx + 1} 與前一區間重疊")
            previous = rule

        if self.customer_levels.vip > self.customer_levels.vvip:
            errors.append("VIP 門檻不可高於 VVIP")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["pricing_rules"] = [asdict(r) for r in self.pricing_rules]
        data["product_categories"] = list(self.product_categories)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GlobalSettings":
        """缺少的欄位使用預設值，未知欄位忽略"""
        if not data:
            return cls()

        defaults = cls()
        return cls(
            jpy_exchange_rate=float(data.get("jpy_exchange_rate", defaults.jpy_exchange_rate)),
            pricing_rules=tuple(
                _coerce_rule(r) for r in data.get("pricing_rules", defaults.pricing_rules)
            ),
            shipping_fee=int(data.get("shipping_fee", defaults.shipping_fee)),
            free_shipping_threshold=int(
                data.get("free_shipping_threshold", defaults.free_shipping_threshold)
            ),
            pickup_payment=int(data.get("pickup_payment", defaults.pickup_payment)),
            product_categories=tuple(
                data.get("product_categories", defaults.product_categories)
            ),
            billing_message_template=data.get(
                "billing_message_template", defaults.billing_message_template
            ),
            session_name=data.get("session_name", defaults.session_name),
            customer_levels=_coerce_levels(data.get("customer_levels") or {}),
        )


def _coerce_rule(rule: Any) -> PricingRule:
    if isinstance(rule, PricingRule):
        return rule
    return PricingRule(
        min_price=int(rule["min_price"]),
        max_price=int(rule["max_price"]),
        multiplier=float(rule["multiplier"]),
    )


def _coerce_levels(levels: Any) -> CustomerLevels:
    """dict -> CustomerLevels (缺少的門檻使用預設值)"""
    if isinstance(levels, CustomerLevels):
        return levels
    data = dict(levels)
    defaults = CustomerLevels()
    return CustomerLevels(
        vip=int(data.get("vip", defaults.vip)),
        vvip=int(data.get("vvip", defaults.vvip)),
    )


_FIELD_NAMES = frozenset(f.name for f in fields(GlobalSettings))

_SCALAR_FIELDS = {
    "jpy_exchange_rate": float,
    "shipping_fee": int,
    "free_shipping_threshold": int,
    "pickup_payment": int,
    "billing_message_template": str,
    "session_name": str,
}


# 預設設定
DEFAULT_SETTINGS = GlobalSettings()
