"""
pricing.py - 售價建議 / 成本估算 (v1.0)

日幣原價依價格區間倍率換算建議台幣售價 (無條件進位)。
成本以設定的匯率估算。
"""

import math
from typing import Optional

from ..core.config import GlobalSettings, DEFAULT_SETTINGS


class PricingCalculator:
    """售價計算"""

    def __init__(self, settings: Optional[GlobalSettings] = None):
        """
        Args:
            settings: 營運設定。None 時使用預設值。
        """
        self.settings = settings or DEFAULT_SETTINGS

    def suggest_price_twd(self, price_jpy: float) -> Optional[int]:
        """第一個符合的價格區間 x 倍率，沒有符合的區間時回傳 None"""
        rule = self.settings.find_pricing_rule(price_jpy)
        if rule is None:
            return None
        # 避免 0.38 之類的浮點誤差把整數結果進位
        return int(math.ceil(round(price_jpy * rule.multiplier, 6)))

    def estimate_cost_twd(self, price_jpy: float, quantity: int = 1) -> float:
        """成本 = 日幣 x 匯率 x 數量"""
        return price_jpy * self.settings.jpy_exchange_rate * quantity

    def estimate_profit(self, price_jpy: float, price_twd: int, quantity: int = 1) -> float:
        return price_twd * quantity - self.estimate_cost_twd(price_jpy, quantity)

    def margin_percent(self, price_jpy: float, price_twd: int) -> float:
        """毛利率 (%)"""
        if price_twd <= 0:
            return 0.0
        return round(self.estimate_profit(price_jpy, price_twd) / price_twd * 100, 1)
