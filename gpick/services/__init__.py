"""服務模組 (v1.0) - 讀取 / 計算 / 寫回的協調層"""
from .order_desk import OrderDesk, AllocationOutcome

__all__ = ["OrderDesk", "AllocationOutcome"]
