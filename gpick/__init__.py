"""GPick - 連線代購 訂單分配 / 對帳 工具"""

__version__ = "1.0.0"
