"""儲存模組"""
from .repository import JsonStore, StoreRepository

__all__ = ["JsonStore", "StoreRepository"]
