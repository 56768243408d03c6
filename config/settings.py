"""
settings.py - 執行環境設定 (v1.0)

從環境變數 (與 .env) 載入
"""

import os
from pathlib import Path
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv

# 專案根目錄
ROOT_DIR = Path(__file__).parent.parent
DATA_DIR = ROOT_DIR / "data"
LOGS_DIR = ROOT_DIR / "logs"

load_dotenv(ROOT_DIR / ".env")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppSettings:
    """執行環境設定"""

    # --- 資料 ---
    data_dir: str = str(DATA_DIR)

    # --- 日誌 ---
    log_level: str = "INFO"
    log_to_file: bool = False
    json_logs: bool = False
    logs_dir: str = str(LOGS_DIR)

    # --- 其他 ---
    debug_mode: bool = False

    @classmethod
    def from_env(cls) -> "AppSettings":
        """從環境變數載入"""
        debug = _env_flag("DEBUG")
        return cls(
            data_dir=os.getenv("GPICK_DATA_DIR", str(DATA_DIR)),
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper(),
            log_to_file=_env_flag("GPICK_LOG_TO_FILE"),
            json_logs=_env_flag("GPICK_JSON_LOGS"),
            logs_dir=os.getenv("GPICK_LOGS_DIR", str(LOGS_DIR)),
            debug_mode=debug,
        )

    def validate(self) -> List[str]:
        """設定檢查"""
        errors = []

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"不支援的 LOG_LEVEL: {self.log_level}")

        if not self.data_dir:
            errors.append("GPICK_DATA_DIR 不可為空")

        return errors


# 全域設定實例
settings = AppSettings.from_env()


def get_settings() -> AppSettings:
    """回傳設定實例"""
    return settings
