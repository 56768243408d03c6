"""
main.py - gpick 進入點 (v1.0)

使用方式:
    gpick init
    gpick list
    python -m gpick.main buy "商品" --add 3
"""

import sys
from typing import List, Optional

from config.logging_config import setup_logging
from config.settings import get_settings

from .cli.commands import run_cli


def main(argv: Optional[List[str]] = None) -> int:
    """依環境設定初始化 log 後執行 CLI"""
    argv = list(sys.argv[1:] if argv is None else argv)
    app_settings = get_settings()

    errors = app_settings.validate()
    level = "DEBUG" if ("-v" in argv or "--verbose" in argv) else app_settings.log_level
    if errors:
        level = "INFO"

    logger = setup_logging(
        name="gpick",
        level=level,
        log_to_file=app_settings.log_to_file,
        json_format=app_settings.json_logs,
        logs_dir=app_settings.logs_dir,
    )
    for error in errors:
        logger.warning(error)

    return run_cli(argv)


if __name__ == "__main__":
    sys.exit(main())
