"""CLI 模組"""
from .commands import run_cli, create_parser, CLI, CLIConfig

__all__ = ["run_cli", "create_parser", "CLI", "CLIConfig"]
