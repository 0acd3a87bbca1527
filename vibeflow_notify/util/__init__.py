"""Shared utilities."""

from .background import BackgroundTasks
from .env_file import EnvFile
from .singletons import register_singleton, reset_all_singletons

__all__ = [
    "BackgroundTasks",
    "EnvFile",
    "register_singleton",
    "reset_all_singletons",
]
