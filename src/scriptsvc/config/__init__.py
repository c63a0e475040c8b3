"""設定管理モジュール。"""

from scriptsvc.config._locator import config_start_dir
from scriptsvc.config._resolver import resolve_config

__all__ = [
    "config_start_dir",
    "resolve_config",
]
