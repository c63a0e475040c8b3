"""ロギング設定。

ルートロガーを一度だけ設定する。TTY の stderr には Rich のハンドラ、
それ以外にはプレーンな StreamHandler を使う。
"""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED_ATTR = "_scriptsvc_configured"
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "WARNING") -> None:
    """ルートロガーを設定する。複数回呼び出しても安全。"""
    root = logging.getLogger()
    root.setLevel(level)
    if getattr(root, _CONFIGURED_ATTR, False):
        return

    handler: logging.Handler
    if sys.stderr.isatty():
        handler = RichHandler(console=Console(file=sys.stderr), show_path=False)
    else:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=_PLAIN_FORMAT))

    root.addHandler(handler)
    setattr(root, _CONFIGURED_ATTR, True)
