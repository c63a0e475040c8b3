"""テスト全体の共通フィクスチャ。"""

from __future__ import annotations

import signal
import sys
from collections.abc import Iterator

import pytest

_WATCHED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


@pytest.fixture(autouse=True)
def _restore_signal_handlers() -> Iterator[None]:
    """テストが変更したシグナル処分とトレース関数を元に戻す。"""
    saved = {signum: signal.getsignal(signum) for signum in _WATCHED_SIGNALS}
    trace = sys.gettrace()
    yield
    for signum, handler in saved.items():
        signal.signal(signum, handler)
    sys.settrace(trace)
