"""engine テスト共通のフィクスチャ。"""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest


class RecordingReporter:
    """報告内容を記録する ErrorReporter。"""

    def __init__(self) -> None:
        self.reports: list[tuple[str, str | None]] = []

    def report(self, message: str, traceback: str | None = None) -> None:
        self.reports.append((message, traceback))

    @property
    def messages(self) -> list[str]:
        return [message for message, _ in self.reports]


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def write_script(tmp_path: Path) -> Callable[[str], Path]:
    """ソース文字列をスクリプトファイルとして書き出す関数を返す。"""

    def _write(source: str, name: str = "service.py") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write
