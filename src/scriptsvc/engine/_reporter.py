"""ErrorReporter: stderr へのエラー報告。

すべての診断は "<progname>: <message>" 形式の一行で stderr に出力し、
トレースバックが有効な場合はその下に続けて出力する。
TTY 時は Rich、非 TTY 時はプレーンテキストで自動切替する。
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO, runtime_checkable

from rich.console import Console
from rich.text import Text

DEFAULT_PROGNAME = "scriptsvc"


@runtime_checkable
class ErrorReporter(Protocol):
    """エラー報告のプロトコル。"""

    def report(self, message: str, traceback: str | None = None) -> None:
        """エラーメッセージ（とトレースバック）を報告する。"""
        ...


class PlainErrorReporter:
    """非 TTY 環境向けプレーンテキストレポーター。"""

    def __init__(self, progname: str = DEFAULT_PROGNAME, stream: TextIO | None = None) -> None:
        self.progname = progname
        self._stream = stream

    def report(self, message: str, traceback: str | None = None) -> None:
        stream = self._stream or sys.stderr
        print(f"{self.progname}: {message}", file=stream)
        if traceback:
            print(traceback.rstrip("\n"), file=stream)
        stream.flush()


class RichErrorReporter:
    """TTY 環境向け Rich レポーター。メッセージを赤、トレースを dim で表示する。"""

    def __init__(self, progname: str = DEFAULT_PROGNAME, console: Console | None = None) -> None:
        self.progname = progname
        self._console: Console = console or Console(file=sys.stderr, highlight=False)

    def report(self, message: str, traceback: str | None = None) -> None:
        line = Text(f"{self.progname}: ", style="bold")
        line.append(message, style="red")
        self._console.print(line)
        if traceback:
            self._console.print(Text(traceback.rstrip("\n"), style="dim"))


def create_error_reporter(progname: str = DEFAULT_PROGNAME) -> ErrorReporter:
    """stderr の TTY 状態に基づいて適切な ErrorReporter を生成する。"""
    if sys.stderr.isatty():
        return RichErrorReporter(progname)
    return PlainErrorReporter(progname)
