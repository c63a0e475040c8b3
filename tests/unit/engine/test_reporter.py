"""ErrorReporter のテスト。"""

from __future__ import annotations

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from scriptsvc.engine._reporter import (
    ErrorReporter,
    PlainErrorReporter,
    RichErrorReporter,
    create_error_reporter,
)


class TestPlainErrorReporter:
    """PlainErrorReporter。"""

    def test_message_line(self) -> None:
        stream = io.StringIO()
        PlainErrorReporter(stream=stream).report("boom")
        assert stream.getvalue() == "scriptsvc: boom\n"

    def test_traceback_follows_message(self) -> None:
        stream = io.StringIO()
        PlainErrorReporter("svc", stream).report(
            "RuntimeError: boom", "Traceback (most recent call last):\n  ...\n"
        )
        assert stream.getvalue() == (
            "svc: RuntimeError: boom\nTraceback (most recent call last):\n  ...\n"
        )

    def test_defaults_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        PlainErrorReporter().report("to stderr")
        captured = capsys.readouterr()
        assert captured.err == "scriptsvc: to stderr\n"
        assert captured.out == ""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(PlainErrorReporter(), ErrorReporter)


class TestRichErrorReporter:
    """RichErrorReporter。"""

    def test_writes_message_and_traceback(self) -> None:
        buffer = io.StringIO()
        console = Console(file=buffer, force_terminal=False, width=200)
        RichErrorReporter(console=console).report("boom", "trace line\n")
        output = buffer.getvalue()
        assert "scriptsvc: boom" in output
        assert "trace line" in output

    def test_satisfies_protocol(self) -> None:
        console = Console(file=io.StringIO())
        assert isinstance(RichErrorReporter(console=console), ErrorReporter)


class TestCreateErrorReporter:
    """create_error_reporter()。"""

    def test_tty_uses_rich(self) -> None:
        with patch("scriptsvc.engine._reporter.sys.stderr") as stderr:
            stderr.isatty.return_value = True
            assert isinstance(create_error_reporter(), RichErrorReporter)

    def test_non_tty_uses_plain(self) -> None:
        with patch("scriptsvc.engine._reporter.sys.stderr") as stderr:
            stderr.isatty.return_value = False
            reporter = create_error_reporter("custom")
        assert isinstance(reporter, PlainErrorReporter)
        assert reporter.progname == "custom"
