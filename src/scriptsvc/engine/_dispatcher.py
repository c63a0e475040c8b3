"""CallDispatcher: エンジン呼び出しの統一ラッパー。

スクリプト読み込み・ライブラリ読み込み・run()・stop() の全呼び出しを
同じ規約で包む:

1. チェックポイント（実行境界フック）を設置して呼び出す
2. 例外を CallResult に変換し、トレースバックを添えて報告する
3. 失敗時は完全なガベージコレクションを行う

単一の呼び出しの失敗でプロセスを終了させることはない。
"""

from __future__ import annotations

import logging
import time
import traceback as traceback_module
from collections.abc import Callable

from scriptsvc.engine._contract import ServiceHandle
from scriptsvc.engine._errors import ForcedTermination
from scriptsvc.engine._interpreter import ScriptEngine
from scriptsvc.engine._reporter import ErrorReporter
from scriptsvc.models.call_result import (
    CallError,
    CallInterrupted,
    CallResult,
    CallSuccess,
)

logger = logging.getLogger(__name__)

NON_STRING_ERROR_PLACEHOLDER = "(error object is not a string)"
"""エラーがメッセージ文字列を持たない場合の代替表示。"""


def describe_error(exc: BaseException) -> str:
    """例外を報告用の一行メッセージに変換する。"""
    text = str(exc)
    if not text:
        text = NON_STRING_ERROR_PLACEHOLDER
    return f"{type(exc).__name__}: {text}"


def format_traceback(exc: BaseException) -> str:
    """例外のトレースバックを文字列化する。ディスパッチャ自身のフレームは除く。"""
    tb = exc.__traceback__
    if tb is not None and tb.tb_next is not None:
        tb = tb.tb_next
    return "".join(traceback_module.format_exception(type(exc), exc, tb))


class CallDispatcher:
    """エンジン呼び出しを実行し CallResult として返す。

    Args:
        engine: 呼び出し先のエンジン。
        reporter: 失敗を報告する ErrorReporter。
        with_traceback: 報告にトレースバックを含めるか。
    """

    def __init__(
        self,
        engine: ScriptEngine,
        reporter: ErrorReporter,
        *,
        with_traceback: bool = True,
    ) -> None:
        self._engine = engine
        self._reporter = reporter
        self._with_traceback = with_traceback

    def dispatch(
        self,
        call_name: str,
        function: Callable[..., object],
        *args: object,
        checkpoints: bool = True,
    ) -> CallResult:
        """function(*args) を呼び出し、結果を CallResult として返す。

        Args:
            call_name: 報告・ログに使う呼び出し名。
            function: 呼び出す関数。
            *args: 関数に渡す引数。
            checkpoints: 呼び出し中にチェックポイントを設置するか。
                フック内からの stop() 呼び出しでは False を指定する。

        Returns:
            CallSuccess / CallError / CallInterrupted のいずれか。
            KeyboardInterrupt と SystemExit はそのまま伝播する。
        """
        started = time.monotonic()
        try:
            if checkpoints:
                value = self._engine.invoke(function, *args)
            else:
                value = function(*args)
        except ForcedTermination as exc:
            result: CallResult = CallInterrupted(
                call_name=call_name,
                traceback=self._traceback(exc),
            )
        except Exception as exc:
            result = CallError(
                call_name=call_name,
                error_message=describe_error(exc),
                error_type=type(exc).__name__,
                traceback=self._traceback(exc),
            )
        else:
            return CallSuccess(
                call_name=call_name,
                elapsed_time=time.monotonic() - started,
                value=value,
            )

        # 失敗が続いてもメモリが増え続けないよう完全回収する
        self._engine.collect()
        logger.debug("Call %s failed: %s", call_name, result.error_message)
        self._reporter.report(result.error_message, result.traceback)
        return result

    def dispatch_run(self, handle: ServiceHandle) -> CallResult:
        """保持しているハンドルから run を呼び出し直前に解決して呼び出す。"""
        return self.dispatch("run", handle.call, "run")

    def _traceback(self, exc: BaseException) -> str | None:
        if not self._with_traceback:
            return None
        return format_traceback(exc)
