"""run_service: サービス実行パイプライン。

1. エンジン・共有状態・シグナルラッチ・ディスパッチャ・フックを構築
2. 起動用 SIGINT ハンドラを設置してライブラリとスクリプトを読み込む
3. スクリプト契約の検証
4. ライフサイクルループの実行
5. エンジンの破棄
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from scriptsvc.engine._contract import ServiceHandle, validate_service_handle
from scriptsvc.engine._dispatcher import CallDispatcher
from scriptsvc.engine._errors import ContractError
from scriptsvc.engine._hook import SafePointHook
from scriptsvc.engine._interpreter import ScriptEngine
from scriptsvc.engine._latch import SignalLatch
from scriptsvc.engine._lifecycle import ServiceLoop
from scriptsvc.engine._reporter import ErrorReporter, create_error_reporter
from scriptsvc.models._base import ScriptsvcBaseModel
from scriptsvc.models.call_result import CallSuccess
from scriptsvc.models.config import ServiceConfig
from scriptsvc.models.exit_code import ExitCode
from scriptsvc.models.lifecycle import LifecycleState, TerminationRequest

logger = logging.getLogger(__name__)


class ServiceResult(ScriptsvcBaseModel):
    """サービス実行結果。

    Attributes:
        exit_code: プロセス終了コード。
        iterations: run() を呼び出した回数。
        stop_calls: stop() を呼び出した回数。
        termination: 終了時の終了要求状態。
        last_error: 終了コードに反映された失敗のメッセージ。
    """

    exit_code: ExitCode
    iterations: int = 0
    stop_calls: int = 0
    termination: TerminationRequest = TerminationRequest.NONE
    last_error: str | None = None


@dataclass
class _Runtime:
    """1回のサービス実行で共有されるコンポーネント一式。"""

    engine: ScriptEngine
    state: LifecycleState
    latch: SignalLatch
    dispatcher: CallDispatcher
    hook: SafePointHook


def _build_runtime(
    config: ServiceConfig,
    reporter: ErrorReporter,
    engine: ScriptEngine | None,
) -> _Runtime:
    engine = engine or ScriptEngine(config.checkpoint)
    state = LifecycleState()
    latch = SignalLatch(state)
    dispatcher = CallDispatcher(engine, reporter, with_traceback=config.traceback)
    hook = SafePointHook(state, dispatcher, on_stop_complete=latch.arm_reload)
    engine.exclude(*latch.handlers)
    engine.set_hook(hook.checkpoint)
    return _Runtime(engine, state, latch, dispatcher, hook)


def _startup(
    runtime: _Runtime,
    script: str | Path,
    script_args: Sequence[str],
    config: ServiceConfig,
    reporter: ErrorReporter,
) -> ServiceHandle | ServiceResult:
    """ライブラリとスクリプトを読み込み、契約を検証する。

    Returns:
        成功時は ServiceHandle、失敗時は STARTUP_ERROR の ServiceResult。
    """
    dispatcher = runtime.dispatcher
    runtime.latch.arm_startup()
    try:
        for library in config.libraries:
            # ライブラリの読み込み失敗は報告のみで起動を続ける
            dispatcher.dispatch(f"require {library}", runtime.engine.require, library)

        loaded = dispatcher.dispatch("load", runtime.engine.load, script, script_args)
    finally:
        runtime.latch.disarm_startup()
        runtime.latch.uninstall()

    if not isinstance(loaded, CallSuccess):
        return ServiceResult(
            exit_code=ExitCode.STARTUP_ERROR,
            termination=runtime.state.termination,
            last_error=loaded.error_message,
        )

    try:
        handle = validate_service_handle(loaded.value)
    except ContractError as exc:
        reporter.report(str(exc))
        return ServiceResult(exit_code=ExitCode.STARTUP_ERROR, last_error=str(exc))

    if runtime.state.termination_requested:
        message = "interrupted during startup"
        reporter.report(message)
        return ServiceResult(
            exit_code=ExitCode.STARTUP_ERROR,
            termination=runtime.state.termination,
            last_error=message,
        )
    return handle


def check_script(
    script: str | Path,
    script_args: Sequence[str] = (),
    config: ServiceConfig | None = None,
    *,
    reporter: ErrorReporter | None = None,
    engine: ScriptEngine | None = None,
) -> ServiceResult:
    """スクリプトを読み込み契約を検証する。ループは実行しない。"""
    config = config or ServiceConfig()
    reporter = reporter or create_error_reporter()
    runtime = _build_runtime(config, reporter, engine)
    try:
        started = _startup(runtime, script, script_args, config, reporter)
    finally:
        runtime.engine.close()
    if isinstance(started, ServiceResult):
        return started
    return ServiceResult(exit_code=ExitCode.SUCCESS)


def run_service(
    script: str | Path,
    script_args: Sequence[str] = (),
    config: ServiceConfig | None = None,
    *,
    reporter: ErrorReporter | None = None,
    engine: ScriptEngine | None = None,
) -> ServiceResult:
    """サービスを実行し、終了までブロックする。

    メインスレッドから呼び出す必要がある（シグナルハンドラの登録のため）。

    Args:
        script: スクリプトのパス。"-" の場合は標準入力。
        script_args: スクリプト引数。
        config: サービス設定。None の場合はデフォルト値。
        reporter: エラー報告先。None の場合は stderr の TTY 状態から生成。
        engine: 使用するエンジン。None の場合は config から生成。

    Returns:
        ServiceResult: 終了コードと実行統計。
    """
    config = config or ServiceConfig()
    reporter = reporter or create_error_reporter()
    runtime = _build_runtime(config, reporter, engine)
    try:
        started = _startup(runtime, script, script_args, config, reporter)
        if isinstance(started, ServiceResult):
            return started

        runtime.hook.bind(started)
        loop = ServiceLoop(
            started,
            runtime.state,
            runtime.latch,
            runtime.hook,
            runtime.dispatcher,
            max_iterations=config.max_iterations,
        )
        outcome = loop.run()
    finally:
        runtime.engine.close()

    exit_code = ExitCode.SUCCESS
    last_error: str | None = None
    if outcome.outstanding is not None:
        exit_code = ExitCode.EXECUTION_ERROR
        last_error = outcome.outstanding.error_message

    logger.info(
        "Service exited after %d iteration(s), %d stop call(s), termination=%s",
        outcome.iterations,
        outcome.stop_calls,
        outcome.termination.value,
    )
    return ServiceResult(
        exit_code=exit_code,
        iterations=outcome.iterations,
        stop_calls=outcome.stop_calls,
        termination=outcome.termination,
        last_error=last_error,
    )
