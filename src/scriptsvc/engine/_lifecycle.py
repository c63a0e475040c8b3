"""ServiceLoop: run/stop ライフサイクルループ。

状態遷移: STARTING → RUNNING → EXITING

- STARTING: 終了シグナルのハンドラを登録する。
- RUNNING: 各イテレーションの先頭で終了要求を確認し、要求がなければ
  リロードシグナルを再登録して run() を呼び出す。stop() が届かないまま
  run() が戻った場合は警告を出して次のイテレーションに進む。
- EXITING: 未発火のフックを破棄し、元のシグナル処分を復元する。
"""

from __future__ import annotations

import logging

from scriptsvc.engine._contract import ServiceHandle
from scriptsvc.engine._dispatcher import CallDispatcher
from scriptsvc.engine._hook import SafePointHook
from scriptsvc.engine._latch import SignalLatch
from scriptsvc.models._base import ScriptsvcBaseModel
from scriptsvc.models.call_result import (
    CallError,
    CallFailure,
    CallInterrupted,
    CallResult,
)
from scriptsvc.models.lifecycle import (
    LifecyclePhase,
    LifecycleState,
    TerminationRequest,
)

logger = logging.getLogger(__name__)


class LoopOutcome(ScriptsvcBaseModel):
    """ループ終了時の結果。

    Attributes:
        iterations: run() を呼び出した回数。
        stop_calls: stop() を呼び出した回数。
        termination: 終了時の終了要求状態。
        outstanding: 最後のイテレーションで未解消のまま残った失敗。なければ None。
    """

    iterations: int
    stop_calls: int
    termination: TerminationRequest
    outstanding: CallFailure | None = None


def _failure(result: CallResult | None) -> CallFailure | None:
    if isinstance(result, (CallError, CallInterrupted)):
        return result
    return None


class ServiceLoop:
    """run() を繰り返し呼び出すメインループ。

    Args:
        handle: 検証済みの ServiceHandle。
        state: 共有ライフサイクル状態。
        latch: シグナルラッチ。
        hook: セーフポイントフックコントローラ。
        dispatcher: 呼び出しディスパッチャ。
        max_iterations: run() 呼び出し回数の上限。None なら無制限。
    """

    def __init__(
        self,
        handle: ServiceHandle,
        state: LifecycleState,
        latch: SignalLatch,
        hook: SafePointHook,
        dispatcher: CallDispatcher,
        *,
        max_iterations: int | None = None,
    ) -> None:
        self._handle = handle
        self._state = state
        self._latch = latch
        self._hook = hook
        self._dispatcher = dispatcher
        self._max_iterations = max_iterations

    def run(self) -> LoopOutcome:
        """ループを実行し、終了要求が受理されるまで run() を呼び続ける。"""
        state = self._state
        state.phase = LifecyclePhase.STARTING
        self._latch.install()
        outstanding: CallFailure | None = None
        try:
            state.phase = LifecyclePhase.RUNNING
            while not state.termination_requested:
                outstanding = self._iterate()
                if (
                    self._max_iterations is not None
                    and state.iterations >= self._max_iterations
                ):
                    logger.info(
                        "Reached max_iterations=%d, leaving service loop",
                        self._max_iterations,
                    )
                    break
        finally:
            state.phase = LifecyclePhase.EXITING
            self._hook.clear()
            self._latch.uninstall()

        return LoopOutcome(
            iterations=state.iterations,
            stop_calls=state.stop_calls,
            termination=state.termination,
            outstanding=outstanding,
        )

    def _iterate(self) -> CallFailure | None:
        state = self._state
        state.stopping = False
        state.iterations += 1
        # 前回の run() 中に受けた SIGHUP で変わった処分を毎回戻す
        self._latch.arm_reload()

        run_result = self._dispatcher.dispatch_run(self._handle)
        stop_result = self._hook.take_stop_result()

        if not state.stopping:
            if state.termination_requested:
                logger.debug(
                    "Termination requested but run() returned before a checkpoint"
                )
            else:
                logger.warning(
                    "Service run() returned without a stop request "
                    "(iteration %d); restarting",
                    state.iterations,
                )

        return _failure(run_result) or _failure(stop_result)
