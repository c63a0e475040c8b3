"""SafePointHook: セーフポイントでの停止ハンドオフ。

エンジンのチェックポイントで呼ばれ、SignalLatch が書き込んだ
HookDisposition を消費して実際の停止動作を行う:

- invoke-stop: フックを一度だけ消費し、stop() をエンジン自身の
  実行コンテキストで同期的に呼び出す。完了後にリロードシグナルを再登録する。
- abort-with-error: フックを消費し、ForcedTermination を送出して
  現在の run() 呼び出しを打ち切る。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import FrameType

from scriptsvc.engine._contract import STOP_METHOD, ServiceHandle
from scriptsvc.engine._dispatcher import CallDispatcher
from scriptsvc.engine._errors import ForcedTermination
from scriptsvc.models.call_result import CallResult
from scriptsvc.models.lifecycle import (
    HookDisposition,
    LifecycleState,
    TerminationRequest,
)

logger = logging.getLogger(__name__)


class SafePointHook:
    """チェックポイントで停止要求を処理するフックコントローラ。

    Args:
        state: 共有ライフサイクル状態。
        dispatcher: stop() 呼び出しに使う CallDispatcher。
        on_stop_complete: stop() 呼び出し後（成否を問わず）に呼ばれるコールバック。
            リロードシグナルの再登録に使う。
    """

    def __init__(
        self,
        state: LifecycleState,
        dispatcher: CallDispatcher,
        on_stop_complete: Callable[[], None] | None = None,
    ) -> None:
        self._state = state
        self._dispatcher = dispatcher
        self._on_stop_complete = on_stop_complete
        self._handle: ServiceHandle | None = None
        self._stop_result: CallResult | None = None

    def bind(self, handle: ServiceHandle) -> None:
        """stop() の呼び出し先となるハンドルを設定する。"""
        self._handle = handle

    def clear(self) -> None:
        """未発火のフック動作を破棄する。"""
        self._state.disposition = HookDisposition.NONE

    def take_stop_result(self) -> CallResult | None:
        """直近の stop() 呼び出し結果を取り出す（取り出し後は None に戻る）。"""
        result, self._stop_result = self._stop_result, None
        return result

    def checkpoint(self, frame: FrameType, event: str) -> None:
        """エンジンのチェックポイントコールバック。

        Raises:
            ForcedTermination: 強制中断が要求されている場合。
        """
        state = self._state
        disposition = state.disposition
        if disposition is HookDisposition.NONE:
            return
        # 一度きり: 以降のスクリプトコードが再開する前にフックを消費する
        state.disposition = HookDisposition.NONE
        state.stopping = True
        if (
            disposition is HookDisposition.ABORT_WITH_ERROR
            or state.termination is TerminationRequest.FORCED
        ):
            logger.debug("Forced abort at %s (%s)", event, frame.f_code.co_name)
            raise ForcedTermination()
        self._invoke_stop()

    def _invoke_stop(self) -> None:
        if self._handle is None:
            logger.warning("Stop requested before a service handle was bound")
            return
        # checkpoint() の判定後に届いた2回目のシグナルでも stop() は呼ばない
        if self._state.termination is TerminationRequest.FORCED:
            self._state.disposition = HookDisposition.NONE
            logger.debug("Escalated to forced abort before stop() dispatch")
            raise ForcedTermination()
        try:
            self._stop_result = self._dispatcher.dispatch(
                STOP_METHOD,
                self._handle.call,
                STOP_METHOD,
                checkpoints=False,
            )
            self._state.stop_calls += 1
        finally:
            if self._on_stop_complete is not None:
                self._on_stop_complete()
