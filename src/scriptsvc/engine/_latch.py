"""SignalLatch: 終了シグナルのラッチ。

シグナルハンドラ内では LifecycleState のフィールド代入と
シグナル処分（disposition）の付け替えのみを行い、スクリプトを呼び出さない。
実際の停止処理は SafePointHook が次のチェックポイントで行う。

- SIGINT / SIGTERM（1回目）: termination=pending、disposition=invoke-stop
- SIGINT / SIGTERM（2回目以降）: termination=forced、disposition=abort-with-error。
  両シグナルを SIG_DFL に戻し、3回目はプロセスを既定動作で終了させる。
- SIGHUP: 終了要求とは無関係。次の再登録まで SIG_IGN にする。
"""

from __future__ import annotations

import signal
from collections.abc import Callable
from types import FrameType
from typing import Final

from scriptsvc.models.lifecycle import (
    HookDisposition,
    LifecycleState,
    TerminationRequest,
)

TERMINATION_SIGNALS: Final[tuple[signal.Signals, ...]] = (
    signal.SIGINT,
    signal.SIGTERM,
)
"""グレースフル停止 → 強制中断のエスカレーション対象シグナル。"""

RELOAD_SIGNAL: Final[signal.Signals] = signal.SIGHUP
"""リロード系シグナル。ループの各イテレーションで再登録される。"""

SignalHandler = Callable[[int, FrameType | None], None]


class SignalLatch:
    """シグナルを LifecycleState へのフラグ書き込みに変換する。

    置き換えたシグナルの元の処分は初回上書き時に保存し、uninstall() で復元する。
    シグナルはメインスレッドからのみ設置できる。
    """

    def __init__(self, state: LifecycleState) -> None:
        self._state = state
        self._saved: dict[signal.Signals, object] = {}

    @property
    def handlers(self) -> tuple[SignalHandler, ...]:
        """シグナルハンドラとして登録される関数群。トレース除外に使う。"""
        return (self._on_terminate, self._on_startup_interrupt, self._on_reload)

    # -------------------------------------------------------------------------
    # 登録・解除
    # -------------------------------------------------------------------------

    def install(self) -> None:
        """SIGINT / SIGTERM に終了ハンドラを登録する。"""
        for signum in TERMINATION_SIGNALS:
            self._set(signum, self._on_terminate)

    def arm_reload(self) -> None:
        """SIGHUP にリロードハンドラを再登録する。"""
        self._set(RELOAD_SIGNAL, self._on_reload)

    def arm_startup(self) -> None:
        """起動処理中の SIGINT を強制中断として扱うハンドラを登録する。"""
        self._set(signal.SIGINT, self._on_startup_interrupt)

    def disarm_startup(self) -> None:
        """起動処理が終わった後、SIGINT を既定動作に戻す。"""
        self._set(signal.SIGINT, signal.SIG_DFL)

    def uninstall(self) -> None:
        """保存しておいた元のシグナル処分をすべて復元する。"""
        for signum, previous in self._saved.items():
            signal.signal(signum, previous)  # type: ignore[arg-type]
        self._saved.clear()

    def _set(self, signum: signal.Signals, handler: object) -> None:
        previous = signal.signal(signum, handler)  # type: ignore[arg-type]
        self._saved.setdefault(signum, previous)

    # -------------------------------------------------------------------------
    # シグナルハンドラ（フラグ書き込みとシグナル処分の変更のみ）
    # -------------------------------------------------------------------------

    def _on_terminate(self, signum: int, frame: FrameType | None) -> None:
        state = self._state
        if state.termination is TerminationRequest.NONE:
            state.termination = TerminationRequest.PENDING
            state.disposition = HookDisposition.INVOKE_STOP
            return
        # 停止要求が既に出ている → 強制中断へ昇格。forced から戻ることはない。
        state.termination = TerminationRequest.FORCED
        state.disposition = HookDisposition.ABORT_WITH_ERROR
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)

    def _on_startup_interrupt(self, signum: int, frame: FrameType | None) -> None:
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        self._state.termination = TerminationRequest.FORCED
        self._state.disposition = HookDisposition.ABORT_WITH_ERROR

    def _on_reload(self, signum: int, frame: FrameType | None) -> None:
        # 次の再登録までの SIGHUP は無視する
        signal.signal(RELOAD_SIGNAL, signal.SIG_IGN)
        self._state.reloads += 1
