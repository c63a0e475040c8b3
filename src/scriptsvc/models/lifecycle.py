"""ライフサイクル状態の定義。

シグナルハンドラ・セーフポイントフック・メインループの三者が共有する
状態を単一の LifecycleState にまとめる。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TerminationRequest(StrEnum):
    """終了要求の三状態。none → pending → forced の順にのみ遷移する。"""

    NONE = "none"
    PENDING = "pending"
    FORCED = "forced"


class HookDisposition(StrEnum):
    """次のチェックポイントでフックが行う動作。"""

    NONE = "none"
    INVOKE_STOP = "invoke-stop"
    ABORT_WITH_ERROR = "abort-with-error"


class LifecyclePhase(StrEnum):
    """メインループの状態。"""

    STARTING = "starting"
    RUNNING = "running"
    EXITING = "exiting"


@dataclass
class LifecycleState:
    """シグナルコンテキストとエンジンスレッドが共有する可変状態。

    termination と disposition はシグナルラッチのみが書き込み、
    エンジンスレッド側（フック・ループ）は読み取りと消費（NONE へのクリア）のみ行う。

    Attributes:
        termination: 終了要求の状態。
        disposition: 次のチェックポイントで実行するフック動作。
        stopping: 現在のイテレーションでフックが実際に発火したか。
        phase: ループの状態。
        iterations: run() の呼び出し回数。
        stop_calls: stop() の呼び出し回数。
        reloads: 受信したリロードシグナルの回数。
    """

    termination: TerminationRequest = TerminationRequest.NONE
    disposition: HookDisposition = HookDisposition.NONE
    stopping: bool = False
    phase: LifecyclePhase = LifecyclePhase.STARTING
    iterations: int = 0
    stop_calls: int = 0
    reloads: int = 0

    @property
    def termination_requested(self) -> bool:
        """終了要求が一度でも受理されたか。"""
        return self.termination is not TerminationRequest.NONE
