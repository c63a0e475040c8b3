"""サービス実行時の例外階層。"""

from __future__ import annotations

from scriptsvc.models.call_result import INTERRUPTED_MESSAGE


class ServiceError(Exception):
    """scriptsvc の例外基底クラス。"""


class StartupError(ServiceError):
    """起動時の致命的エラー。メインループに入る前にプロセスを終了させる。"""


class ScriptLoadError(StartupError):
    """スクリプトの読み込み・コンパイルに失敗した。"""


class ContractError(StartupError):
    """スクリプトの戻り値が run/stop 契約を満たさない。"""


class InvocationError(ServiceError):
    """実行中のエントリポイント解決に失敗した。ループは継続する。"""


class ForcedTermination(BaseException):
    """強制中断フックがスクリプト内に送出するエラー。

    スクリプト側の ``except Exception`` で握り潰されないよう
    KeyboardInterrupt と同様に BaseException を継承する。
    """

    def __init__(self, message: str = INTERRUPTED_MESSAGE) -> None:
        super().__init__(message)
