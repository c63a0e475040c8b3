"""サービス実行エンジン。

ユーザースクリプトを長時間稼働のサービスとして実行する。
以下のパイプラインで動作する:

1. ライブラリの事前読み込み（require）
2. スクリプト読み込みと契約検証（run / stop）
3. ライフサイクルループ（run() の繰り返し呼び出し）
4. 終了シグナル → セーフポイントでの stop() 呼び出し、再度のシグナルで強制中断
"""

from scriptsvc.engine._contract import ServiceHandle, validate_service_handle
from scriptsvc.engine._errors import (
    ContractError,
    ForcedTermination,
    InvocationError,
    ScriptLoadError,
    ServiceError,
    StartupError,
)
from scriptsvc.engine._interpreter import ScriptEngine
from scriptsvc.engine._service import ServiceResult, check_script, run_service

__all__ = [
    "ContractError",
    "ForcedTermination",
    "InvocationError",
    "ScriptEngine",
    "ScriptLoadError",
    "ServiceError",
    "ServiceHandle",
    "ServiceResult",
    "StartupError",
    "check_script",
    "run_service",
]
