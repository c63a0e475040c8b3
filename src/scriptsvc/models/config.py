"""設定管理モデル。

設定項目の定義とバリデーション仕様。
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Annotated, Final

from pydantic import Field, StrictBool, StringConstraints

from scriptsvc.models._base import ScriptsvcBaseModel, lenient_enum

DEFAULT_CHECKPOINT_INTERVAL: Final[int] = 1
"""チェックポイントの既定間隔（ティック数）。"""


class CheckpointGranularity(StrEnum):
    """命令数ティックの単位。"""

    LINE = "line"
    OPCODE = "opcode"


class LogLevel(StrEnum):
    """ログレベル。logging モジュールのレベル名と一致する。"""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CheckpointConfig(ScriptsvcBaseModel):
    """セーフポイントフックの発火粒度設定。

    関数呼び出し・関数復帰は常にチェックポイントとなる。
    加えて interval ティックごとに発火し、関数呼び出しを伴わない
    タイトループでも停止までの遅延を抑える。
    """

    granularity: Annotated[
        CheckpointGranularity, lenient_enum(CheckpointGranularity)
    ] = CheckpointGranularity.LINE
    interval: int = Field(default=DEFAULT_CHECKPOINT_INTERVAL, gt=0)


class ServiceConfig(ScriptsvcBaseModel):
    """全設定項目を統合した不変モデル。

    デフォルト値のみで有効なインスタンスを構築可能。
    """

    # 起動設定
    libraries: tuple[Annotated[str, StringConstraints(min_length=1)], ...] = ()
    pidfile: Path | None = None
    daemon: StrictBool = False

    # 実行設定
    max_iterations: int | None = Field(default=None, gt=0)
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)

    # 出力設定
    traceback: StrictBool = True
    log_level: Annotated[LogLevel, lenient_enum(LogLevel)] = LogLevel.WARNING
