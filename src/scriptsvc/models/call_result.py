"""エンジン呼び出し結果の定義。

CallResult 判別共用体。status フィールドの固定値で型を一意に特定する。
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field

from scriptsvc.models._base import ScriptsvcBaseModel

INTERRUPTED_MESSAGE = "interrupted!"
"""強制中断時にスクリプトへ送出されるエラーメッセージ。"""


class CallSuccess(ScriptsvcBaseModel):
    """呼び出しの成功結果。判別キー: status="success"。

    Attributes:
        status: 判別キー。固定値 "success"。
        call_name: 呼び出し名（"run", "stop", "load", "require <name>"）。
        elapsed_time: 実行所要時間（秒、非負）。
        value: 呼び出しの戻り値。シリアライズ対象外。
    """

    status: Literal["success"] = "success"
    call_name: str = Field(min_length=1)
    elapsed_time: float = Field(ge=0, allow_inf_nan=False)
    value: Any = Field(default=None, exclude=True, repr=False)


class CallError(ScriptsvcBaseModel):
    """呼び出し中に例外が発生した結果。判別キー: status="error"。

    Attributes:
        status: 判別キー。固定値 "error"。
        call_name: 呼び出し名。
        error_message: 報告用の一行メッセージ。
        error_type: 例外クラス名。
        traceback: 診断用トレースバック（無効化時は None）。
    """

    status: Literal["error"] = "error"
    call_name: str = Field(min_length=1)
    error_message: str = Field(min_length=1)
    error_type: str = Field(min_length=1)
    traceback: str | None = None


class CallInterrupted(ScriptsvcBaseModel):
    """強制中断（abort-with-error）で打ち切られた結果。判別キー: status="interrupted"。

    Attributes:
        status: 判別キー。固定値 "interrupted"。
        call_name: 呼び出し名。
        error_message: 固定値 "interrupted!"。
        traceback: 診断用トレースバック（無効化時は None）。
    """

    status: Literal["interrupted"] = "interrupted"
    call_name: str = Field(min_length=1)
    error_message: str = INTERRUPTED_MESSAGE
    traceback: str | None = None


CallResult = Annotated[
    Union[CallSuccess, CallError, CallInterrupted],
    Field(discriminator="status"),
]
"""呼び出し結果の判別共用体。"""

CallFailure = CallError | CallInterrupted
"""失敗系の呼び出し結果。"""
