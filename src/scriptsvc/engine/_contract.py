"""スクリプト契約の検証。

スクリプトの結果値が構造化値（マッピングまたは属性を持つオブジェクト）であり、
必須エントリポイント run / stop がいずれも呼び出し可能であることを検証する。
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Final

from scriptsvc.engine._errors import ContractError, InvocationError

RUN_METHOD: Final[str] = "run"
STOP_METHOD: Final[str] = "stop"
REQUIRED_METHODS: Final[tuple[str, ...]] = (RUN_METHOD, STOP_METHOD)

_SCALAR_TYPES: Final[tuple[type, ...]] = (
    str,
    bytes,
    bytearray,
    int,
    float,
    complex,
    bool,
    list,
    tuple,
    set,
    frozenset,
)
"""構造化値とみなさない型。"""


def _lookup(value: object, name: str) -> object | None:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


class ServiceHandle:
    """検証済みのスクリプト結果値。プロセス終了まで保持される。

    エントリポイントは呼び出しのたびに結果値から解決し直す。
    """

    __slots__ = ("value",)

    def __init__(self, value: object) -> None:
        self.value = value

    def resolve(self, name: str) -> Callable[[], object]:
        """エントリポイントを解決する。

        Raises:
            InvocationError: エントリポイントが存在しないか呼び出し可能でない場合。
        """
        method = _lookup(self.value, name)
        if not callable(method):
            raise InvocationError(f"Method {name} is not a function or not present")
        return method

    def call(self, name: str) -> object:
        """エントリポイントを解決して引数なしで呼び出す。"""
        return self.resolve(name)()

    def __repr__(self) -> str:
        return f"ServiceHandle({type(self.value).__name__})"


def validate_service_handle(value: object) -> ServiceHandle:
    """スクリプトの結果値を検証し ServiceHandle を返す。

    Args:
        value: スクリプトの読み込み・実行で得られた結果値。

    Returns:
        検証済みの ServiceHandle。

    Raises:
        ContractError: 構造化値でない場合、または最初に見つかった
            欠落・呼び出し不能なエントリポイントの名前を含むエラー。
    """
    if value is None or isinstance(value, _SCALAR_TYPES):
        raise ContractError(
            f"Script return value is not a structured object "
            f"(got {type(value).__name__})"
        )
    for name in REQUIRED_METHODS:
        if not callable(_lookup(value, name)):
            raise ContractError(f"Method {name} is not a function or not present")
    return ServiceHandle(value)
