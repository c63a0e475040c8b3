"""全ドメインモデルの基底クラスと共通バリデータ。"""

from enum import StrEnum
from typing import TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict


class ScriptsvcBaseModel(BaseModel):
    """全ドメインモデルの基底クラス。extra="forbid" かつ不変。"""

    model_config = ConfigDict(extra="forbid", frozen=True)


E = TypeVar("E", bound=StrEnum)


def lenient_enum(enum_cls: type[E]) -> BeforeValidator:
    """設定ファイル・環境由来の表記揺れを吸収する StrEnum 用バリデータを作る。

    前後の空白を除き、大文字小文字を区別せずにメンバー値と照合する。
    照合できない入力はそのまま後続の列挙型検証に渡し、通常のエラーにする。

    使用例::

        level: Annotated[LogLevel, lenient_enum(LogLevel)] = LogLevel.WARNING
    """
    lookup = {member.value.casefold(): member for member in enum_cls}

    def _coerce(value: object) -> object:
        if isinstance(value, str):
            return lookup.get(value.strip().casefold(), value)
        return value

    return BeforeValidator(_coerce)
