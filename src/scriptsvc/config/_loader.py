"""設定レイヤーの読み込み。

TOML をパースし、必要ならネストしたセクション（pyproject.toml の
[tool.scriptsvc] 等）を取り出す。値の検証は ServiceConfig に委ねる。
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Final

logger = logging.getLogger(__name__)

PYPROJECT_SECTION: Final[tuple[str, ...]] = ("tool", "scriptsvc")


def load_layer(
    path: Path | None, *, section: tuple[str, ...] = ()
) -> dict[str, object] | None:
    """設定ファイルを読み込み、1レイヤー分の辞書を返す。

    Args:
        path: TOML ファイルのパス。None の場合は読み込まない。
        section: 取り出すテーブルのキー列。空ならファイル全体。

    Returns:
        レイヤー辞書。ファイルまたはセクションが存在しなければ None。

    Raises:
        tomllib.TOMLDecodeError: TOML 構文エラーの場合。
        PermissionError: 読み取り権限がない場合。
    """
    if path is None:
        return None
    try:
        with path.open("rb") as f:
            data: dict[str, object] = tomllib.load(f)
    except FileNotFoundError:
        return None
    for key in section:
        table = data.get(key)
        if not isinstance(table, dict):
            return None
        data = table
    logger.debug("Loaded configuration layer from %s", path)
    return data
