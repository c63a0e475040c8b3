"""設定リゾルバー。

5層の設定ソースを階層解決し、テーブル単位の項目をフィールド単位でマージする。
CLI オプションの None は未指定として除外する。
"""

from __future__ import annotations

from pathlib import Path
from typing import Final

from scriptsvc.config._loader import PYPROJECT_SECTION, load_layer
from scriptsvc.config._locator import locate_config_sources
from scriptsvc.models.config import ServiceConfig

_TABLE_KEYS: Final[frozenset[str]] = frozenset({"checkpoint"})
"""フィールド単位でマージするネストテーブルのキー。"""


def _merge_table(
    key: str,
    base: object,
    override: object,
) -> dict[str, object]:
    """ネストテーブルをフィールド単位でマージする。

    Raises:
        TypeError: override が dict でない場合。
    """
    if not isinstance(override, dict):
        msg = f"'{key}' must be a table, got {type(override).__name__}"
        raise TypeError(msg)
    merged: dict[str, object] = dict(base) if isinstance(base, dict) else {}
    merged.update(override)
    return merged


def merge_config_layers(
    *layers: dict[str, object] | None,
) -> dict[str, object]:
    """複数の設定レイヤーを項目単位でマージする。

    後のレイヤーが先のレイヤーを上書きする。
    checkpoint セクションはフィールド単位でマージする。
    None のレイヤーはスキップされる。

    Args:
        layers: マージ対象の設定辞書。低優先度から高優先度の順。

    Returns:
        マージ済みの設定辞書。
    """
    result: dict[str, object] = {}
    for layer in layers:
        if layer is None:
            continue
        for key, value in layer.items():
            if key in _TABLE_KEYS:
                result[key] = _merge_table(key, result.get(key), value)
            else:
                result[key] = value
    return result


def filter_cli_overrides(cli_options: dict[str, object]) -> dict[str, object]:
    """CLI オプション辞書から None 値を除外する。

    None 値は「未指定」を意味し、マージ対象から除外する。
    ネストテーブルの中の None も同様に除外し、空になったテーブルは捨てる。
    """
    filtered: dict[str, object] = {}
    for key, value in cli_options.items():
        if isinstance(value, dict):
            nested = {k: v for k, v in value.items() if v is not None}
            if nested:
                filtered[key] = nested
        elif value is not None:
            filtered[key] = value
    return filtered


def resolve_config(
    start_dir: Path | None = None,
    cli_overrides: dict[str, object] | None = None,
) -> ServiceConfig:
    """5層の設定ソースを解決し ServiceConfig を構築する。

    CLI > .scriptsvc/config.toml > pyproject.toml [tool.scriptsvc]
    > ~/.config/scriptsvc/config.toml > デフォルト値

    設定ファイルが存在しない場合は該当レイヤーをスキップし、次のレイヤーに進む。

    Args:
        start_dir: 探索開始ディレクトリ。通常はスクリプトのあるディレクトリ
            （config_start_dir() を参照）。None の場合はカレントディレクトリ。
        cli_overrides: CLI オプションの辞書。None 値は未指定扱い。

    Returns:
        解決済みの ServiceConfig インスタンス。

    Raises:
        pydantic.ValidationError: マージ後の設定が不正な場合。
        tomllib.TOMLDecodeError: 設定ファイルの TOML 構文が不正な場合。
        PermissionError: 設定ファイルの読み取り権限がない場合。
        TypeError: ネストテーブルがテーブルでない場合。
    """
    sources = locate_config_sources(
        start_dir if start_dir is not None else Path.cwd()
    )

    # Layer 1 (最低優先): ユーザーグローバル設定
    user_layer = load_layer(sources.user)
    # Layer 2: pyproject.toml [tool.scriptsvc]
    pyproject_layer = load_layer(sources.pyproject, section=PYPROJECT_SECTION)
    # Layer 3: .scriptsvc/config.toml
    config_layer = load_layer(sources.project)

    # Layer 4 (最高優先): CLI overrides
    cli_layer: dict[str, object] | None = None
    if cli_overrides is not None:
        cli_layer = filter_cli_overrides(cli_overrides)

    merged = merge_config_layers(user_layer, pyproject_layer, config_layer, cli_layer)

    # Layer 5 (最低優先): デフォルト値 -- ServiceConfig のフィールドデフォルトが適用される
    return ServiceConfig(**merged)  # type: ignore[arg-type]
