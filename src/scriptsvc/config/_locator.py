"""設定ソースの探索。

サービススクリプトは作業ディレクトリとは無関係な場所に置かれることが多いため、
探索はスクリプトのあるディレクトリから始める（標準入力の場合はカレント）。
そこから親方向に pyproject.toml と .scriptsvc/config.toml を探す。
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from scriptsvc.engine._interpreter import STDIN_SCRIPT

_PROJECT_DIR_NAME: str = ".scriptsvc"
_CONFIG_FILE_NAME: str = "config.toml"
_PYPROJECT_FILE_NAME: str = "pyproject.toml"


@dataclass(frozen=True)
class ConfigSources:
    """探索で見つかった設定ファイルのパス（低優先度順）。

    Attributes:
        user: ユーザーグローバル設定のパス。存在しなくてもよい。
        pyproject: 最も近い pyproject.toml。見つからなければ None。
        project: 最も近い .scriptsvc/config.toml。見つからなければ None。
    """

    user: Path
    pyproject: Path | None = None
    project: Path | None = None


def _ancestors(start: Path) -> Iterator[Path]:
    current = start.resolve()
    yield current
    yield from current.parents


def _first_match(
    start: Path, name: str, predicate: Callable[[Path], bool]
) -> Path | None:
    for directory in _ancestors(start):
        candidate = directory / name
        if predicate(candidate):
            return candidate
    return None


def config_start_dir(script: str | Path) -> Path:
    """スクリプトに対応する設定探索の開始ディレクトリを返す。"""
    if str(script) == STDIN_SCRIPT:
        return Path.cwd()
    return Path(script).resolve().parent


def find_project_root(start: Path) -> Path | None:
    """start から親方向に .scriptsvc/ を探索しプロジェクトルートを返す。"""
    found = _first_match(start, _PROJECT_DIR_NAME, Path.is_dir)
    return found.parent if found is not None else None


def get_user_config_path() -> Path:
    """ユーザーグローバル設定ファイルのパス（~/.config/scriptsvc/config.toml）。"""
    return Path.home() / ".config" / "scriptsvc" / _CONFIG_FILE_NAME


def locate_config_sources(start: Path) -> ConfigSources:
    """start から見える設定ファイルを集める。

    .scriptsvc/ が存在しても config.toml が無ければ project は None になる。
    """
    root = find_project_root(start)
    project = None
    if root is not None:
        candidate = root / _PROJECT_DIR_NAME / _CONFIG_FILE_NAME
        if candidate.is_file():
            project = candidate
    return ConfigSources(
        user=get_user_config_path(),
        pyproject=_first_match(start, _PYPROJECT_FILE_NAME, Path.is_file),
        project=project,
    )
