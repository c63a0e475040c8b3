"""ScriptEngine: スクリプト実行エンジン。

実行中の CPython インタプリタを不透明なエンジンとして扱い、
以下の能力のみを提供する:

- ライブラリの事前読み込み（require）
- スクリプト本体の読み込みと実行（load）
- 実行境界フック（関数呼び出し・関数復帰・一定ティックごと）の設置と解除

フックは sys.settrace によるトレーサーとして実装し、
invoke() による呼び出しの間だけ有効になる。
"""

from __future__ import annotations

import gc
import importlib
import logging
import runpy
import sys
import types
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Final, TypeVar

from scriptsvc.engine._errors import ScriptLoadError
from scriptsvc.models.config import CheckpointConfig, CheckpointGranularity

logger = logging.getLogger(__name__)

STDIN_SCRIPT: Final[str] = "-"
"""標準入力からスクリプトを読み込むことを示すパス。"""

SERVICE_ATTRIBUTE: Final[str] = "service"
"""スクリプトの結果値として扱うモジュール変数名。"""

SCRIPT_MODULE_NAME: Final[str] = "__service__"

_R = TypeVar("_R")

CheckpointHook = Callable[[types.FrameType, str], None]
"""チェックポイントで呼ばれるコールバック。引数はフレームとイベント名。"""


class ScriptEngine:
    """スクリプトを実行するエンジン。

    Attributes:
        checkpoint: フックの発火粒度設定。
    """

    def __init__(self, checkpoint: CheckpointConfig | None = None) -> None:
        self.checkpoint: CheckpointConfig = checkpoint or CheckpointConfig()
        self._tick_event = (
            "opcode"
            if self.checkpoint.granularity is CheckpointGranularity.OPCODE
            else "line"
        )
        self._hook: CheckpointHook | None = None
        self._ticks = 0
        self._excluded: set[types.CodeType] = set()
        self._libraries: dict[str, types.ModuleType] = {}
        self._namespace: dict[str, object] | None = None

    # -------------------------------------------------------------------------
    # ライブラリ・スクリプト
    # -------------------------------------------------------------------------

    def require(self, name: str) -> types.ModuleType:
        """ライブラリを import し、スクリプト名前空間への束縛対象として記録する。

        ドット区切りの名前は先頭要素の名前で束縛される（``import a.b`` と同じ）。
        """
        module = importlib.import_module(name)
        top = name.partition(".")[0]
        self._libraries[top] = sys.modules[top]
        return module

    def load(self, script: str | Path, args: Sequence[str] = ()) -> object:
        """スクリプトを読み込んで実行し、その結果値を返す。

        ファイルは runpy.run_path で実行し、標準入力のソースは新しい名前空間で
        exec する。結果値はモジュール変数 ``service`` が定義されていればその値、
        なければスクリプトのグローバル名前空間（マッピング）とする。

        Args:
            script: スクリプトのパス。"-" の場合は標準入力。
            args: スクリプト引数。グローバル変数 ``arg`` に
                ``[script, *args]`` として渡される。

        Returns:
            スクリプトの結果値。

        Raises:
            ScriptLoadError: 読み込みまたはコンパイルに失敗した場合。
            Exception: スクリプト本体の実行中に送出された例外。
        """
        # 読み込み・構文エラーを実行前に ScriptLoadError として切り分ける
        code = self.compile(script)
        init_globals: dict[str, object] = {
            **self._libraries,
            "arg": [str(script), *args],
        }
        if str(script) == STDIN_SCRIPT:
            namespace: dict[str, object] = {
                "__name__": SCRIPT_MODULE_NAME,
                "__file__": code.co_filename,
                **init_globals,
            }
            self._namespace = namespace
            exec(code, namespace)
        else:
            namespace = runpy.run_path(
                str(script), init_globals=init_globals, run_name=SCRIPT_MODULE_NAME
            )
            self._namespace = namespace
        return namespace.get(SERVICE_ATTRIBUTE, namespace)

    def compile(self, script: str | Path) -> types.CodeType:
        """スクリプトのソースを読み込みコンパイルする。

        Raises:
            ScriptLoadError: 読み込みまたはコンパイルに失敗した場合。
        """
        if str(script) == STDIN_SCRIPT:
            filename = "<stdin>"
            source: str | bytes = sys.stdin.read()
        else:
            filename = str(script)
            try:
                source = Path(script).read_bytes()
            except OSError as exc:
                raise ScriptLoadError(f"cannot open {filename}: {exc.strerror}") from exc
        try:
            return compile(source, filename, "exec")
        except (SyntaxError, ValueError) as exc:
            raise ScriptLoadError(f"cannot compile {filename}: {exc}") from exc

    # -------------------------------------------------------------------------
    # 実行境界フック
    # -------------------------------------------------------------------------

    def set_hook(self, hook: CheckpointHook) -> None:
        """チェックポイントフックを設置する。既存のフックは置き換えられる。"""
        self._hook = hook
        self._ticks = 0

    def clear_hook(self) -> None:
        """チェックポイントフックを解除する。"""
        self._hook = None

    @property
    def hook(self) -> CheckpointHook | None:
        """現在設置されているフック。"""
        return self._hook

    def exclude(self, *functions: Callable[..., object]) -> None:
        """指定した関数のフレームをトレース対象から外す。

        シグナルハンドラ自身がチェックポイントにならないようにするために使う。
        """
        for function in functions:
            func = getattr(function, "__func__", function)
            self._excluded.add(func.__code__)

    def invoke(self, function: Callable[..., _R], *args: object) -> _R:
        """チェックポイントを設置した状態で function(*args) を呼び出す。

        呼び出し終了時には直前のトレース関数（カバレッジ計測等）を復元する。
        """
        previous = sys.gettrace()
        self._ticks = 0
        sys.settrace(self._trace)
        try:
            return function(*args)
        finally:
            sys.settrace(previous)

    def _trace(
        self, frame: types.FrameType, event: str, arg: object
    ) -> Callable[..., object] | None:
        if event == "call":
            if frame.f_code in self._excluded:
                return None
            if self._tick_event == "opcode":
                # f_trace_opcodes は f_trace が設定済みのフレームにしか効かない
                frame.f_trace = self._trace
                frame.f_trace_opcodes = True
        elif event == self._tick_event:
            self._ticks += 1
            if self._ticks < self.checkpoint.interval:
                return self._trace
            self._ticks = 0
        elif event != "return":
            return self._trace

        hook = self._hook
        if hook is not None:
            hook(frame, event)
        return self._trace

    # -------------------------------------------------------------------------
    # リソース管理
    # -------------------------------------------------------------------------

    def collect(self) -> int:
        """完全なガベージコレクションを実行する。"""
        return gc.collect()

    def close(self) -> None:
        """スクリプト名前空間とライブラリ参照を破棄する。"""
        self._hook = None
        if self._namespace is not None:
            self._namespace.clear()
            self._namespace = None
        self._libraries.clear()
        collected = self.collect()
        logger.debug("Engine closed (%d objects collected)", collected)
