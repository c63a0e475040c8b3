"""ExitCode: 終了コードの定義。

サービスの実行結果と入力状態に応じた終了コード。
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """プロセス終了コード。

    2 は click の使用法エラー（UsageError）が使用するため欠番とする。
    """

    SUCCESS = 0
    EXECUTION_ERROR = 1
    STARTUP_ERROR = 3
    INPUT_ERROR = 4
