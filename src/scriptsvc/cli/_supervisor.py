"""デーモン化と pidfile 管理。

サービスループに制御を渡す前に、プロセスをデタッチし
単一プロセス所有を示す pidfile を書き出す。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class SupervisorError(Exception):
    """デーモン化に失敗した。"""


def daemonize() -> bool:
    """プロセスを fork し、子プロセスを新しいセッションへデタッチする。

    Returns:
        子プロセスでは True、親プロセスでは False。
        親プロセスは呼び出し側で直ちに正常終了する。

    Raises:
        SupervisorError: fork に失敗した場合。
    """
    try:
        pid = os.fork()
    except OSError as exc:
        raise SupervisorError(f"cannot create child process: {exc.strerror}") from exc
    if pid > 0:
        logger.debug("Forked service process %d", pid)
        return False
    os.setsid()
    return True


def write_pidfile(path: Path, pid: int) -> None:
    """pid を10進数で pidfile に書き出す。

    Raises:
        OSError: 書き込みに失敗した場合。
    """
    path.write_text(f"{pid}", encoding="ascii")


def remove_pidfile(path: Path, pid: int) -> bool:
    """pidfile がこのプロセスの pid を保持している場合のみ削除する。

    Returns:
        削除した場合は True。
    """
    try:
        content = path.read_text(encoding="ascii").strip()
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Cannot read pidfile %s: %s", path, exc)
        return False
    if content != str(pid):
        logger.debug("Pidfile %s owned by another process (%s)", path, content)
        return False
    path.unlink(missing_ok=True)
    return True
