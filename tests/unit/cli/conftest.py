"""CLI テスト共通フィクスチャ・ヘルパー。"""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest

from scriptsvc.engine import ServiceResult
from scriptsvc.models.exit_code import ExitCode

PATCH_RUN_SERVICE = "scriptsvc.cli._app.run_service"
PATCH_CHECK_SCRIPT = "scriptsvc.cli._app.check_script"
PATCH_RESOLVE_CONFIG = "scriptsvc.cli._app.resolve_config"
PATCH_DAEMONIZE = "scriptsvc.cli._app.daemonize"
PATCH_CONFIGURE_LOGGING = "scriptsvc.cli._app.configure_logging"


@pytest.fixture(autouse=True)
def _prevent_logging_configuration() -> Iterator[None]:
    """テストがルートロガーにハンドラを追加することを防止する。"""
    with patch(PATCH_CONFIGURE_LOGGING):
        yield


def make_service_result(exit_code: ExitCode = ExitCode.SUCCESS) -> ServiceResult:
    """テスト用の最小 ServiceResult を生成する。"""
    return ServiceResult(exit_code=exit_code)
