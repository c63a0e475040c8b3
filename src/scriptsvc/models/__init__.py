"""ドメインモデル。"""

from scriptsvc.models.call_result import (
    CallError,
    CallInterrupted,
    CallResult,
    CallSuccess,
)
from scriptsvc.models.config import CheckpointConfig, CheckpointGranularity, ServiceConfig
from scriptsvc.models.exit_code import ExitCode
from scriptsvc.models.lifecycle import (
    HookDisposition,
    LifecyclePhase,
    LifecycleState,
    TerminationRequest,
)

__all__ = [
    "CallError",
    "CallInterrupted",
    "CallResult",
    "CallSuccess",
    "CheckpointConfig",
    "CheckpointGranularity",
    "ExitCode",
    "HookDisposition",
    "LifecyclePhase",
    "LifecycleState",
    "ServiceConfig",
    "TerminationRequest",
]
