"""run_service() / check_script() のテスト。

実際のスクリプトファイルを読み込み、シグナル送出を含むシナリオで検証する。
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from scriptsvc.engine._interpreter import ScriptEngine
from scriptsvc.engine._service import ServiceResult, check_script, run_service
from scriptsvc.models.config import CheckpointConfig, CheckpointGranularity, ServiceConfig
from scriptsvc.models.exit_code import ExitCode
from scriptsvc.models.lifecycle import TerminationRequest
from tests.unit.engine.conftest import RecordingReporter

WriteScript = Callable[[str], Path]

GRACEFUL_SERVICE = """\
import signal

class Service:
    def __init__(self):
        self.running = True

    def run(self):
        signal.raise_signal(signal.SIGINT)
        while self.running:
            pass

    def stop(self):
        self.running = False

service = Service()
"""

TIGHT_LOOP_SERVICE = """\
import signal

class Service:
    def __init__(self):
        self.running = True
        self.spins = 0

    def run(self):
        signal.raise_signal(signal.SIGINT)
        while self.running:
            self.spins += 1
            if self.spins > 300_000:
                raise RuntimeError("tight loop never reached a checkpoint")

    def stop(self):
        self.running = False

service = Service()
"""

MISSING_STOP = """\
def run():
    raise AssertionError("run must not be called")
"""


class TestRunService:
    """run_service() の正常系。"""

    def test_graceful_stop(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        result = run_service(write_script(GRACEFUL_SERVICE), reporter=reporter)
        assert result == ServiceResult(
            exit_code=ExitCode.SUCCESS,
            iterations=1,
            stop_calls=1,
            termination=TerminationRequest.PENDING,
        )
        assert reporter.reports == []

    def test_module_level_entry_points(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            import signal

            state = {"running": True}

            def run():
                signal.raise_signal(signal.SIGTERM)
                while state["running"]:
                    pass

            def stop():
                state["running"] = False
            """
        )
        result = run_service(script, reporter=reporter)
        assert result.exit_code == ExitCode.SUCCESS
        assert result.stop_calls == 1

    def test_mapping_service(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            import signal

            flags = []

            def run():
                signal.raise_signal(signal.SIGINT)
                while not flags:
                    pass

            service = {"run": run, "stop": lambda: flags.append("stop")}
            """
        )
        result = run_service(script, reporter=reporter)
        assert result.exit_code == ExitCode.SUCCESS

    def test_script_arguments(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            assert arg[1:] == ["--port", "8080"], arg

            def run():
                pass

            def stop():
                pass
            """
        )
        config = ServiceConfig(max_iterations=1)
        result = run_service(script, ["--port", "8080"], config, reporter=reporter)
        assert result.exit_code == ExitCode.SUCCESS
        assert result.iterations == 1

    def test_opcode_granularity_stops_tight_loop(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        config = ServiceConfig(
            checkpoint=CheckpointConfig(
                granularity=CheckpointGranularity.OPCODE, interval=50
            )
        )
        result = run_service(
            write_script(TIGHT_LOOP_SERVICE), config=config, reporter=reporter
        )
        assert result.exit_code == ExitCode.SUCCESS
        assert result.stop_calls == 1
        assert reporter.reports == []

    def test_opcode_granularity_first_invoke_in_engine(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        """新しいエンジンの最初の呼び出しからオペコード単位で発火する。"""
        engine = ScriptEngine(CheckpointConfig(granularity="opcode"))
        result = run_service(
            write_script(TIGHT_LOOP_SERVICE), reporter=reporter, engine=engine
        )
        assert result.exit_code == ExitCode.SUCCESS
        assert result.stop_calls == 1

    def test_injected_engine(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        result = run_service(
            write_script(GRACEFUL_SERVICE),
            reporter=reporter,
            engine=ScriptEngine(),
        )
        assert result.exit_code == ExitCode.SUCCESS


class TestExecutionErrors:
    """実行中の失敗と終了コード。"""

    def test_forced_abort_exits_with_error(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            import signal

            stopped = []

            def run():
                signal.raise_signal(signal.SIGINT); signal.raise_signal(signal.SIGINT)
                while True:
                    pass

            def stop():
                stopped.append(True)
                raise AssertionError("stop must not be called")
            """
        )
        result = run_service(script, reporter=reporter)
        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert result.stop_calls == 0
        assert result.termination is TerminationRequest.FORCED
        assert result.last_error == "interrupted!"
        assert reporter.messages == ["interrupted!"]

    def test_ignored_stop_then_second_signal(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            import signal

            def run():
                signal.raise_signal(signal.SIGTERM)
                while True:
                    pass

            def stop():
                signal.raise_signal(signal.SIGTERM)
            """
        )
        result = run_service(script, reporter=reporter)
        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert result.stop_calls == 1
        assert result.termination is TerminationRequest.FORCED

    def test_repeated_run_errors(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            def run():
                raise RuntimeError("boom")

            def stop():
                pass
            """
        )
        config = ServiceConfig(max_iterations=3)
        result = run_service(script, config=config, reporter=reporter)
        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert result.iterations == 3
        assert result.last_error == "RuntimeError: boom"
        assert reporter.messages == ["RuntimeError: boom"] * 3
        assert all(tb is not None and "boom" in tb for _, tb in reporter.reports)

    def test_traceback_disabled(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            def run():
                raise RuntimeError("boom")

            def stop():
                pass
            """
        )
        config = ServiceConfig(max_iterations=1, traceback=False)
        run_service(script, config=config, reporter=reporter)
        assert reporter.reports == [("RuntimeError: boom", None)]

    def test_reload_signal_is_inert(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            import signal

            def run():
                signal.raise_signal(signal.SIGHUP)
                signal.raise_signal(signal.SIGHUP)

            def stop():
                raise AssertionError("stop must not be called")
            """
        )
        config = ServiceConfig(max_iterations=2)
        result = run_service(script, config=config, reporter=reporter)
        assert result.exit_code == ExitCode.SUCCESS
        assert result.iterations == 2
        assert result.stop_calls == 0
        assert result.termination is TerminationRequest.NONE


class TestStartupErrors:
    """起動時エラー。"""

    def test_missing_stop(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        result = run_service(write_script(MISSING_STOP), reporter=reporter)
        assert result.exit_code == ExitCode.STARTUP_ERROR
        assert result.iterations == 0
        assert result.last_error == "Method stop is not a function or not present"
        assert reporter.messages == ["Method stop is not a function or not present"]

    def test_not_structured(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        result = run_service(write_script("service = 42\n"), reporter=reporter)
        assert result.exit_code == ExitCode.STARTUP_ERROR
        assert "not a structured object" in (result.last_error or "")

    def test_syntax_error(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        result = run_service(write_script("def run(:\n"), reporter=reporter)
        assert result.exit_code == ExitCode.STARTUP_ERROR
        assert result.last_error is not None
        assert result.last_error.startswith("ScriptLoadError: cannot compile")

    def test_missing_file(self, tmp_path: Path, reporter: RecordingReporter) -> None:
        result = run_service(tmp_path / "missing.py", reporter=reporter)
        assert result.exit_code == ExitCode.STARTUP_ERROR
        assert "cannot open" in (result.last_error or "")

    def test_error_during_load(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        result = run_service(
            write_script("raise RuntimeError('broken config')\n"), reporter=reporter
        )
        assert result.exit_code == ExitCode.STARTUP_ERROR
        assert reporter.messages == ["RuntimeError: broken config"]

    def test_interrupted_during_load(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            import signal

            signal.raise_signal(signal.SIGINT)
            loaded = True

            def run():
                pass

            def stop():
                pass
            """
        )
        result = run_service(script, reporter=reporter)
        assert result.exit_code == ExitCode.STARTUP_ERROR
        assert result.termination is TerminationRequest.FORCED
        assert result.last_error == "interrupted!"


class TestLibraries:
    """ライブラリの事前読み込み。"""

    def test_library_bound_before_load(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            assert json.loads("[1]") == [1]

            def run():
                pass

            def stop():
                pass
            """
        )
        config = ServiceConfig(libraries=("json",))
        result = check_script(script, config=config, reporter=reporter)
        assert result.exit_code == ExitCode.SUCCESS

    def test_library_failure_reported_and_startup_continues(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script("def run():\n    pass\n\ndef stop():\n    pass\n")
        config = ServiceConfig(libraries=("scriptsvc_no_such_library",))
        result = check_script(script, config=config, reporter=reporter)
        assert result.exit_code == ExitCode.SUCCESS
        assert len(reporter.messages) == 1
        assert reporter.messages[0].startswith("ModuleNotFoundError:")


class TestCheckScript:
    """check_script()。"""

    def test_valid_script_does_not_run(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        script = write_script(
            """\
            def run():
                raise AssertionError("run must not be called")

            def stop():
                pass
            """
        )
        result = check_script(script, reporter=reporter)
        assert result == ServiceResult(exit_code=ExitCode.SUCCESS)
        assert reporter.reports == []

    def test_contract_violation(
        self, write_script: WriteScript, reporter: RecordingReporter
    ) -> None:
        result = check_script(write_script(MISSING_STOP), reporter=reporter)
        assert result.exit_code == ExitCode.STARTUP_ERROR
