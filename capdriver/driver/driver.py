"""Driver facade: one top-level command from resolved mode to epilogue."""

import os
import shlex
import subprocess
from collections.abc import Sequence

from capdriver.config import DriverConfig
from capdriver.driver import orchestrator
from capdriver.driver.capture import capture
from capdriver.driver.collaborators import Collaborators
from capdriver.driver.context import ProcessContext, export_args
from capdriver.driver.epilogue import read_changed_files_index, run_epilogue, run_prologue
from capdriver.driver.instrumentation import Telemetry
from capdriver.driver.layout import ResultsLayout
from capdriver.driver.modes import Analyze, Mode
from capdriver.driver.resolver import resolve_mode
from capdriver.driver.run_state import FileRunState, RunState
from capdriver.integrations import build_default_collaborators
from capdriver.pipeline.structures import Command, PipelineContext
from capdriver.utils.logging import (
    configure_file_logging,
    get_subprocess_env,
    logger,
    release_file_logging,
)

CAPTURING_COMMANDS = frozenset({Command.CAPTURE, Command.RUN})


class Driver:
    """Runs one capd command.

    Collaborators and run state default to the real implementations; tests
    inject fakes for both.
    """

    def __init__(
        self,
        config: DriverConfig,
        process: ProcessContext,
        command: Command = Command.RUN,
        collaborators: Collaborators | None = None,
        run_state: RunState | None = None,
        telemetry: Telemetry | None = None,
    ):
        self.layout = ResultsLayout(config.results_dir)
        self.ctx = PipelineContext(
            config=config,
            process=process,
            layout=self.layout,
            run_state=run_state or FileRunState(self.layout.run_state),
            collaborators=collaborators or build_default_collaborators(config, self.layout, process),
            telemetry=telemetry or Telemetry(),
            command=command,
        )

    @property
    def config(self) -> DriverConfig:
        return self.ctx.config

    def _export_environment(self) -> None:
        """Let child processes started by the build find this run's results."""
        export_args(self.ctx.process.argv)
        os.environ["CAPDRIVER_PATHS_RESULTS_DIR"] = str(self.config.results_dir)
        os.environ["CAPDRIVER_PATHS_PROJECT_ROOT"] = str(self.config.project_root)
        if self.config.debug:
            os.environ["CAPDRIVER_DEBUG_ENABLED"] = "1"

    def _compile(self, build_cmd: Sequence[str]) -> int:
        """Run the build as-is; nothing is captured."""
        if not build_cmd:
            logger.info("No build command given, nothing to compile")
            return 0
        logger.info(f"Compiling without capture: {shlex.join(build_cmd)}")
        result = subprocess.run(list(build_cmd), env=get_subprocess_env(), check=False)
        return result.returncode

    def _execute(self, mode: Mode, build_cmd: Sequence[str]) -> int:
        ctx = self.ctx
        command = ctx.command
        changed_files = read_changed_files_index(self.config)

        if command is Command.COMPILE:
            return self._compile(build_cmd)

        if command is Command.REPORT:
            orchestrator.report(ctx)
            return 0

        returncode = 0
        if command in CAPTURING_COMMANDS and self.config.capture and not isinstance(mode, Analyze):
            capture(mode, changed_files, ctx)
            returncode = ctx.collaborators.backends.last_returncode

        orchestrator.analyze_and_report(mode, changed_files, ctx)
        return returncode

    def run(self, build_cmd: Sequence[str] = ()) -> int:
        """Execute the command; returns the exit status of the build it ran, if any.

        Raises:
            UserError: If no supported mode matches the build command
            CaptureBackendFailure: If a capture backend hits an I/O fault
        """
        ctx = self.ctx
        self.layout.ensure()
        if ctx.process.is_originator:
            configure_file_logging(self.layout.root)
            self._export_environment()

        try:
            mode = resolve_mode(build_cmd, self.config, ctx.process)
            logger.debug(f"Resolved {ctx.command.value} to {mode.kind.value} mode")
            run_prologue(mode, ctx)

            returncode = self._execute(mode, build_cmd)

            if ctx.process.is_originator:
                ctx.run_state.record_command(ctx.command.value)
                ctx.run_state.store()
            if self.config.debug:
                ctx.telemetry.write_trace(self.layout.perf_events)

            run_epilogue(ctx)
            return returncode
        finally:
            ctx.collaborators.store.close()
            if ctx.process.is_originator:
                release_file_logging()
