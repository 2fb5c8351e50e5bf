"""Merge, analyze and report: decide which phases run, then run them in order."""

from dataclasses import dataclass
from pathlib import Path

from capdriver.driver.epilogue import nothing_to_analyze
from capdriver.driver.modes import Analyze, BuckClangFlavor, BuckGenruleMaster, Mode
from capdriver.pipeline.structures import Command, PipelineContext
from capdriver.utils.logging import logger

NON_ANALYZING_COMMANDS = frozenset({
    Command.CAPTURE,
    Command.COMPILE,
    Command.EXPLORE,
    Command.REPORT,
    Command.REPORT_DIFF,
})


@dataclass(frozen=True)
class PhasePlan:
    should_merge: bool
    should_analyze: bool
    should_report: bool


def _analyze_and_report_flags(command: Command, mode: Mode, ctx: PipelineContext) -> tuple[bool, bool]:
    if isinstance(mode, BuckClangFlavor) and not ctx.config.is_clang_flavors:
        # analysis runs inside the Buck integration itself
        return False, False
    if ctx.process.is_compiler_shim:
        # re-entrant child: capture only
        return False, False
    if command in NON_ANALYZING_COMMANDS:
        return False, False
    # ANALYZE, RUN and anything not listed above
    return True, True


def _should_merge(command: Command, mode: Mode, ctx: PipelineContext) -> bool:
    if ctx.config.merge:
        return True
    if isinstance(mode, BuckClangFlavor) and ctx.config.is_clang_flavors and command is Command.RUN:
        # sub-invocation outputs must be merged before analysis can see them
        return True
    if isinstance(mode, (Analyze, BuckGenruleMaster)):
        return ctx.run_state.get_merge_pending()
    return False


def plan_phases(command: Command, mode: Mode, ctx: PipelineContext) -> PhasePlan:
    should_analyze, should_report = _analyze_and_report_flags(command, mode, ctx)
    return PhasePlan(
        should_merge=_should_merge(command, mode, ctx),
        should_analyze=should_analyze and ctx.config.capture,
        should_report=should_report,
    )


def merge(ctx: PipelineContext) -> None:
    with ctx.telemetry.instrumented("merge"):
        merger = ctx.collaborators.merger
        if ctx.config.export_changed_functions:
            merger.merge_changed_functions()
        merger.merge_captured_targets()
        ctx.run_state.set_merge_pending(False)
        ctx.run_state.store()


def execute_analyze(changed_files: frozenset[Path] | None, ctx: PipelineContext) -> None:
    with ctx.telemetry.instrumented("analyze"):
        ctx.collaborators.engine.analyze(changed_files)


def report(ctx: PipelineContext, suppress_console: bool = False) -> None:
    """Write the JSON reports, then the human-readable ones unless feeding a build cache."""
    with ctx.telemetry.instrumented("report"):
        config = ctx.config
        layout = ctx.layout
        reporter = ctx.collaborators.reporter
        reporter.write_reports(layout.report_json, layout.costs_report_json)
        if not config.buck_cache_mode:
            layout.bugs_txt.write_text(
                "The contents of this file have moved to report.txt.\n", encoding="utf-8"
            )
            reporter.render_text(
                layout.report_json,
                layout.report_txt,
                config.report_console_limit,
                config.quiet or suppress_console,
            )
        if config.test_determinator:
            ctx.collaborators.merger.merge_test_determinator_results()


def analyze_and_report(
    mode: Mode,
    changed_files: frozenset[Path] | None,
    ctx: PipelineContext,
    suppress_console_report: bool = False,
) -> PhasePlan:
    """Run whichever of merge, analyze and report this command needs."""
    with ctx.telemetry.instrumented("analyze_and_report"):
        plan = plan_phases(ctx.command, mode, ctx)
        logger.debug(f"Phase plan for {ctx.command.value} / {mode.kind.value}: {plan}")

        if plan.should_merge:
            merge(ctx)

        if plan.should_analyze:
            if ctx.collaborators.store.is_empty() and ctx.config.capture:
                nothing_to_analyze(mode)
            else:
                execute_analyze(changed_files, ctx)
                if ctx.config.whole_program_concurrency:
                    with ctx.telemetry.instrumented("whole_program_analysis"):
                        ctx.collaborators.engine.whole_program_analysis()

        if plan.should_report and ctx.config.report:
            report(ctx, suppress_console=suppress_console_report)
        return plan
