"""Capture phase: hand each mode to the backend that knows its build system."""

import subprocess
from collections.abc import Sequence
from pathlib import Path

from capdriver.driver.context import append_to_exported_args
from capdriver.driver.exceptions import CaptureBackendFailure
from capdriver.driver.modes import (
    Analyze,
    Ant,
    BuckClangFlavor,
    BuckCompilationDb,
    BuckGenrule,
    BuckGenruleMaster,
    Clang,
    ClangCompilationDb,
    CompilationDbFile,
    Gradle,
    Javac,
    Maven,
    Mode,
    NdkBuild,
    XcodeBuild,
    XcodeXcpretty,
)
from capdriver.integrations.buck import (
    CAPTURE_FLAVOR,
    add_flavors_to_buck_arguments,
    store_args_in_file,
)
from capdriver.pipeline.structures import PipelineContext
from capdriver.pipeline.ui import print_error, print_progress
from capdriver.utils.helpers import filename_to_absolute
from capdriver.utils.logging import logger


def progress(ctx: PipelineContext, message: str) -> None:
    logger.info(message)
    if not ctx.config.quiet:
        print_progress(message)


def check_xcpretty() -> bool:
    """Report a user error, without aborting, when xcpretty is not installed."""
    try:
        result = subprocess.run(["xcpretty", "--version"], capture_output=True, check=False)
        found = result.returncode == 0
    except OSError:
        found = False
    if not found:
        print_error(
            "xcpretty not found in the path. Please consider installing xcpretty for a more "
            "robust integration with xcodebuild. Otherwise use the option --no-xcpretty."
        )
    return found


def absolute_db_files(
    db_files: Sequence[CompilationDbFile], project_root: Path
) -> list[CompilationDbFile]:
    return [db.with_path(str(filename_to_absolute(db.path, project_root))) for db in db_files]


def capture_with_compilation_database(
    db_files: Sequence[CompilationDbFile],
    changed_files: frozenset[Path] | None,
    ctx: PipelineContext,
) -> None:
    resolved = absolute_db_files(db_files, ctx.config.project_root)
    logger.debug(f"Capturing {len(resolved)} compilation database(s)")
    ctx.collaborators.backends.compilation_db(resolved, changed_files)


def buck_capture(build_cmd: Sequence[str], ctx: PipelineContext) -> None:
    """Capture through Buck, rewriting targets to the capture flavor when flavors are used."""
    config = ctx.config
    prog, *buck_args = build_cmd

    if not config.is_clang_flavors:
        progress(ctx, "Capturing in buck mode...")
        ctx.collaborators.backends.buck_clang_flavor(list(build_cmd))
        return

    # children started by Buck must know they run inside it
    append_to_exported_args("--buck")
    rewritten = add_flavors_to_buck_arguments(buck_args, CAPTURE_FLAVOR)
    if not rewritten.targets:
        logger.info("No Buck targets to capture")
        return

    updated_cmd = [
        prog,
        rewritten.command,
        *config.buck_build_args_no_inline,
        *store_args_in_file(rewritten.all_args, ctx.layout.tmp_dir),
    ]
    logger.debug(f"Processed buck command '{' '.join(updated_cmd)}'")
    progress(ctx, "Capturing in buck mode...")
    ctx.collaborators.backends.buck_clang_flavor(updated_cmd)
    ctx.run_state.set_merge_pending(True)
    ctx.run_state.store()


def dispatch(mode: Mode, changed_files: frozenset[Path] | None, ctx: PipelineContext) -> None:
    backends = ctx.collaborators.backends
    match mode:
        case Analyze():
            pass
        case Ant(prog=prog, args=args):
            progress(ctx, "Capturing in ant mode...")
            backends.ant(prog, args)
        case BuckClangFlavor(build_cmd=build_cmd):
            buck_capture(build_cmd, ctx)
        case BuckCompilationDb(deps=deps, prog=prog, args=args):
            progress(ctx, "Capturing using Buck's compilation database...")
            db_files = backends.buck_compilation_db_files(deps, prog, args)
            capture_with_compilation_database(db_files, changed_files, ctx)
        case BuckGenrule(prog=prog):
            progress(ctx, "Capturing for Buck genrule compatibility...")
            backends.buck_genrule(prog)
        case BuckGenruleMaster(build_cmd=build_cmd):
            progress(ctx, "Capturing for BuckGenruleMaster integration...")
            backends.buck_genrule_master(build_cmd)
            ctx.run_state.set_merge_pending(True)
            ctx.run_state.store()
        case Clang(compiler=compiler, prog=prog, args=args):
            if ctx.process.is_originator:
                progress(ctx, "Capturing in make/cc mode...")
            backends.clang(compiler, prog, args)
        case ClangCompilationDb(db_files=db_files):
            progress(ctx, "Capturing using compilation database...")
            capture_with_compilation_database(db_files, changed_files, ctx)
        case Gradle(prog=prog, args=args):
            progress(ctx, "Capturing in gradle mode...")
            backends.gradle(prog, args)
        case Javac(compiler=compiler, prog=prog, args=args):
            if ctx.process.is_originator:
                progress(ctx, "Capturing in javac mode...")
            backends.javac(compiler, prog, args)
        case Maven(prog=prog, args=args):
            progress(ctx, "Capturing in maven mode...")
            backends.maven(prog, args)
        case NdkBuild(build_cmd=build_cmd):
            progress(ctx, "Capturing in ndk-build mode...")
            backends.ndk_build(build_cmd)
        case XcodeBuild(prog=prog, args=args):
            progress(ctx, "Capturing in xcodebuild mode...")
            backends.xcodebuild(prog, args)
        case XcodeXcpretty(prog=prog, args=args):
            progress(ctx, "Capturing using xcodebuild and xcpretty...")
            check_xcpretty()
            db_files = backends.xcode_compilation_db_files(prog, args)
            capture_with_compilation_database(db_files, changed_files, ctx)
        case _:
            raise AssertionError(f"unhandled mode {mode!r}")


def capture(mode: Mode, changed_files: frozenset[Path] | None, ctx: PipelineContext) -> None:
    """Run the capture phase for ``mode``.

    Build failures inside a backend are the backend's to report; an OSError
    escaping a backend means the environment is broken and aborts the run.
    """
    with ctx.telemetry.instrumented("capture"):
        try:
            dispatch(mode, changed_files, ctx)
        except OSError as e:
            raise CaptureBackendFailure(mode.kind.value, str(e)) from e
