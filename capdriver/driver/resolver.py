"""Turn the command line into exactly one execution mode."""

from collections.abc import Sequence
from pathlib import Path

from capdriver.config import DriverConfig
from capdriver.driver.context import ProcessContext
from capdriver.driver.exceptions import (
    AmbiguousBuckIntegration,
    UnknownBuildCommand,
    UnsupportedBackend,
)
from capdriver.driver.modes import (
    Analyze,
    Ant,
    Backend,
    BuckClangFlavor,
    BuckCompilationDb,
    BuckGenrule,
    BuckGenruleMaster,
    BuckMode,
    BuckModeKind,
    BuildSystem,
    Clang,
    ClangCompilationDb,
    ClangCompiler,
    Gradle,
    Javac,
    JavacCompiler,
    Maven,
    Mode,
    NdkBuild,
    XcodeBuild,
    XcodeXcpretty,
)
from capdriver.pipeline.ui import print_warning

EXE_BUILD_SYSTEMS: dict[str, BuildSystem] = {
    "ant": BuildSystem.ANT,
    "buck": BuildSystem.BUCK,
    "buck2": BuildSystem.BUCK,
    "cc": BuildSystem.CLANG,
    "clang": BuildSystem.CLANG,
    "clang++": BuildSystem.CLANG,
    "c++": BuildSystem.CLANG,
    "gcc": BuildSystem.CLANG,
    "g++": BuildSystem.CLANG,
    "gradle": BuildSystem.GRADLE,
    "gradlew": BuildSystem.GRADLE,
    "java": BuildSystem.JAVA,
    "javac": BuildSystem.JAVAC,
    "make": BuildSystem.MAKE,
    "configure": BuildSystem.MAKE,
    "cmake": BuildSystem.MAKE,
    "waf": BuildSystem.MAKE,
    "mvn": BuildSystem.MAVEN,
    "mvnw": BuildSystem.MAVEN,
    "ndk-build": BuildSystem.NDK,
    "xcodebuild": BuildSystem.XCODE,
}

_BACKEND_LABELS = {
    Backend.CLANG: "clang",
    Backend.JAVA: "java",
    Backend.XCODE: "clang and xcode",
}


def build_system_of_exe_name(exe_name: str) -> BuildSystem:
    try:
        return EXE_BUILD_SYSTEMS[exe_name]
    except KeyError:
        raise UnknownBuildCommand(exe_name) from None


def assert_supported_mode(required: Backend, requested_mode: str, config: DriverConfig) -> None:
    """Raise UnsupportedBackend if the analyzers for ``requested_mode`` are disabled."""
    if required is Backend.XCODE:
        enabled = config.backend_enabled(Backend.CLANG) and config.backend_enabled(Backend.XCODE)
    else:
        enabled = config.backend_enabled(required)
    if not enabled:
        raise UnsupportedBackend(requested_mode, _BACKEND_LABELS[required])


def assert_supported_build_system(
    build_system: BuildSystem, buck_mode: BuckMode | None, config: DriverConfig
) -> None:
    match build_system:
        case BuildSystem.ANT | BuildSystem.GRADLE | BuildSystem.JAVA | BuildSystem.JAVAC | BuildSystem.MAVEN:
            assert_supported_mode(Backend.JAVA, build_system.value, config)
        case BuildSystem.CLANG | BuildSystem.MAKE | BuildSystem.NDK:
            assert_supported_mode(Backend.CLANG, build_system.value, config)
        case BuildSystem.XCODE:
            assert_supported_mode(Backend.XCODE, build_system.value, config)
        case BuildSystem.BUCK:
            if buck_mode is None:
                raise AmbiguousBuckIntegration()
            if buck_mode.kind is BuckModeKind.CLANG_FLAVORS:
                assert_supported_mode(Backend.CLANG, "buck with flavors", config)
            elif buck_mode.kind is BuckModeKind.CLANG_COMPILATION_DB:
                assert_supported_mode(Backend.CLANG, "buck compilation database", config)
            else:
                assert_supported_mode(Backend.JAVA, build_system.value, config)


def mode_of_build_command(
    build_cmd: Sequence[str],
    buck_mode: BuckMode | None,
    config: DriverConfig,
    process: ProcessContext,
) -> Mode:
    if not build_cmd:
        if config.compilation_dbs:
            assert_supported_mode(Backend.CLANG, "clang compilation database", config)
            return ClangCompilationDb(db_files=config.compilation_dbs)
        return Analyze()

    prog, *rest = build_cmd
    args = tuple(rest)
    if config.force_integration is not None and process.is_originator:
        build_system = config.force_integration
    else:
        build_system = build_system_of_exe_name(Path(prog).name)

    assert_supported_build_system(build_system, buck_mode, config)

    match build_system:
        case BuildSystem.ANT:
            return Ant(prog=prog, args=args)
        case BuildSystem.BUCK:
            if buck_mode is None:
                raise AmbiguousBuckIntegration()
            if buck_mode.kind is BuckModeKind.CLANG_COMPILATION_DB:
                return BuckCompilationDb(
                    deps=buck_mode.deps,
                    prog=prog,
                    args=args + config.buck_build_args,
                )
            if buck_mode.kind is BuckModeKind.JAVA_GENRULE_MASTER:
                return BuckGenruleMaster(build_cmd=tuple(build_cmd))
            if config.linters:
                print_warning(
                    "the linters require --buck-mode compilation-db to be set. "
                    "Alternatively, set --no-linters to disable them and this warning."
                )
            return BuckClangFlavor(build_cmd=tuple(build_cmd))
        case BuildSystem.CLANG:
            return Clang(compiler=ClangCompiler.CLANG, prog=prog, args=args)
        case BuildSystem.MAKE:
            return Clang(compiler=ClangCompiler.MAKE, prog=prog, args=args)
        case BuildSystem.GRADLE:
            return Gradle(prog=prog, args=args)
        case BuildSystem.JAVA:
            return Javac(compiler=JavacCompiler.JAVA, prog=prog, args=args)
        case BuildSystem.JAVAC:
            return Javac(compiler=JavacCompiler.JAVAC, prog=prog, args=args)
        case BuildSystem.MAVEN:
            return Maven(prog=prog, args=args)
        case BuildSystem.NDK:
            return NdkBuild(build_cmd=tuple(build_cmd))
        case BuildSystem.XCODE:
            if config.xcpretty:
                return XcodeXcpretty(prog=prog, args=args)
            return XcodeBuild(prog=prog, args=args)
    raise AssertionError(f"unhandled build system {build_system}")


def resolve_mode(
    build_cmd: Sequence[str],
    config: DriverConfig,
    process: ProcessContext,
) -> Mode:
    """Pick the execution mode for this invocation.

    Compiler shims resolve from their own argv; everything else from the
    build command given after ``--``.
    """
    if process.invoked_as_clang:
        prog, *args = process.argv
        return Clang(compiler=ClangCompiler.CLANG, prog=prog, args=tuple(args))
    if process.invoked_as_javac:
        return Javac(compiler=JavacCompiler.JAVAC, prog="javac", args=tuple(process.argv[1:]))
    if config.generated_classes is not None:
        assert_supported_mode(Backend.JAVA, "Buck genrule", config)
        return BuckGenrule(prog=config.generated_classes)
    return mode_of_build_command(build_cmd, config.buck_mode, config, process)
