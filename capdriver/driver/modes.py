"""Execution modes a capture run can take.

A mode is the closed set of ways one invocation can turn a build command into
captured translation units. Every variant is a frozen dataclass; argument
vectors are tuples so modes are hashable and never mutated after resolution.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import ClassVar


class BuildSystem(Enum):
    """Build tools the resolver recognizes by executable name."""

    ANT = "ant"
    BUCK = "buck"
    CLANG = "clang"
    GRADLE = "gradle"
    JAVA = "java"
    JAVAC = "javac"
    MAKE = "make"
    MAVEN = "mvn"
    NDK = "ndk-build"
    XCODE = "xcodebuild"


class Backend(Enum):
    """Analyzer families that can be switched off in a deployment."""

    CLANG = "clang"
    JAVA = "java"
    XCODE = "xcode"


class ClangCompiler(Enum):
    CLANG = "clang"
    MAKE = "make"


class JavacCompiler(Enum):
    JAVA = "java"
    JAVAC = "javac"


@dataclass(frozen=True)
class CompilationDbDeps:
    """How far Buck walks target dependencies when emitting compilation databases.

    ``depth`` is 0 for no dependencies and None for all depths.
    """

    depth: int | None = 0

    @classmethod
    def no_deps(cls) -> "CompilationDbDeps":
        return cls(0)

    @classmethod
    def all_depths(cls) -> "CompilationDbDeps":
        return cls(None)

    @classmethod
    def up_to_depth(cls, depth: int) -> "CompilationDbDeps":
        if depth < 1:
            raise ValueError(f"Dependency depth must be positive, got {depth}")
        return cls(depth)

    @classmethod
    def from_setting(cls, value: int) -> "CompilationDbDeps":
        """Map the integer config setting: 0 no deps, -1 all depths, n up to n."""
        if value == 0:
            return cls.no_deps()
        if value < 0:
            return cls.all_depths()
        return cls.up_to_depth(value)

    def describe(self) -> str:
        if self.depth == 0:
            return "no deps"
        if self.depth is None:
            return "all deps"
        return f"deps up to depth {self.depth}"


class BuckModeKind(Enum):
    CLANG_FLAVORS = "clang-flavors"
    CLANG_COMPILATION_DB = "compilation-db"
    JAVA_GENRULE_MASTER = "java-genrule-master"


@dataclass(frozen=True)
class BuckMode:
    """Buck sub-integration selected by configuration."""

    kind: BuckModeKind
    deps: CompilationDbDeps | None = None

    @classmethod
    def clang_flavors(cls) -> "BuckMode":
        return cls(BuckModeKind.CLANG_FLAVORS)

    @classmethod
    def clang_compilation_db(cls, deps: CompilationDbDeps) -> "BuckMode":
        return cls(BuckModeKind.CLANG_COMPILATION_DB, deps)

    @classmethod
    def java_genrule_master(cls) -> "BuckMode":
        return cls(BuckModeKind.JAVA_GENRULE_MASTER)

    @property
    def is_clang_flavors(self) -> bool:
        return self.kind is BuckModeKind.CLANG_FLAVORS


@dataclass(frozen=True)
class CompilationDbFile:
    """Reference to a compilation database JSON file.

    ``escaped`` databases store each command as one shell-escaped string
    rather than a list of arguments.
    """

    path: str
    escaped: bool = False

    def with_path(self, path: str) -> "CompilationDbFile":
        return CompilationDbFile(path, self.escaped)


class ModeKind(Enum):
    ANALYZE = "analyze"
    ANT = "ant"
    BUCK_CLANG_FLAVOR = "buck-clang-flavor"
    BUCK_COMPILATION_DB = "buck-compilation-db"
    BUCK_GENRULE = "buck-genrule"
    BUCK_GENRULE_MASTER = "buck-genrule-master"
    CLANG = "clang"
    CLANG_COMPILATION_DB = "clang-compilation-db"
    GRADLE = "gradle"
    JAVAC = "javac"
    MAVEN = "maven"
    NDK_BUILD = "ndk-build"
    XCODE_BUILD = "xcodebuild"
    XCODE_XCPRETTY = "xcodebuild-xcpretty"


class _ModeBase:
    kind: ClassVar[ModeKind]
    label: ClassVar[str]

    def describe(self) -> str:
        """Multi-line rendering used by debug logging."""
        lines = [f"{self.label} driver mode"]
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, tuple):
                rendered = " ".join(str(item) for item in value) or "<none>"
            elif isinstance(value, Enum):
                rendered = value.value
            elif isinstance(value, CompilationDbDeps):
                rendered = value.describe()
            else:
                rendered = str(value)
            lines.append(f"  {field.name} = {rendered}")
        return "\n".join(lines)


@dataclass(frozen=True)
class Analyze(_ModeBase):
    """Re-analysis of previously captured data; no build is run."""

    kind: ClassVar[ModeKind] = ModeKind.ANALYZE
    label: ClassVar[str] = "Analyze"


@dataclass(frozen=True)
class Ant(_ModeBase):
    prog: str
    args: tuple[str, ...] = ()

    kind: ClassVar[ModeKind] = ModeKind.ANT
    label: ClassVar[str] = "Ant"


@dataclass(frozen=True)
class BuckClangFlavor(_ModeBase):
    build_cmd: tuple[str, ...]

    kind: ClassVar[ModeKind] = ModeKind.BUCK_CLANG_FLAVOR
    label: ClassVar[str] = "BuckClangFlavor"


@dataclass(frozen=True)
class BuckCompilationDb(_ModeBase):
    deps: CompilationDbDeps
    prog: str
    args: tuple[str, ...] = ()

    kind: ClassVar[ModeKind] = ModeKind.BUCK_COMPILATION_DB
    label: ClassVar[str] = "BuckCompilationDB"


@dataclass(frozen=True)
class BuckGenrule(_ModeBase):
    """Capture of classes generated by a Buck genrule; ``prog`` is their path."""

    prog: str

    kind: ClassVar[ModeKind] = ModeKind.BUCK_GENRULE
    label: ClassVar[str] = "BuckGenrule"


@dataclass(frozen=True)
class BuckGenruleMaster(_ModeBase):
    build_cmd: tuple[str, ...]

    kind: ClassVar[ModeKind] = ModeKind.BUCK_GENRULE_MASTER
    label: ClassVar[str] = "BuckGenruleMaster"


@dataclass(frozen=True)
class Clang(_ModeBase):
    compiler: ClangCompiler
    prog: str
    args: tuple[str, ...] = ()

    kind: ClassVar[ModeKind] = ModeKind.CLANG
    label: ClassVar[str] = "Clang"


@dataclass(frozen=True)
class ClangCompilationDb(_ModeBase):
    db_files: tuple[CompilationDbFile, ...]

    kind: ClassVar[ModeKind] = ModeKind.CLANG_COMPILATION_DB
    label: ClassVar[str] = "ClangCompilationDB"

    def describe(self) -> str:
        paths = ", ".join(db.path for db in self.db_files)
        return f"{self.label} driver mode\n  db_files = {paths}"


@dataclass(frozen=True)
class Gradle(_ModeBase):
    prog: str
    args: tuple[str, ...] = ()

    kind: ClassVar[ModeKind] = ModeKind.GRADLE
    label: ClassVar[str] = "Gradle"


@dataclass(frozen=True)
class Javac(_ModeBase):
    compiler: JavacCompiler
    prog: str
    args: tuple[str, ...] = ()

    kind: ClassVar[ModeKind] = ModeKind.JAVAC
    label: ClassVar[str] = "Javac"


@dataclass(frozen=True)
class Maven(_ModeBase):
    prog: str
    args: tuple[str, ...] = ()

    kind: ClassVar[ModeKind] = ModeKind.MAVEN
    label: ClassVar[str] = "Maven"


@dataclass(frozen=True)
class NdkBuild(_ModeBase):
    build_cmd: tuple[str, ...]

    kind: ClassVar[ModeKind] = ModeKind.NDK_BUILD
    label: ClassVar[str] = "NdkBuild"


@dataclass(frozen=True)
class XcodeBuild(_ModeBase):
    prog: str
    args: tuple[str, ...] = ()

    kind: ClassVar[ModeKind] = ModeKind.XCODE_BUILD
    label: ClassVar[str] = "XcodeBuild"


@dataclass(frozen=True)
class XcodeXcpretty(_ModeBase):
    prog: str
    args: tuple[str, ...] = ()

    kind: ClassVar[ModeKind] = ModeKind.XCODE_XCPRETTY
    label: ClassVar[str] = "XcodeXcpretty"


Mode = (
    Analyze
    | Ant
    | BuckClangFlavor
    | BuckCompilationDb
    | BuckGenrule
    | BuckGenruleMaster
    | Clang
    | ClangCompilationDb
    | Gradle
    | Javac
    | Maven
    | NdkBuild
    | XcodeBuild
    | XcodeXcpretty
)

MODE_VARIANTS: tuple[type, ...] = Mode.__args__
