"""Pytest configuration and fixtures."""
import json
from pathlib import Path

import pytest

from capdriver.config import DriverConfig
from capdriver.driver.collaborators import Collaborators
from capdriver.driver.context import ProcessContext
from capdriver.driver.instrumentation import Telemetry
from capdriver.driver.layout import ResultsLayout
from capdriver.pipeline.structures import Command, PipelineContext

# Variables the driver exports to child processes; never leak them between tests
EXPORTED_ENV_VARS = (
    "CAPDRIVER_ARGS",
    "CAPDRIVER_PATHS_RESULTS_DIR",
    "CAPDRIVER_PATHS_PROJECT_ROOT",
    "CAPDRIVER_DEBUG_ENABLED",
    "NO_BUCKD",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Start every test as an originating process and undo whatever the driver exports."""
    for name in EXPORTED_ENV_VARS:
        # setenv first so monkeypatch records the variable and removes it on teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


class MemoryRunState:
    def __init__(self, merge_pending=False):
        self.merge_pending = merge_pending
        self.stores = 0
        self.commands = []

    def get_merge_pending(self):
        return self.merge_pending

    def set_merge_pending(self, value):
        self.merge_pending = value

    def record_command(self, command):
        self.commands.append(command)

    def store(self):
        self.stores += 1


class RecordingBackends:
    """Capture backends that only remember how they were called."""

    def __init__(self, db_files=None):
        self.calls = []
        self.last_returncode = 0
        self.db_files = list(db_files or [])

    def _record(self, name, *args):
        self.calls.append((name, *args))

    def ant(self, prog, args):
        self._record("ant", prog, tuple(args))

    def buck_clang_flavor(self, build_cmd):
        self._record("buck_clang_flavor", tuple(build_cmd))

    def buck_compilation_db_files(self, deps, prog, args):
        self._record("buck_compilation_db_files", deps, prog, tuple(args))
        return self.db_files

    def buck_genrule(self, prog):
        self._record("buck_genrule", prog)

    def buck_genrule_master(self, build_cmd):
        self._record("buck_genrule_master", tuple(build_cmd))

    def clang(self, compiler, prog, args):
        self._record("clang", compiler, prog, tuple(args))

    def compilation_db(self, db_files, changed_files):
        self._record("compilation_db", tuple(db_files), changed_files)

    def gradle(self, prog, args):
        self._record("gradle", prog, tuple(args))

    def javac(self, compiler, prog, args):
        self._record("javac", compiler, prog, tuple(args))

    def maven(self, prog, args):
        self._record("maven", prog, tuple(args))

    def ndk_build(self, build_cmd):
        self._record("ndk_build", tuple(build_cmd))

    def xcodebuild(self, prog, args):
        self._record("xcodebuild", prog, tuple(args))

    def xcode_compilation_db_files(self, prog, args):
        self._record("xcode_compilation_db_files", prog, tuple(args))
        return self.db_files

    @property
    def names(self):
        return [call[0] for call in self.calls]


class RecordingEngine:
    def __init__(self):
        self.analyzed = []
        self.whole_program_runs = 0

    def analyze(self, changed_files):
        self.analyzed.append(changed_files)

    def whole_program_analysis(self):
        self.whole_program_runs += 1


class RecordingMerger:
    def __init__(self):
        self.calls = []

    def merge_changed_functions(self):
        self.calls.append("changed_functions")

    def merge_captured_targets(self):
        self.calls.append("captured_targets")

    def merge_test_determinator_results(self):
        self.calls.append("test_determinator")


class RecordingReporter:
    """Writes ``issues`` as the JSON report, like the real reporter would."""

    def __init__(self, issues=None):
        self.issues = list(issues or [])
        self.rendered = []

    def write_reports(self, issues_json, costs_json):
        issues_json.write_text(json.dumps(self.issues), encoding="utf-8")
        costs_json.write_text("[]", encoding="utf-8")

    def render_text(self, report_json, report_txt, console_limit, quiet):
        self.rendered.append((console_limit, quiet))
        report_txt.write_text(f"{len(self.issues)} issue(s)\n", encoding="utf-8")


class FakeStore:
    def __init__(self, empty=False):
        self.empty = empty
        self.closed = 0
        self.canonicalized = 0

    def is_empty(self):
        return self.empty

    def close(self):
        self.closed += 1

    def canonicalize(self):
        self.canonicalized += 1


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def layout(tmp_path):
    results = ResultsLayout(tmp_path / "capdriver-out")
    results.ensure()
    return results


@pytest.fixture
def make_config(layout, project_root):
    """Factory for DriverConfig pointing at the test's results directory."""

    def factory(**overrides):
        values = {"results_dir": layout.root, "project_root": project_root, "quiet": True}
        values.update(overrides)
        return DriverConfig(**values)

    return factory


@pytest.fixture
def originator():
    return ProcessContext(argv=("capd", "run"), is_originator=True)


@pytest.fixture
def collaborators():
    return Collaborators(
        backends=RecordingBackends(),
        engine=RecordingEngine(),
        merger=RecordingMerger(),
        reporter=RecordingReporter(),
        store=FakeStore(),
    )


@pytest.fixture
def make_ctx(make_config, originator, layout, collaborators):
    """Factory for a PipelineContext wired to recording fakes."""

    def factory(config=None, process=None, command=Command.RUN, run_state=None):
        return PipelineContext(
            config=config or make_config(),
            process=process or originator,
            layout=layout,
            run_state=run_state or MemoryRunState(),
            collaborators=collaborators,
            telemetry=Telemetry(),
            command=command,
        )

    return factory


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
