"""Tests for the default collaborators: merger, external analyzer and build tool backends."""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from conftest import write_json

from capdriver.driver.context import ARGS_ENV_VAR, ProcessContext
from capdriver.driver.modes import ClangCompiler, CompilationDbFile, JavacCompiler
from capdriver.integrations import build_default_collaborators, store_path_for
from capdriver.integrations.analyzer import ExternalAnalyzer, normalize_issue, parse_analyzer_output
from capdriver.integrations.build_tools import (
    SubprocessBackends,
    find_real_tool,
    language_of,
    source_files_in_args,
    write_wrapper_scripts,
)
from capdriver.integrations.merge import CaptureMerger
from capdriver.store.database import ResultsDatabase


@pytest.fixture
def store(layout):
    db = ResultsDatabase(layout.store)
    yield db
    db.close()


class TestCaptureMerger:
    def test_merges_child_stores(self, layout, store):
        for pid, path in [(11, "/src/a.c"), (12, "/src/b.c")]:
            child = ResultsDatabase(layout.captured_dir / f"capture-{pid}.db")
            child.add_source_files([(path, "c", "cc")])
            child.close()

        CaptureMerger(layout, store).merge_captured_targets()
        assert [r["path"] for r in store.source_files()] == ["/src/a.c", "/src/b.c"]

    def test_no_captured_dir(self, layout, store):
        CaptureMerger(layout, store).merge_captured_targets()
        assert store.is_empty()

    def test_changed_functions_are_unioned(self, layout, store):
        write_json(layout.captured_dir / "t1" / "changed_functions.json", [{"name": "f"}, {"name": "g"}])
        write_json(layout.captured_dir / "t2" / "changed_functions.json", [{"name": "g"}, {"name": "h"}])

        CaptureMerger(layout, store).merge_changed_functions()

        merged = json.loads(layout.changed_functions.read_text(encoding="utf-8"))
        assert sorted(entry["name"] for entry in merged) == ["f", "g", "h"]

    def test_test_determinator_results(self, layout, store):
        write_json(layout.captured_dir / "t1" / "test_determinator.json", ["TestA"])
        CaptureMerger(layout, store).merge_test_determinator_results()
        assert json.loads(layout.test_determinator.read_text(encoding="utf-8")) == ["TestA"]

    def test_non_list_child_output_rejected(self, layout, store):
        write_json(layout.captured_dir / "t1" / "changed_functions.json", {"name": "f"})
        with pytest.raises(ValueError):
            CaptureMerger(layout, store).merge_changed_functions()


class TestAnalyzerOutput:
    def test_list_output(self):
        assert parse_analyzer_output('[{"file": "a.c"}]') == ([{"file": "a.c"}], [])

    def test_object_output(self):
        issues, costs = parse_analyzer_output('{"issues": [{"file": "a.c"}], "costs": [{"procedure": "f"}]}')
        assert issues == [{"file": "a.c"}]
        assert costs == [{"procedure": "f"}]

    def test_empty_output(self):
        assert parse_analyzer_output("  \n") == ([], [])

    def test_normalize_issue(self, project_root):
        issue = normalize_issue(
            {"path": str(project_root / "src" / "a.c"), "line": 3, "column": 7, "check_id": "LEAK", "severity": "error"},
            project_root,
        )
        assert issue == {"file": "src/a.c", "line": 3, "col": 7, "rule": "LEAK", "severity": "high", "message": ""}

    def test_normalize_rejects_incomplete(self, project_root):
        assert normalize_issue({"file": "a.c"}, project_root) is None

    @pytest.mark.parametrize("field", [{"line": "12a"}, {"col": "x"}, {"line": [3]}])
    def test_normalize_rejects_non_numeric_position(self, project_root, field):
        assert normalize_issue({"file": "a.c", "rule": "LEAK", **field}, project_root) is None


class TestExternalAnalyzer:
    def test_runs_command_on_captured_files(self, make_config, store, project_root, monkeypatch):
        store.add_source_files([("/src/a.c", "c", "cc"), ("/src/b.c", "c", "cc")])
        seen = []

        def fake_run(cmd, **kwargs):
            seen.append(cmd)
            out = json.dumps([{"file": "/src/a.c", "line": 1, "rule": "NULL_DEREFERENCE", "severity": "high"}])
            return subprocess.CompletedProcess(cmd, 1, stdout=out, stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)
        config = make_config(analyzer_command=("lint", "--json"))
        ExternalAnalyzer(config, store).analyze(None)

        assert seen == [["lint", "--json", "/src/a.c", "/src/b.c"]]
        assert [i["rule"] for i in store.issues()] == ["NULL_DEREFERENCE"]

    def test_malformed_position_is_dropped(self, make_config, store, monkeypatch):
        store.add_source_files([("/src/a.c", "c", "cc")])
        out = json.dumps([
            {"file": "/src/a.c", "line": "12a", "rule": "LEAK"},
            {"file": "/src/a.c", "line": 4, "rule": "NULL_DEREFERENCE"},
        ])
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: subprocess.CompletedProcess(cmd, 1, out, ""))

        ExternalAnalyzer(make_config(analyzer_command=("lint",)), store).analyze(None)

        assert [i["rule"] for i in store.issues()] == ["NULL_DEREFERENCE"]

    def test_changed_files_restrict_analysis(self, make_config, store, monkeypatch):
        store.add_source_files([("/src/a.c", "c", "cc"), ("/src/b.c", "c", "cc")])
        seen = []
        monkeypatch.setattr(
            subprocess, "run", lambda cmd, **kw: seen.append(cmd) or subprocess.CompletedProcess(cmd, 0, "[]", "")
        )
        ExternalAnalyzer(make_config(analyzer_command=("lint",)), store).analyze(frozenset({Path("/src/b.c")}))
        assert seen == [["lint", "/src/b.c"]]

    def test_batches(self, make_config, store, monkeypatch):
        store.add_source_files([(f"/src/{n}.c", "c", "cc") for n in range(5)])
        seen = []
        monkeypatch.setattr(
            subprocess, "run", lambda cmd, **kw: seen.append(cmd) or subprocess.CompletedProcess(cmd, 0, "[]", "")
        )
        ExternalAnalyzer(make_config(analyzer_command=("lint",)), store, batch_size=2).analyze(None)
        assert [len(cmd) - 1 for cmd in seen] == [2, 2, 1]

    def test_previous_results_cleared(self, make_config, store):
        store.add_issues([{"file": "old.c", "rule": "STALE"}])
        ExternalAnalyzer(make_config(), store).analyze(None)
        assert store.issues() == []

    def test_invalid_output_stores_nothing(self, make_config, store, monkeypatch):
        store.add_source_files([("/src/a.c", "c", "cc")])
        monkeypatch.setattr(
            subprocess, "run", lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, "Segmentation fault", "")
        )
        ExternalAnalyzer(make_config(analyzer_command=("lint",)), store).analyze(None)
        assert store.issues() == []

    def test_whole_program_analysis_skipped_without_command(self, make_config, store, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("no analyzer should run")

        monkeypatch.setattr(subprocess, "run", fail)
        ExternalAnalyzer(make_config(), store).whole_program_analysis()


class TestBuildTools:
    def test_language_of(self):
        assert language_of("a.cpp") == "c++"
        assert language_of("A.java") == "java"
        assert language_of("a.o") is None

    def test_source_files_in_args(self):
        args = ["-c", "a.c", "-o", "a.c.o", "-x", "c", "-I", "inc", "b.cpp", "-MF", "deps.c"]
        assert source_files_in_args(args) == ["a.c", "b.cpp"]

    def test_wrapper_scripts(self, tmp_path):
        wrappers = write_wrapper_scripts(tmp_path / "wrappers")
        cc = wrappers / "cc"
        assert os.access(cc, os.X_OK)
        assert cc.read_text(encoding="utf-8") == f'#!/bin/sh\nexec "{sys.executable}" -m capdriver.shim "$0" "$@"\n'
        assert sorted(p.name for p in wrappers.iterdir()) == ["c++", "cc", "clang", "clang++", "javac"]

    def test_find_real_tool_skips_wrappers(self, tmp_path, monkeypatch):
        wrappers = write_wrapper_scripts(tmp_path / "wrappers")
        real_dir = tmp_path / "bin"
        real_dir.mkdir()
        real = real_dir / "cc"
        real.write_text("#!/bin/sh\n", encoding="utf-8")
        real.chmod(0o755)
        monkeypatch.setenv("PATH", os.pathsep.join([str(wrappers), str(real_dir)]))
        assert find_real_tool("cc", wrappers) == str(real)

    def test_clang_records_sources_then_compiles(self, make_config, layout, store, tmp_path, monkeypatch):
        backends = SubprocessBackends(make_config(), layout, store)
        monkeypatch.setattr("capdriver.integrations.build_tools.find_real_tool", lambda name, exclude: "/usr/bin/cc")
        calls = []
        monkeypatch.setattr(
            subprocess, "run", lambda cmd, **kw: calls.append(cmd) or subprocess.CompletedProcess(cmd, 0)
        )
        monkeypatch.chdir(tmp_path)

        backends.clang(ClangCompiler.CLANG, "cc", ["-c", "a.c", "-o", "a.o"])

        assert [r["path"] for r in store.source_files()] == [str(tmp_path / "a.c")]
        assert calls == [["/usr/bin/cc", "-c", "a.c", "-o", "a.o"]]
        assert backends.last_returncode == 0

    def test_failing_build_is_reported_not_raised(self, make_config, layout, store, monkeypatch):
        backends = SubprocessBackends(make_config(), layout, store)
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: subprocess.CompletedProcess(cmd, 2))
        backends.clang(ClangCompiler.MAKE, "make", ["all"])
        assert backends.last_returncode == 2

    def test_build_runs_with_wrappers_first_on_path(self, make_config, layout, store, monkeypatch):
        backends = SubprocessBackends(make_config(), layout, store)
        envs = []
        monkeypatch.setattr(
            subprocess, "run", lambda cmd, env=None, **kw: envs.append(env) or subprocess.CompletedProcess(cmd, 0)
        )
        backends.ndk_build(["ndk-build"])
        assert envs[0]["PATH"].split(os.pathsep)[0] == str(layout.wrappers_dir)
        assert envs[0]["CC"] == str(layout.wrappers_dir / "cc")

    def test_java_build_inventories_sources(self, make_config, layout, store, project_root, monkeypatch):
        (project_root / "src").mkdir()
        (project_root / "src" / "A.java").write_text("class A {}", encoding="utf-8")
        (project_root / "build").mkdir()
        (project_root / "build" / "Gen.java").write_text("class Gen {}", encoding="utf-8")
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0))

        SubprocessBackends(make_config(), layout, store).gradle("gradle", ["build"])

        assert [r["path"] for r in store.source_files()] == [str(project_root / "src" / "A.java")]

    def test_javac_shim(self, make_config, layout, store, tmp_path, monkeypatch):
        monkeypatch.setattr("capdriver.integrations.build_tools.find_real_tool", lambda name, exclude: None)
        monkeypatch.chdir(tmp_path)
        backends = SubprocessBackends(make_config(), layout, store)
        backends.javac(JavacCompiler.JAVAC, "javac", ["-d", "out", "A.java"])
        assert [r["language"] for r in store.source_files()] == ["java"]
        assert backends.last_returncode == 127

    def test_compilation_db_respects_changed_files(self, make_config, layout, store, tmp_path):
        db = write_json(
            tmp_path / "db.json",
            [
                {"directory": "/w", "file": "a.c", "arguments": ["cc", "-c", "a.c"]},
                {"directory": "/w", "file": "b.c", "arguments": ["cc", "-c", "b.c"]},
                {"directory": "/w", "file": "gen.s", "arguments": ["as", "gen.s"]},
            ],
        )

        backends = SubprocessBackends(make_config(), layout, store)
        backends.compilation_db([CompilationDbFile(str(db))], frozenset({Path("/w/b.c"), Path("/w/gen.s")}))
        rows = store.source_files()
        assert [(r["path"], r["command"]) for r in rows] == [("/w/b.c", "cc -c b.c")]


class TestDefaultCollaborators:
    def test_originator_uses_results_store(self, make_config, layout):
        process = ProcessContext(argv=("capd",), is_originator=True)
        assert store_path_for(layout, process) == str(layout.store)

    def test_shim_under_buck_uses_own_store(self, layout, monkeypatch):
        monkeypatch.setenv(ARGS_ENV_VAR, "capd^capture^--buck")
        shim = ProcessContext(argv=("cc", "-c", "a.c"), is_originator=False, invoked_as_clang=True)
        path = store_path_for(layout, shim)
        assert path == str(layout.captured_dir / f"capture-{os.getpid()}.db")

    def test_shim_outside_buck_uses_results_store(self, layout, monkeypatch):
        monkeypatch.setenv(ARGS_ENV_VAR, "capd^capture")
        shim = ProcessContext(argv=("cc", "-c", "a.c"), is_originator=False, invoked_as_clang=True)
        assert store_path_for(layout, shim) == str(layout.store)

    def test_collaborators_share_one_store(self, make_config, layout):
        collaborators = build_default_collaborators(
            make_config(), layout, ProcessContext(argv=("capd",), is_originator=True)
        )
        assert collaborators.backends.store is collaborators.store
        assert collaborators.engine.store is collaborators.store
        assert collaborators.merger.store is collaborators.store
        assert collaborators.reporter.store is collaborators.store
