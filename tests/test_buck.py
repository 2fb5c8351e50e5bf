"""Tests for Buck command-line rewriting."""

from pathlib import Path

from capdriver.integrations.buck import (
    add_flavor,
    add_flavors_to_buck_arguments,
    split_buck_arguments,
    store_args_in_file,
)


def test_split_separates_targets_from_options():
    split = split_buck_arguments(["build", "--config", "a.b=//c", "-v", "2", "//app:app", ":lib", "--keep-going"])
    assert split.command == "build"
    assert split.targets == ("//app:app", ":lib")
    assert split.not_targets == ("--config", "a.b=//c", "-v", "2", "--keep-going")


def test_split_empty():
    split = split_buck_arguments([])
    assert split.command == ""
    assert split.all_args == []


def test_add_flavor():
    assert add_flavor("//app:app", "f") == "//app:app#f"
    assert add_flavor("//app:app#default", "f") == "//app:app#default,f"


def test_add_flavors_to_every_target():
    rewritten = add_flavors_to_buck_arguments(["build", "-j", "8", "//a:a", "//b:b#x"], "cap")
    assert rewritten.targets == ("//a:a#cap", "//b:b#x,cap")
    assert rewritten.all_args == ["-j", "8", "//a:a#cap", "//b:b#x,cap"]


def test_store_args_in_file(tmp_path):
    (ref,) = store_args_in_file(["--keep-going", "//a:a#cap"], tmp_path / "tmp")
    assert ref.startswith("@")
    assert Path(ref[1:]).read_text(encoding="utf-8") == "--keep-going\n//a:a#cap\n"
