"""Tests for the csharp-splitter command line."""

import json

import pytest

from csharp_splitter.cli import main


def run(argv, capsys) -> tuple[int, str, str]:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    out, err = capsys.readouterr()
    return exc.value.code, out, err


@pytest.fixture(autouse=True)
def no_external_analyzer(monkeypatch):
    monkeypatch.delenv("CSHARP_ANALYZER_PATH", raising=False)


def test_classes(sample_file, capsys):
    code, out, _ = run(["classes", sample_file], capsys)
    assert code == 0
    assert "TestUtility" in out
    assert "User" in out


def test_methods_json(sample_file, capsys):
    code, out, _ = run(["--json", "methods", sample_file], capsys)
    assert code == 0
    data = json.loads(out)
    assert data["operation"] == "list_methods"
    assert data["source"] == "lexical"
    assert data["data"][0]["methodName"] == "GetUserAsync"


def test_methods_unknown_class_exits_1(sample_file, capsys):
    code, out, _ = run(["methods", sample_file, "--class", "Missing"], capsys)
    assert code == 1
    assert "Available: TestUtility, User" in out


def test_tree(circular_file, capsys):
    code, out, _ = run(["tree", circular_file, "IndirectA", "--max-depth", "5"], capsys)
    assert code == 0
    lines = out.splitlines()
    assert lines[0] == "CircularClass.IndirectA (4 lines)"
    assert lines[1] == "└── CircularClass.IndirectB (4 lines)"
    assert lines[2] == "    └── CircularClass.IndirectA [circular]"


def test_body(sample_file, capsys):
    code, out, _ = run(["body", sample_file, "DeleteUser"], capsys)
    assert code == 0
    assert "public bool DeleteUser(int userId)" in out


def test_callers_and_stats(circular_file, capsys):
    code, out, _ = run(["callers", circular_file, "SimpleMethod"], capsys)
    assert code == 0
    assert "CallerMethod" in out
    code, out, _ = run(["stats", circular_file, "IndirectA"], capsys)
    assert code == 0
    assert "Recursive:   yes" in out


def test_split(base_config, write_config, tmp_path, capsys):
    path = write_config({**base_config, "partialClasses": [
        {"fileName": "TestUtility.UserManagement.cs", "methods": ["GetUserAsync", "SaveUserAsync"]},
        {"fileName": "TestUtility.Second.cs", "methods": ["GetUserAsync", "SaveUserAsync", "DeleteUser"]},
    ]})
    code, out, _ = run(["split", path], capsys)
    assert code == 0
    assert "Wrote 3 files" in out
    assert "skipped (already emitted): GetUserAsync, SaveUserAsync" in out
    assert (tmp_path / "out" / "TestUtility.Core.cs").exists()


def test_split_dry_run(base_config, write_config, tmp_path, capsys):
    path = write_config({**base_config, "partialClasses": [
        {"fileName": "TestUtility.A.cs", "methods": ["GetUser"]},
    ]})
    code, out, _ = run(["split", path, "--dry-run"], capsys)
    assert code == 0
    assert "Would write 2 files" in out
    assert not (tmp_path / "out").exists()


def test_split_error(base_config, write_config, tmp_path, capsys):
    path = write_config({**base_config, "partialClasses": [
        {"fileName": "TestUtility.A.cs", "methods": ["DoesNotExist"]},
    ]})
    code, _, err = run(["split", path], capsys)
    assert code == 1
    assert err.startswith("Error: The following errors occurred:")
    assert "Method 'DoesNotExist' not found" in err
    assert not (tmp_path / "out").exists()


def test_missing_source_file(tmp_path, capsys):
    code, _, err = run(["methods", str(tmp_path / "Nope.cs")], capsys)
    assert code == 1
    assert "Source file not found" in err


def test_status(capsys):
    code, out, _ = run(["status"], capsys)
    assert code == 0
    assert "Backend:       lexical" in out
