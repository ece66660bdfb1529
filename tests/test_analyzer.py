"""Tests for the CodeAnalyzer query facade."""

import json
import subprocess

import pytest

from conftest import SAMPLE_METHODS, SAMPLE_SOURCE

from csharp_splitter.analyzer import CodeAnalyzer, _split_parameters
from csharp_splitter.errors import MethodNotFoundError, SourceNotFoundError
from csharp_splitter.models import AnalyzerConfig


@pytest.fixture
def analyzer():
    return CodeAnalyzer(AnalyzerConfig(analyzer_path=None))


def test_split_parameters():
    assert _split_parameters("()") == []
    assert _split_parameters("(int a, Dictionary<string, int> b)") == [
        "int a", "Dictionary<string, int> b",
    ]


class TestListClasses:

    def test_file(self, analyzer, sample_file):
        result = analyzer.list_classes(sample_file)
        assert result.found
        assert result.source == "lexical"
        assert [r["name"] for r in result.data] == ["TestUtility", "User"]
        assert result.data[0]["modifiers"] == "public"
        assert result.data[1]["lineCount"] == 7

    def test_directory_honors_excludes_and_gitignore(self, analyzer, write_cs, tmp_path):
        write_cs("public class A\n{\n}\n", "src/A.cs")
        write_cs("public class B\n{\n}\n", "bin/Debug/B.cs")
        write_cs("public class C\n{\n}\n", "generated/C.cs")
        (tmp_path / ".gitignore").write_text("generated/\n", encoding="utf-8")
        result = analyzer.list_classes(str(tmp_path))
        assert [r["name"] for r in result.data] == ["A"]
        assert "1 classes in 1 files" in result.message

    def test_file_without_classes(self, analyzer, write_cs):
        result = analyzer.list_classes(write_cs("namespace Empty { }", "Empty.cs"))
        assert not result.found

    def test_missing_path_raises(self, analyzer, tmp_path):
        with pytest.raises(SourceNotFoundError):
            analyzer.list_classes(str(tmp_path / "Nope.cs"))


class TestListMethods:

    def test_methods(self, analyzer, sample_file):
        result = analyzer.list_methods(sample_file)
        assert result.found
        assert [r["methodName"] for r in result.data] == SAMPLE_METHODS
        row = result.data[0]
        assert row["className"] == "TestUtility"
        assert row["returnType"] == "Task<User>"
        assert row["parameters"] == ["int userId"]
        assert row["modifiers"] == "public async"

    def test_unknown_class(self, analyzer, sample_file):
        result = analyzer.list_methods(sample_file, "Missing")
        assert not result.found
        assert result.available == ["TestUtility", "User"]

    def test_class_without_methods(self, analyzer, sample_file):
        result = analyzer.list_methods(sample_file, "User")
        assert not result.found
        assert result.message == "No methods found in class User"

    def test_missing_file_raises(self, analyzer, tmp_path):
        with pytest.raises(SourceNotFoundError):
            analyzer.list_methods(str(tmp_path / "Nope.cs"))


class TestQueries:

    def test_dependency_tree(self, analyzer, circular_file):
        result = analyzer.build_dependency_tree(circular_file, "IndirectA", max_depth=5)
        assert result.found
        tree = result.data
        assert tree["methodName"] == "IndirectA"
        assert tree["children"][0]["children"][0]["circular"] is True
        assert "1 circular" in result.message

    def test_dependency_tree_unknown_method(self, analyzer, circular_file):
        result = analyzer.build_dependency_tree(circular_file, "Nope")
        assert not result.found
        assert "SimpleMethod" in result.available

    def test_dependency_tree_depth_must_be_positive(self, analyzer, circular_file):
        result = analyzer.build_dependency_tree(circular_file, "IndirectA", max_depth=0)
        assert not result.found

    def test_method_body(self, analyzer, overload_file):
        result = analyzer.get_method_body(overload_file, "Save")
        assert len(result.data) == 2
        assert "Save(string name)" in result.data[1]["body"]

    def test_method_body_unknown(self, analyzer, sample_file):
        result = analyzer.get_method_body(sample_file, "Nope")
        assert not result.found
        assert "GetUser" in result.available

    def test_callers(self, analyzer, circular_file):
        result = analyzer.find_method_callers(circular_file, "SimpleMethod")
        assert [r["methodName"] for r in result.data] == ["CallerMethod", "MixedCaller"]
        assert result.data[0]["callCount"] == 2

    def test_no_callers_is_found_but_empty(self, analyzer, circular_file):
        result = analyzer.find_method_callers(circular_file, "MixedCaller")
        assert result.found
        assert result.data == []
        assert result.message == "No callers found for MixedCaller"

    def test_statistics(self, analyzer, circular_file):
        result = analyzer.get_method_statistics(circular_file, "IndirectA")
        assert result.data["recursive"] is True
        assert result.data["overloadCount"] == 1
        assert result.data["callers"] == ["IndirectB", "MixedCaller"]

    def test_statistics_unknown(self, analyzer, circular_file):
        assert not analyzer.get_method_statistics(circular_file, "Nope").found


class TestCache:

    def test_parses_are_cached_until_refresh(self, analyzer, write_cs):
        path = write_cs(SAMPLE_SOURCE, "Cached.cs")
        analyzer.list_methods(path)
        analyzer.get_method_body(path, "GetUser")
        assert len(analyzer._cache) == 1

        with open(path, "w", encoding="utf-8") as f:
            f.write("public class Tiny\n{\n    public void Only()\n    {\n    }\n}\n")
        stale = analyzer.list_methods(path)
        assert len(stale.data) == len(SAMPLE_METHODS)
        fresh = analyzer.list_methods(path, refresh=True)
        assert [r["methodName"] for r in fresh.data] == ["Only"]

    def test_invalidate(self, analyzer, sample_file, circular_file):
        analyzer.list_methods(sample_file)
        analyzer.list_methods(sample_file, "TestUtility")
        analyzer.list_methods(circular_file)
        assert analyzer.invalidate(sample_file) == 2
        assert analyzer.invalidate() == 1


class TestBackends:

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            CodeAnalyzer(AnalyzerConfig(backend="roslyn"))

    def test_missing_external_analyzer_falls_back(self, sample_file, tmp_path):
        config = AnalyzerConfig(backend="external", analyzer_path=str(tmp_path / "no-such-analyzer"))
        result = CodeAnalyzer(config).list_methods(sample_file)
        assert result.source == "lexical"
        assert result.found

    def test_external_analyzer_answers(self, sample_file, tmp_path, monkeypatch):
        exe = tmp_path / "analyzer"
        exe.write_text("#!/bin/sh\n", encoding="utf-8")
        payload = {"methods": [{"className": "TestUtility", "methodName": "GetUser",
                                "returnType": "User", "parameters": ["int userId"]}]}

        def fake_run(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(payload), stderr="")

        monkeypatch.setattr("csharp_splitter.semantic.subprocess.run", fake_run)
        analyzer = CodeAnalyzer(AnalyzerConfig(backend="external", analyzer_path=str(exe)))
        result = analyzer.list_methods(sample_file)
        assert result.source == "external"
        assert result.data == payload["methods"]

    def test_status(self, analyzer):
        result = analyzer.status()
        assert result.source == "lexical"
        assert result.data["backend"] == "lexical"
        assert result.data["backendAvailable"] is True
        assert result.data["externalAvailable"] is False
        assert result.data["maxLines"] == 5000


class TestSplit:

    def test_split_class_dry_run(self, analyzer, base_config, write_config, tmp_path):
        path = write_config({**base_config, "partialClasses": [
            {"fileName": "TestUtility.Users.cs", "methods": ["GetUser", "DeleteUser"]},
        ]})
        report = analyzer.split_class(path, dry_run=True)
        assert [f.file_name for f in report.files] == ["TestUtility.Users.cs", "TestUtility.Core.cs"]
        assert not (tmp_path / "out").exists()

    def test_split_class_errors_raise(self, analyzer, base_config, write_config):
        path = write_config({**base_config, "partialClasses": [
            {"fileName": "TestUtility.Users.cs", "methods": ["Nope"]},
        ]})
        with pytest.raises(MethodNotFoundError):
            analyzer.split_class(path)
