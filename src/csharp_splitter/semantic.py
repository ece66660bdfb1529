"""
Optional semantic backends for the class/method listing queries.

ExternalAnalyzer shells out to a compiler-backed analyzer executable that
prints JSON. TreeSitterAnalyzer parses in-process with the tree-sitter C#
grammar. Both return None on any failure so the caller can fall back to the
lexical scanner.
"""

import json
import logging
import shutil
import subprocess
from pathlib import Path

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_language

log = logging.getLogger(__name__)

EXTERNAL_TIMEOUT = 120  # seconds

_PARSERS: dict[str, Parser] = {}


class ExternalAnalyzer:
    """Client for `<exe> <command> --file <path> ... --output json`."""

    name = "external"

    def __init__(self, executable: str) -> None:
        self.executable = executable

    def resolve(self) -> str | None:
        """Absolute path of the executable, or None when it is missing."""
        path = Path(self.executable)
        if path.is_file():
            return str(path)
        return shutil.which(self.executable)

    def available(self) -> bool:
        return self.resolve() is not None

    def run(self, command: str, args: list[str]) -> dict | None:
        exe = self.resolve()
        if exe is None:
            log.debug("External analyzer not found: %s", self.executable)
            return None
        try:
            result = subprocess.run(
                [exe, command, *args, "--output", "json"],
                capture_output=True,
                text=True,
                timeout=EXTERNAL_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            log.warning("External analyzer timed out: %s %s", exe, command)
            return None
        except OSError as e:
            log.warning("Failed to execute external analyzer: %s", e)
            return None

        if result.returncode != 0:
            log.warning(
                "External analyzer failed (rc=%d): %s",
                result.returncode, result.stderr[:200],
            )
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            log.warning("Failed to parse external analyzer output: %s", e)
            return None
        if not isinstance(data, dict) or data.get("error"):
            log.warning("External analyzer returned an error: %s", data)
            return None
        return data

    def list_classes(self, path: str) -> list[dict] | None:
        data = self.run("list-classes", ["--file", path])
        return None if data is None else list(data.get("classes", []))

    def list_methods(self, path: str, class_name: str | None = None) -> list[dict] | None:
        args = ["--file", path]
        if class_name:
            args += ["--class", class_name]
        data = self.run("list-methods", args)
        return None if data is None else list(data.get("methods", []))

    def dependency_tree(
        self, path: str, class_name: str | None, method_name: str, max_depth: int,
    ) -> dict | None:
        args = ["--file", path]
        if class_name:
            args += ["--class", class_name]
        args += ["--method", method_name, "--max-depth", str(max_depth)]
        data = self.run("dependency-tree", args)
        if data is None:
            return None
        return data.get("tree", data)


# ── tree-sitter ──────────────────────────────────────────────────────────────

def _get_parser(language: str = "csharp") -> Parser:
    if language not in _PARSERS:
        _PARSERS[language] = Parser(get_language(language))
    return _PARSERS[language]


def walk_tree(node: Node):
    """Depth-first generator over all nodes in a tree."""
    yield node
    for child in node.children:
        yield from walk_tree(child)


def _text(node: Node | None) -> str:
    if node is None or not node.text:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _modifiers(node: Node) -> list[str]:
    return [_text(c) for c in node.children if c.type == "modifier"]


def _enclosing_class(node: Node) -> Node | None:
    parent = node.parent
    while parent is not None:
        if parent.type == "class_declaration":
            return parent
        parent = parent.parent
    return None


class TreeSitterAnalyzer:
    """Class and method listings from the tree-sitter C# grammar."""

    name = "tree-sitter"

    def _parse(self, path: str) -> Node | None:
        try:
            source = Path(path).read_bytes()
        except OSError as e:
            log.warning("Cannot read %s: %s", path, e)
            return None
        try:
            return _get_parser().parse(source).root_node
        except Exception as e:
            log.warning("tree-sitter C# parse failed for %s: %s", path, e)
            return None

    def available(self) -> bool:
        try:
            _get_parser()
        except Exception as e:
            log.debug("tree-sitter C# grammar unavailable: %s", e)
            return False
        return True

    def list_classes(self, path: str) -> list[dict] | None:
        root = self._parse(path)
        if root is None:
            return None
        classes: list[dict] = []
        for node in walk_tree(root):
            if node.type != "class_declaration":
                continue
            bases = next((c for c in node.children if c.type == "base_list"), None)
            base_types = [_text(c) for c in bases.named_children] if bases else []
            classes.append({
                "name": _text(node.child_by_field_name("name")),
                "filePath": path,
                "modifiers": " ".join(_modifiers(node)),
                "baseTypes": base_types,
                "startLine": node.start_point[0] + 1,
                "endLine": node.end_point[0] + 1,
                "lineCount": node.end_point[0] - node.start_point[0] + 1,
            })
        return classes

    def list_methods(self, path: str, class_name: str | None = None) -> list[dict] | None:
        root = self._parse(path)
        if root is None:
            return None
        if class_name is None:
            first = next((n for n in walk_tree(root) if n.type == "class_declaration"), None)
            if first is None:
                return []
            class_name = _text(first.child_by_field_name("name"))

        methods: list[dict] = []
        for node in walk_tree(root):
            if node.type != "method_declaration":
                continue
            owner = _enclosing_class(node)
            owner_name = _text(owner.child_by_field_name("name")) if owner else ""
            if owner_name != class_name:
                continue

            returns = node.child_by_field_name("returns") or node.child_by_field_name("type")
            params = node.child_by_field_name("parameters")
            name = _text(node.child_by_field_name("name"))
            methods.append({
                "className": owner_name,
                "methodName": name,
                "returnType": _text(returns),
                "parameters": [
                    _text(p) for p in (params.named_children if params else [])
                    if p.type == "parameter"
                ],
                "modifiers": " ".join(_modifiers(node)),
                "startLine": node.start_point[0] + 1,
                "endLine": node.end_point[0] + 1,
                "lineCount": node.end_point[0] - node.start_point[0] + 1,
                "signature": f"{_text(returns)} {name}{_text(params)}".strip(),
            })
        return methods
