"""
CodeAnalyzer: the query and split operations behind the CLI and MCP server.

Parsed classes are cached per (resolved path, class name) until refreshed or
invalidated. "Nothing found" answers come back as QueryResult(found=False)
with the available names listed; I/O and malformed-source errors raise.
"""

import logging
import re
from pathlib import Path

from .config import load_split_config
from .discover import discover_sources
from .errors import (
    ClassNotFoundError,
    MalformedBraceStructureError,
    NoClassesFoundError,
    SourceNotFoundError,
)
from .extract import parse_text
from .graph import build_dependency_tree, find_method_callers, get_method_statistics, tree_stats
from .models import (
    AnalyzerConfig,
    ClassEntity,
    MethodEntity,
    ParsedClass,
    QueryResult,
    SplitReport,
)
from .parse import parse_document, read_source
from .scanner import line_of
from .semantic import ExternalAnalyzer, TreeSitterAnalyzer
from .split import run_split_job

log = logging.getLogger(__name__)

BACKENDS = ("lexical", "tree-sitter", "external")
LEXICAL = "lexical"

_ATTRIBUTES_RE = re.compile(r"\[[^\]]*\]\s*")


# ── Row builders ─────────────────────────────────────────────────────────────

def _split_parameters(params: str) -> list[str]:
    """"(int a, Dictionary<string, int> b)" -> ["int a", "Dictionary<string, int> b"]"""
    inner = params.strip()[1:-1]
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in inner:
        if ch in "<([":
            depth += 1
        elif ch in ">)]":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def class_row(cls: ClassEntity, path: str, text: str) -> dict:
    head = _ATTRIBUTES_RE.sub("", cls.declaration).split("class", 1)[0]
    return {
        "name": cls.name,
        "filePath": path,
        "declaration": cls.declaration.strip(),
        "modifiers": " ".join(head.split()),
        "startLine": line_of(text, cls.start),
        "endLine": line_of(text, cls.end - 1),
        "lineCount": cls.line_count,
    }


def method_row(class_name: str, method: MethodEntity) -> dict:
    return {
        "className": class_name,
        "methodName": method.name,
        "returnType": method.return_type or "Unknown",
        "parameters": _split_parameters(method.parameters),
        "modifiers": " ".join(method.modifiers),
        "startLine": method.start_line,
        "endLine": method.end_line,
        "lineCount": method.line_count,
        "signature": method.signature,
    }


class CodeAnalyzer:
    """Long-lived analyzer; one instance per CLI run or server process."""

    def __init__(self, config: AnalyzerConfig | None = None) -> None:
        self.config = config or AnalyzerConfig()
        if self.config.backend not in BACKENDS:
            raise ValueError(
                f"Unknown backend {self.config.backend!r}; expected one of {', '.join(BACKENDS)}"
            )
        self._cache: dict[tuple[str, str], ParsedClass] = {}
        self.external = ExternalAnalyzer(self.config.analyzer_path or "")
        self.tree_sitter = TreeSitterAnalyzer()

    # ── Cache ────────────────────────────────────────────────────────────────

    @staticmethod
    def _key(path: str, class_name: str | None) -> tuple[str, str]:
        return str(Path(path).resolve()), class_name or ""

    def _parse(self, path: str, class_name: str | None = None, refresh: bool = False) -> ParsedClass:
        key = self._key(path, class_name)
        if refresh or key not in self._cache:
            self._cache[key] = parse_text(read_source(path), class_name, path)
            log.debug("Parsed %s (class=%s)", path, class_name or "<first>")
        return self._cache[key]

    def invalidate(self, path: str | None = None) -> int:
        """Drop cached parses for path (or everything). Returns entries removed."""
        if path is None:
            removed = len(self._cache)
            self._cache.clear()
            return removed
        resolved = str(Path(path).resolve())
        stale = [k for k in self._cache if k[0] == resolved]
        for k in stale:
            del self._cache[k]
        return len(stale)

    def _semantic(self):
        """The configured semantic backend, or None for the lexical core."""
        if self.config.backend == "external":
            if not self.config.analyzer_path:
                log.warning("External backend selected but no analyzer path is configured")
                return None
            return self.external
        if self.config.backend == "tree-sitter":
            return self.tree_sitter
        return None

    def _lookup(self, path: str, class_name: str | None, refresh: bool,
                operation: str) -> ParsedClass | QueryResult:
        """Parsed class, or a not-found QueryResult naming the available classes."""
        try:
            return self._parse(path, class_name, refresh)
        except (ClassNotFoundError, NoClassesFoundError) as e:
            return QueryResult(operation, LEXICAL, found=False, message=str(e),
                               available=list(e.available))

    @staticmethod
    def _method_missing(operation: str, parsed: ParsedClass, name: str) -> QueryResult:
        return QueryResult(
            operation, LEXICAL, found=False,
            message=f"Method '{name}' not found in class {parsed.target.name}",
            available=parsed.methods.names,
        )

    # ── Queries ──────────────────────────────────────────────────────────────

    def _classes_in(self, path: str) -> tuple[list[dict], str]:
        backend = self._semantic()
        if backend is not None:
            rows = backend.list_classes(path)
            if rows is not None:
                return rows, backend.name
            log.warning("%s backend failed for %s, using lexical scan", backend.name, path)
        text = read_source(path)
        document = parse_document(text, path)
        return [class_row(c, path, text) for c in document.classes], LEXICAL

    def list_classes(self, path: str) -> QueryResult:
        """Classes in one file, or in every .cs file below a directory."""
        target = Path(path)
        if not target.exists():
            raise SourceNotFoundError(path)

        if not target.is_dir():
            rows, source = self._classes_in(path)
            if not rows:
                return QueryResult("list_classes", source, data=[], found=False,
                                   message=f"No classes found in {path}")
            return QueryResult("list_classes", source, data=rows)

        rows: list[dict] = []
        sources: set[str] = set()
        skipped: list[str] = []
        files = discover_sources(path, self.config.exclude_dirs)
        for f in files:
            try:
                file_rows, source = self._classes_in(f)
            except MalformedBraceStructureError as e:
                log.warning("Skipping %s: %s", f, e)
                skipped.append(f)
                continue
            rows.extend(file_rows)
            sources.add(source)

        source = ",".join(sorted(sources)) or LEXICAL
        message = f"{len(rows)} classes in {len(files)} files"
        if skipped:
            message += f" ({len(skipped)} skipped: unbalanced braces)"
        return QueryResult("list_classes", source, data=rows, found=bool(rows), message=message)

    def list_methods(self, path: str, class_name: str | None = None,
                     refresh: bool = False) -> QueryResult:
        if not Path(path).is_file():
            raise SourceNotFoundError(path)
        backend = self._semantic()
        if backend is not None:
            rows = backend.list_methods(path, class_name)
            if rows:
                return QueryResult("list_methods", backend.name, data=rows)
            log.warning("%s backend returned no methods for %s, using lexical scan",
                        backend.name, path)

        parsed = self._lookup(path, class_name, refresh, "list_methods")
        if isinstance(parsed, QueryResult):
            return parsed
        methods = parsed.methods.all_methods()
        if not methods:
            return QueryResult("list_methods", LEXICAL, data=[], found=False,
                               message=f"No methods found in class {parsed.target.name}")
        rows = [method_row(parsed.target.name, m) for m in methods]
        return QueryResult("list_methods", LEXICAL, data=rows,
                           message=f"{len(rows)} methods in class {parsed.target.name}")

    def build_dependency_tree(
        self,
        path: str,
        method_name: str,
        class_name: str | None = None,
        max_depth: int | None = None,
        refresh: bool = False,
    ) -> QueryResult:
        depth = self.config.default_max_depth if max_depth is None else max_depth
        if not Path(path).is_file():
            raise SourceNotFoundError(path)
        if depth < 1:
            return QueryResult("build_dependency_tree", LEXICAL, found=False,
                               message="max_depth must be at least 1")

        if self._semantic() is self.external:
            tree = self.external.dependency_tree(path, class_name, method_name, depth)
            if tree is not None:
                return QueryResult("build_dependency_tree", self.external.name, data=tree)
            log.warning("external backend failed for %s, using lexical scan", path)

        parsed = self._lookup(path, class_name, refresh, "build_dependency_tree")
        if isinstance(parsed, QueryResult):
            return parsed
        if not parsed.methods.lookup(method_name):
            return self._method_missing("build_dependency_tree", parsed, method_name)

        root = build_dependency_tree(parsed, parsed.target.name, method_name, depth)
        stats = tree_stats(root)
        return QueryResult(
            "build_dependency_tree", LEXICAL,
            data=root.to_dict(),
            message=(
                f"{stats['nodes']} nodes, {stats['circular']} circular, "
                f"{stats['not_found']} unresolved, depth {stats['max_depth']}"
            ),
        )

    def get_method_body(self, path: str, method_name: str, class_name: str | None = None,
                        refresh: bool = False) -> QueryResult:
        parsed = self._lookup(path, class_name, refresh, "get_method_body")
        if isinstance(parsed, QueryResult):
            return parsed
        overloads = parsed.methods.lookup(method_name)
        if not overloads:
            return self._method_missing("get_method_body", parsed, method_name)
        rows = [
            {
                "className": parsed.target.name,
                "methodName": m.name,
                "signature": m.signature,
                "startLine": m.start_line,
                "endLine": m.end_line,
                "lineCount": m.line_count,
                "body": m.full_text,
            }
            for m in overloads
        ]
        return QueryResult("get_method_body", LEXICAL, data=rows,
                           message=f"{len(rows)} overload(s) of {method_name}")

    def find_method_callers(self, path: str, method_name: str, class_name: str | None = None,
                            refresh: bool = False) -> QueryResult:
        parsed = self._lookup(path, class_name, refresh, "find_method_callers")
        if isinstance(parsed, QueryResult):
            return parsed
        if not parsed.methods.lookup(method_name):
            return self._method_missing("find_method_callers", parsed, method_name)
        rows = [
            {
                "methodName": c.method_name,
                "signature": c.signature,
                "callCount": c.call_count,
                "lineCount": c.line_count,
            }
            for c in find_method_callers(parsed, method_name)
        ]
        message = f"{len(rows)} caller(s) of {method_name}" if rows else f"No callers found for {method_name}"
        return QueryResult("find_method_callers", LEXICAL, data=rows, message=message)

    def get_method_statistics(self, path: str, method_name: str, class_name: str | None = None,
                              refresh: bool = False) -> QueryResult:
        parsed = self._lookup(path, class_name, refresh, "get_method_statistics")
        if isinstance(parsed, QueryResult):
            return parsed
        stats = get_method_statistics(parsed, method_name)
        if stats is None:
            return self._method_missing("get_method_statistics", parsed, method_name)
        return QueryResult("get_method_statistics", LEXICAL, data={
            "methodName": stats.method_name,
            "overloadCount": stats.overload_count,
            "totalLines": stats.total_lines,
            "averageLines": stats.average_lines,
            "dependencies": stats.dependencies,
            "callFrequency": stats.call_frequency,
            "callers": stats.callers,
            "recursive": stats.recursive,
        })

    # ── Split and status ─────────────────────────────────────────────────────

    def split_class(self, config_input: str, dry_run: bool = False) -> SplitReport:
        """Run one split job; every validation and size error raises."""
        config = load_split_config(config_input)
        report = run_split_job(config, max_lines=self.config.max_lines, write=not dry_run)
        log.info(
            "Split %s into %d files (%s)",
            report.class_name, len(report.files), "dry run" if dry_run else "written",
        )
        return report

    def status(self) -> QueryResult:
        backend = self._semantic()
        available = backend.available() if backend is not None else True
        return QueryResult("status", backend.name if backend else LEXICAL, data={
            "backend": self.config.backend,
            "backendAvailable": available,
            "analyzerPath": self.config.analyzer_path,
            "externalAvailable": bool(self.config.analyzer_path) and self.external.available(),
            "treeSitterAvailable": self.tree_sitter.available(),
            "cachedClasses": len(self._cache),
            "maxLines": self.config.max_lines,
            "defaultMaxDepth": self.config.default_max_depth,
        })
