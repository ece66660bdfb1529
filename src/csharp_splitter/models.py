"""Core data structures for csharp-splitter."""

import os
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ClassEntity:
    name: str                   # bare identifier, e.g. "Repository"
    declaration: str            # "public class Repository<T> : IRepository"
    text: str                   # declaration through the closing brace
    body: str                   # opening brace through closing brace
    start: int                  # offset of the declaration in the source
    body_start: int             # offset of the opening brace
    end: int                    # offset just past the closing brace
    line_count: int


@dataclass
class MethodEntity:
    name: str                   # bare name, generics kept: "Convert<T>"
    signature: str              # raw signature text as written
    signature_key: str          # signature with all whitespace removed
    full_text: str              # doc comment + signature + body
    line_count: int
    start: int                  # offset of full_text in the source file
    end: int
    start_line: int
    end_line: int
    modifiers: list[str] = field(default_factory=list)
    return_type: str = ""
    parameters: str = "()"


@dataclass
class CallSite:
    name: str
    qualifier: str | None       # "this", "_repo", "Helper" or None
    text: str                   # matched text, e.g. "this.Save("
    line: int                   # 1-based, relative to the method text


@dataclass
class SourceDocument:
    path: str
    text: str
    using_statements: list[str]
    namespace: str | None
    classes: list[ClassEntity]

    @property
    def class_names(self) -> list[str]:
        return [c.name for c in self.classes]


@dataclass
class MethodIndex:
    by_signature: dict[str, MethodEntity] = field(default_factory=dict)
    by_name: dict[str, list[MethodEntity]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return list(self.by_name)

    def lookup(self, name: str) -> list[MethodEntity]:
        """
        Overloads registered under name. A bare name also matches generic
        entries, so "Convert" finds "Convert<T>".
        """
        if name in self.by_name:
            return self.by_name[name]
        matches: list[MethodEntity] = []
        for key, overloads in self.by_name.items():
            if key.split("<", 1)[0] == name:
                matches.extend(overloads)
        return sorted(matches, key=lambda m: m.start)

    def all_methods(self) -> list[MethodEntity]:
        """Every captured method, overloads included, in source order."""
        methods = [m for overloads in self.by_name.values() for m in overloads]
        return sorted(methods, key=lambda m: m.start)


@dataclass
class ParsedClass:
    document: SourceDocument
    target: ClassEntity
    methods: MethodIndex


@dataclass
class PartialClassSpec:
    file_name: str
    methods: list[str]
    interface: str = ""


@dataclass
class SplitConfig:
    source_file: str
    destination_folder: str
    new_namespace: str
    main_partial_class_name: str
    partial_classes: list[PartialClassSpec]
    target_class_name: str | None = None
    main_interface: str = ""
    require_all_methods: bool = False
    max_lines: int | None = None
    config_files: list[str] = field(default_factory=list)


@dataclass
class GeneratedFile:
    file_name: str
    content: str
    line_count: int
    methods: list[str] = field(default_factory=list)     # emitted, in order
    skipped: list[str] = field(default_factory=list)     # already consumed
    is_core: bool = False


@dataclass
class SplitReport:
    config_files: list[str]
    class_name: str
    available_classes: list[str]
    destination_folder: str
    files: list[GeneratedFile]
    unassigned: list[str]                               # left in the core file
    written: bool


@dataclass
class DependencyNode:
    class_name: str
    method_name: str
    found: bool = True
    circular: bool = False
    line_count: int = 0
    children: list["DependencyNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "className": self.class_name,
            "methodName": self.method_name,
            "found": self.found,
            "circular": self.circular,
            "lineCount": self.line_count,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class CallerInfo:
    method_name: str
    signature: str
    call_count: int
    line_count: int


@dataclass
class MethodStatistics:
    method_name: str
    overload_count: int
    total_lines: int
    average_lines: float
    dependencies: list[str]                 # unique callee names, first-seen order
    call_frequency: dict[str, int]          # callee name -> number of call sites
    callers: list[str]
    recursive: bool


@dataclass
class QueryResult:
    operation: str
    source: str                 # "lexical" | "tree-sitter" | "external"
    data: Any = None
    found: bool = True
    message: str = ""
    available: list[str] = field(default_factory=list)


@dataclass
class AnalyzerConfig:
    max_lines: int = 5000
    default_max_depth: int = 3
    backend: str = "lexical"    # "lexical" | "tree-sitter" | "external"
    analyzer_path: str | None = field(
        default_factory=lambda: os.environ.get("CSHARP_ANALYZER_PATH") or None
    )
    exclude_dirs: list[str] = field(default_factory=lambda: [
        ".git", ".vs", "bin", "obj", "node_modules", "packages",
    ])
