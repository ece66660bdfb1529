"""
Split engine: distribute a class's methods over partial class files.

Every method text is copied verbatim. A job-scoped ProcessedSet records which
methods have been emitted, and an immutable RemainderBuffer tracks what is
left for the core file. Each generate call takes the current buffer and
returns the next one, so the core file can only be built from the final
state.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .errors import FileTooLargeError, IncompleteConfigurationError, MethodNotFoundError
from .extract import parse_source
from .models import (
    GeneratedFile,
    MethodEntity,
    ParsedClass,
    PartialClassSpec,
    SplitConfig,
    SplitReport,
)
from .scanner import count_lines

log = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 5000

_REGION_RE = re.compile(r"(?<!//)#(end)?region\b")
_ATTRIBUTES_RE = re.compile(r"^(?:\[[^\]]*\]\s*)+")


class ProcessedSet:
    """Signature keys of methods already emitted in the current job."""

    def __init__(self) -> None:
        self._keys: set[str] = set()

    def add(self, key: str) -> None:
        self._keys.add(key)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)


@dataclass(frozen=True)
class RemainderBuffer:
    """Original source text minus the spans of consumed methods."""

    source: str
    removed: tuple[tuple[int, int], ...] = ()

    def without(self, method: MethodEntity) -> "RemainderBuffer":
        return RemainderBuffer(self.source, self.removed + ((method.start, method.end),))

    def render(self, replacements: tuple[tuple[int, int, str], ...] = ()) -> str:
        """
        Source with removed spans dropped and (start, end, text) replacements
        applied. Spans never overlap.
        """
        edits = sorted(
            [(s, e, "") for s, e in self.removed] + list(replacements),
            key=lambda x: x[0],
        )
        parts: list[str] = []
        pos = 0
        for start, end, text in edits:
            parts.append(self.source[pos:start])
            parts.append(text)
            pos = end
        parts.append(self.source[pos:])
        return "".join(parts)

    def text(self) -> str:
        return self.render()


def comment_out_regions(text: str) -> str:
    """#region / #endregion -> //#region / //#endregion (idempotent)."""
    return _REGION_RE.sub(lambda m: "//" + m.group(0), text)


def make_partial_declaration(
    declaration: str,
    class_name: str,
    interface: str = "",
    keep_attributes: bool = True,
) -> str:
    """
    Add the partial modifier to a class declaration and optionally append an
    interface to its base list (ahead of any generic constraints).
    """
    decl = declaration
    if not keep_attributes:
        decl = _ATTRIBUTES_RE.sub("", decl)
    name = re.escape(class_name)
    if not re.search(r"\bpartial\b", decl):
        decl = re.sub(rf"\bclass\s+{name}\b", f"partial class {class_name}", decl, count=1)
    if not interface:
        return decl

    m = re.search(r"\s+where\s", decl)
    head, tail = (decl[:m.start()], decl[m.start():]) if m else (decl, "")
    base = re.search(rf"\bclass\s+{name}\b(?:\s*<[^>]*>)?\s*:(?P<bases>.*)$", head, re.DOTALL)
    if base is None:
        head = f"{head} : {interface}"
    elif not re.search(rf"(?<![\w.]){re.escape(interface)}(?![\w<])", base.group("bases")):
        head = f"{head}, {interface}"
    return head + tail


class SplitEngine:
    """Generates partial class files for one parsed class within one job."""

    def __init__(self, parsed: ParsedClass, max_lines: int = DEFAULT_MAX_LINES) -> None:
        self.parsed = parsed
        self.max_lines = max_lines
        self.processed = ProcessedSet()

    def initial_remainder(self) -> RemainderBuffer:
        return RemainderBuffer(self.parsed.document.text)

    def _next_unprocessed(self, name: str) -> MethodEntity | None:
        for method in self.parsed.methods.lookup(name):
            if method.signature_key not in self.processed:
                return method
        return None

    def generate_partial_class(
        self,
        spec: PartialClassSpec,
        new_namespace: str,
        remainder: RemainderBuffer,
    ) -> tuple[GeneratedFile, RemainderBuffer]:
        """
        Build one partial class file from the methods named in spec.

        Names whose methods were all emitted earlier in the job are skipped.
        Raises MethodNotFoundError for names absent from the class and
        FileTooLargeError when the result exceeds max_lines.
        """
        index = self.parsed.methods
        target = self.parsed.target

        missing = [n for n in spec.methods if not index.lookup(n)]
        if missing:
            raise MethodNotFoundError(missing, index.names)

        lines = [*self.parsed.document.using_statements, ""]
        lines.append(f"namespace {new_namespace}")
        lines.append("{")
        # Attributes stay on the core file's declaration only.
        decl = make_partial_declaration(
            target.declaration, target.name, spec.interface, keep_attributes=False,
        )
        lines.append(f"    {decl}")
        lines.append("    {")
        content = "\n".join(lines) + "\n"

        emitted: list[str] = []
        skipped: list[str] = []
        breakdown: list[tuple[str, int]] = []
        for name in spec.methods:
            method = self._next_unprocessed(name)
            if method is None:
                log.debug("%s: '%s' already emitted, skipping", spec.file_name, name)
                skipped.append(name)
                continue
            self.processed.add(method.signature_key)
            remainder = remainder.without(method)
            content += f"{method.full_text}\n\n"
            emitted.append(method.name)
            breakdown.append((method.name, method.line_count))

        content += "    }\n}"
        content = comment_out_regions(content)

        line_count = count_lines(content)
        if line_count > self.max_lines:
            raise FileTooLargeError(spec.file_name, line_count, self.max_lines, breakdown)

        generated = GeneratedFile(
            file_name=spec.file_name,
            content=content,
            line_count=line_count,
            methods=emitted,
            skipped=skipped,
        )
        return generated, remainder

    def generate_core_partial_class(
        self,
        file_name: str,
        new_namespace: str,
        remainder: RemainderBuffer,
        main_interface: str = "",
    ) -> GeneratedFile:
        """
        The core file: the source minus every method consumed so far, with the
        namespace renamed and the target class made partial.
        """
        document = self.parsed.document
        target = self.parsed.target

        decl_end = target.start + len(target.declaration)
        new_decl = make_partial_declaration(target.declaration, target.name, main_interface)
        content = remainder.render(((target.start, decl_end, new_decl),))

        if document.namespace:
            content = re.sub(
                rf"\bnamespace\s+{re.escape(document.namespace)}(?=[\s{{;])",
                f"namespace {new_namespace}",
                content,
                count=1,
            )
        content = comment_out_regions(content)

        kept = [
            m.name for m in self.parsed.methods.all_methods()
            if m.signature_key not in self.processed
        ]
        return GeneratedFile(
            file_name=file_name,
            content=content,
            line_count=count_lines(content),
            methods=kept,
            is_core=True,
        )

    def unassigned(self) -> list[str]:
        """Method names with at least one overload not yet emitted."""
        return [
            name for name, overloads in self.parsed.methods.by_name.items()
            if any(m.signature_key not in self.processed for m in overloads)
        ]


def validate_requests(parsed: ParsedClass, config: SplitConfig) -> None:
    """
    Check every requested name before anything is generated.

    Unknown names from all specs are reported together. With
    require_all_methods, every method of the class must be requested by at
    least one spec.
    """
    index = parsed.methods
    requested = [name for spec in config.partial_classes for name in spec.methods]

    missing: list[str] = []
    for name in requested:
        if not index.lookup(name) and name not in missing:
            missing.append(name)
    if missing:
        raise MethodNotFoundError(missing, index.names)

    if config.require_all_methods:
        covered = {m.name for name in requested for m in index.lookup(name)}
        absent = [name for name in index.names if name not in covered]
        if absent:
            raise IncompleteConfigurationError(absent)


def run_split_job(
    config: SplitConfig,
    max_lines: int = DEFAULT_MAX_LINES,
    write: bool = True,
) -> SplitReport:
    """
    Run one split job end to end.

    All validation and generation happens in memory first; files are only
    written once every partial file and the core file have been produced.
    """
    parsed = parse_source(config.source_file, config.target_class_name)
    validate_requests(parsed, config)

    engine = SplitEngine(parsed, max_lines=config.max_lines or max_lines)
    remainder = engine.initial_remainder()
    files: list[GeneratedFile] = []
    for spec in config.partial_classes:
        generated, remainder = engine.generate_partial_class(spec, config.new_namespace, remainder)
        files.append(generated)

    files.append(engine.generate_core_partial_class(
        config.main_partial_class_name,
        config.new_namespace,
        remainder,
        config.main_interface,
    ))

    destination = Path(config.destination_folder)
    if write:
        destination.mkdir(parents=True, exist_ok=True)
        for generated in files:
            (destination / generated.file_name).write_text(generated.content, encoding="utf-8")
            log.info("Wrote %s (%d lines)", destination / generated.file_name, generated.line_count)

    return SplitReport(
        config_files=list(config.config_files),
        class_name=parsed.target.name,
        available_classes=parsed.document.class_names,
        destination_folder=str(destination),
        files=files,
        unassigned=engine.unassigned(),
        written=write,
    )
