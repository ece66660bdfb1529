"""Source reading and class extraction."""

import logging
import re
from pathlib import Path

from .errors import (
    ClassNotFoundError,
    MalformedBraceStructureError,
    NoClassesFoundError,
    SourceNotFoundError,
)
from .models import ClassEntity, SourceDocument
from .scanner import count_lines, find_matching_brace

log = logging.getLogger(__name__)

_USING_RE = re.compile(r"using [^;]+;")
_NAMESPACE_RE = re.compile(r"\bnamespace\s+([^\s{;]+)")

# Group "decl": attributes, modifiers, name, generics and base list.
# Group "name": the bare class identifier.
_CLASS_RE = re.compile(
    r"(?P<decl>(?<![\w.])"
    r"(?:\[[^\]]*\]\s*)*"
    r"(?:(?:public|private|protected|internal)\s+)*"
    r"(?:(?:static|abstract|sealed|partial|unsafe|new)\s+)*"
    r"class\s+(?P<name>[A-Za-z_]\w*)(?:\s*<[^>{};]+>)?"
    r"(?:\s*:\s*[^{;]+?)?"
    r"(?:\s*where\s+[^{;]+?)?)"
    r"\s*\{"
)


def read_source(path: str) -> str:
    """Read a C# source file as UTF-8 text."""
    full_path = Path(path)
    try:
        return full_path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        raise SourceNotFoundError(path) from None
    except OSError as e:
        raise SourceNotFoundError(path, str(e)) from e


def parse_using_statements(text: str) -> list[str]:
    """All using statements that precede the first namespace keyword."""
    ns_start = text.find("namespace")
    if ns_start == -1:
        ns_start = len(text)
    return _USING_RE.findall(text[:ns_start])


def parse_namespace(text: str) -> str | None:
    m = _NAMESPACE_RE.search(text)
    return m.group(1) if m else None


def parse_all_classes(text: str) -> list[ClassEntity]:
    """
    Find every top-level class declaration in source order.

    The search resumes after each class's closing brace, so classes nested
    inside a captured body are not reported separately.
    """
    classes: list[ClassEntity] = []
    pos = 0
    while True:
        m = _CLASS_RE.search(text, pos)
        if m is None:
            break
        brace_index = m.end() - 1
        close = find_matching_brace(text, brace_index)
        if close is None:
            raise MalformedBraceStructureError(f"class '{m.group('name')}'", brace_index)

        start = m.start("decl")
        class_text = text[start:close + 1]
        classes.append(ClassEntity(
            name=m.group("name"),
            declaration=m.group("decl"),
            text=class_text,
            body=text[brace_index:close + 1],
            start=start,
            body_start=brace_index,
            end=close + 1,
            line_count=count_lines(class_text),
        ))
        pos = close + 1

    return classes


def parse_document(text: str, path: str = "<memory>") -> SourceDocument:
    classes = parse_all_classes(text)
    log.debug("Found %d classes in %s", len(classes), path)
    return SourceDocument(
        path=path,
        text=text,
        using_statements=parse_using_statements(text),
        namespace=parse_namespace(text),
        classes=classes,
    )


def select_class(document: SourceDocument, name: str | None = None) -> ClassEntity:
    """The named class, or the first class when no name is given."""
    if not document.classes:
        raise NoClassesFoundError(document.path)
    if not name:
        return document.classes[0]
    for cls in document.classes:
        if cls.name == name:
            return cls
    raise ClassNotFoundError(name, document.class_names)
