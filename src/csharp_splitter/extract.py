"""
Method and call-site extraction from C# class text.

Pure lexical scanning: a regex locates each method signature, the brace
scanner finds where its body ends. Nothing here needs a grammar.
"""

import logging
import re

from .errors import MalformedBraceStructureError
from .models import CallSite, MethodEntity, MethodIndex, ParsedClass
from .parse import parse_document, read_source, select_class
from .scanner import count_lines, find_matching_brace, line_of, mask_literals

log = logging.getLogger(__name__)

MODIFIERS = frozenset({
    "public", "private", "protected", "internal", "static", "virtual",
    "override", "async", "abstract", "sealed", "new", "extern", "unsafe",
    "partial", "readonly",
})

# Group "sig": attributes + modifiers + return type + name + params + constraints.
# The whole signature must be followed by the opening brace of a body.
_METHOD_RE = re.compile(
    r"^[ \t]*"
    r"(?P<sig>"
    r"(?P<attrs>(?:\[[^\]]*\]\s*)*)"
    r"(?P<head>(?:public|private|protected|internal|static|virtual|override|async)"
    r"\s+[\w<,>\s.()\[\]?]*\s+)"
    r"(?P<name>[A-Za-z_]\w*(?:<[\w\s,<>]*>)?)\s*"
    r"(?P<params>\((?:[^()]|\([^()]*\))*\))"
    r"(?:\s*where\s+[^{;]*?)?"
    r")(?=\s*\{)",
    re.MULTILINE,
)

_CALL_RE = re.compile(
    r"(?<![\w])"
    r"(?:await\s+)?"
    r"(?:(?P<qualifier>[A-Za-z_]\w*)\s*\??\.\s*)?"
    r"(?P<name>[A-Za-z_]\w*)\s*(?:<[\w\s,.<>\[\]?]*>)?\s*\("
)
_NEW_BEFORE_RE = re.compile(r"\bnew\s+$")

# Keywords and well-known framework members that look like calls.
EXCLUDED_CALLS = frozenset({
    # statements and operators
    "if", "else", "for", "foreach", "while", "do", "switch", "case", "catch",
    "using", "lock", "return", "new", "typeof", "nameof", "sizeof", "default",
    "checked", "unchecked", "fixed", "when", "where", "throw", "await", "is",
    "as", "in", "out", "ref", "params", "get", "set", "var", "base", "stackalloc",
    # builtin types
    "string", "String", "int", "long", "bool", "object", "decimal", "double",
    "float", "char", "byte", "Int32", "Int64", "Boolean", "Decimal", "Double",
    # common framework types used as call qualifiers
    "Console", "Math", "Convert", "Task", "Guid", "DateTime", "TimeSpan",
    "Enumerable", "File", "Path", "Directory", "JsonConvert", "Debug", "Trace",
    "Regex", "Encoding", "Environment", "Thread", "Activator", "Array",
    # object members and common BCL / LINQ methods
    "ToString", "Equals", "GetHashCode", "GetType", "ReferenceEquals",
    "WriteLine", "Write", "ReadLine", "Format", "Parse", "TryParse", "Join",
    "Concat", "IsNullOrEmpty", "IsNullOrWhiteSpace", "Delay", "Run", "FromResult",
    "WhenAll", "WhenAny", "ConfigureAwait", "Dispose", "Add", "AddRange",
    "Remove", "Clear", "Contains", "ContainsKey", "TryGetValue", "Any", "All",
    "Where", "Select", "SelectMany", "First", "FirstOrDefault", "Last",
    "LastOrDefault", "Single", "SingleOrDefault", "OrderBy", "OrderByDescending",
    "ThenBy", "GroupBy", "ToList", "ToArray", "ToDictionary", "Count", "Sum",
    "Max", "Min", "Average", "Distinct", "Skip", "Take", "Substring", "Split",
    "Trim", "Replace", "StartsWith", "EndsWith", "IndexOf", "ToLower", "ToUpper",
    "LogInformation", "LogWarning", "LogError", "LogDebug", "LogTrace",
    "LogCritical",
})


def _split_head(head: str) -> tuple[list[str], str]:
    """Split "public static async Task<int> " into modifiers and return type."""
    tokens = head.split()
    modifiers: list[str] = []
    while tokens and tokens[0] in MODIFIERS:
        modifiers.append(tokens.pop(0))
    return modifiers, " ".join(tokens)


def parse_methods(
    class_text: str,
    class_declaration: str = "",
    base_offset: int = 0,
    body_offset: int = 0,
    base_line: int = 1,
) -> MethodIndex:
    """
    Extract every method declared in class_text.

    class_text is the class from its declaration through its closing brace;
    base_offset and base_line locate that text in the source file, so method
    offsets and line numbers can be mapped back. Scanning starts at
    body_offset (the class's opening brace, relative to class_text) and
    resumes after each method's closing brace, so local functions never
    become separate entries.
    """
    index = MethodIndex()
    masked = mask_literals(class_text)
    pos = body_offset

    while True:
        m = _METHOD_RE.search(class_text, pos)
        if m is None:
            break

        name = re.sub(r"\s+", "", m.group("name"))
        signature = m.group("sig").strip()
        signature_key = re.sub(r"\s+", "", signature)

        brace_index = class_text.find("{", m.end())
        close = find_matching_brace(class_text, brace_index)
        if close is None:
            raise MalformedBraceStructureError(f"method '{name}'", base_offset + brace_index)

        # Doc comment: everything back to the previous closing brace in code.
        sig_start = m.start()
        i = sig_start - 1
        while i >= 0 and masked[i] != "}":
            i -= 1
        comment_block = class_text[i + 1:sig_start]
        if class_declaration and class_declaration in comment_block:
            text_start = sig_start
        else:
            # Drop blank lines between the previous member and the comment.
            lead = len(comment_block) - len(comment_block.lstrip())
            text_start = max(i + 1, class_text.rfind("\n", 0, i + 1 + lead) + 1)

        full_text = class_text[text_start:close + 1]
        modifiers, return_type = _split_head(m.group("head"))

        method = MethodEntity(
            name=name,
            signature=signature,
            signature_key=signature_key,
            full_text=full_text,
            line_count=count_lines(full_text),
            start=base_offset + text_start,
            end=base_offset + close + 1,
            start_line=line_of(class_text, m.start("head")) + base_line - 1,
            end_line=line_of(class_text, close) + base_line - 1,
            modifiers=modifiers,
            return_type=return_type,
            parameters=re.sub(r"\s+", " ", m.group("params")),
        )

        if signature_key in index.by_signature:
            warning = f"Duplicate method signature found: '{signature_key}'. Overwriting."
            log.warning(warning)
            index.warnings.append(warning)
        index.by_signature[signature_key] = method
        index.by_name.setdefault(name, []).append(method)

        pos = close + 1

    return index


def parse_method_calls(method_text: str) -> list[CallSite]:
    """
    Call-like tokens inside a method body, in source order.

    Strings and comments are blanked first. Keywords, well-known framework
    members and one-character names are dropped.
    """
    masked = mask_literals(method_text)
    # The body opens after the parameter list; attributes may carry parens too.
    sig = _METHOD_RE.search(masked)
    open_index = masked.find("{", sig.end() if sig else 0)
    close_index = masked.rfind("}")
    if open_index == -1 or close_index <= open_index:
        return []

    body_start = open_index + 1
    body = masked[body_start:close_index]

    calls: list[CallSite] = []
    for m in _CALL_RE.finditer(body):
        name = m.group("name")
        qualifier = m.group("qualifier")
        if len(name) <= 1 or name in EXCLUDED_CALLS:
            continue
        if qualifier and qualifier in EXCLUDED_CALLS:
            continue
        if _NEW_BEFORE_RE.search(body[max(0, m.start() - 16):m.start()]):
            continue
        calls.append(CallSite(
            name=name,
            qualifier=qualifier,
            text=m.group(0).strip(),
            line=line_of(method_text, body_start + m.start("name")),
        ))
    return calls


# ── Entry points ─────────────────────────────────────────────────────────────

def parse_text(text: str, target_class: str | None = None, path: str = "<memory>") -> ParsedClass:
    """Parse C# text and extract the methods of the target class."""
    document = parse_document(text, path)
    target = select_class(document, target_class)
    methods = parse_methods(
        target.text,
        target.declaration,
        base_offset=target.start,
        body_offset=target.body_start - target.start,
        base_line=line_of(text, target.start),
    )
    log.debug(
        "Class %s: %d method names, %d signatures",
        target.name, len(methods.by_name), len(methods.by_signature),
    )
    return ParsedClass(document=document, target=target, methods=methods)


def parse_source(path: str, target_class: str | None = None) -> ParsedClass:
    """Read and parse a C# source file."""
    return parse_text(read_source(path), target_class, path)
