"""
Lexical scanning of C# text: brace matching and literal masking.

A single character state machine drives both operations. The scanner knows
about ordinary strings, verbatim strings, char literals, line comments and
block comments; braces only count in normal code.
"""

NORMAL = "normal"
STRING = "string"
VERBATIM = "verbatim"
CHAR = "char"
LINE_COMMENT = "line_comment"
BLOCK_COMMENT = "block_comment"


def _scan(text: str, start: int):
    """
    Yield (index, mode) for every character from start, where mode is the
    lexical mode the character belongs to. Delimiters of a literal or comment
    belong to that literal's mode.
    """
    mode = NORMAL
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if mode == NORMAL:
            if ch == "/" and nxt == "/":
                mode = LINE_COMMENT
                yield i, mode
                yield i + 1, mode
                i += 2
                continue
            if ch == "/" and nxt == "*":
                mode = BLOCK_COMMENT
                yield i, mode
                yield i + 1, mode
                i += 2
                continue
            if ch == '"':
                # @"..." and $@"..." / @$"..." are verbatim
                prefix = text[max(0, i - 2):i]
                mode = VERBATIM if prefix.endswith("@") or prefix == "@$" else STRING
                yield i, mode
                i += 1
                continue
            if ch == "'":
                mode = CHAR
                yield i, mode
                i += 1
                continue
            yield i, NORMAL
            i += 1
            continue

        if mode in (STRING, CHAR):
            closing = '"' if mode == STRING else "'"
            if ch == "\\" and nxt:
                yield i, mode
                yield i + 1, mode
                i += 2
                continue
            yield i, mode
            if ch == closing or ch == "\n":
                mode = NORMAL
            i += 1
            continue

        if mode == VERBATIM:
            if ch == '"' and nxt == '"':
                yield i, mode
                yield i + 1, mode
                i += 2
                continue
            yield i, mode
            if ch == '"':
                mode = NORMAL
            i += 1
            continue

        if mode == LINE_COMMENT:
            if ch in "\r\n":
                mode = NORMAL
                yield i, NORMAL
            else:
                yield i, mode
            i += 1
            continue

        # BLOCK_COMMENT
        if ch == "*" and nxt == "/":
            yield i, mode
            yield i + 1, mode
            mode = NORMAL
            i += 2
            continue
        yield i, mode
        i += 1


def find_matching_brace(text: str, open_index: int) -> int | None:
    """
    Return the index of the '}' closing the '{' at open_index, or None when
    the text ends first.
    """
    depth = 1
    for i, mode in _scan(text, open_index + 1):
        if mode != NORMAL:
            continue
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def mask_literals(text: str) -> str:
    """
    Copy of text with string, char-literal and comment characters replaced
    by spaces. Newlines are kept so offsets and line numbers still line up.
    """
    chars = list(text)
    for i, mode in _scan(text, 0):
        if mode != NORMAL and chars[i] not in "\r\n":
            chars[i] = " "
    return "".join(chars)


def count_lines(text: str) -> int:
    return text.count("\n") + 1


def line_of(text: str, offset: int) -> int:
    """1-based line number of offset within text."""
    return text.count("\n", 0, offset) + 1
