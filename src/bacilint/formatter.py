"""Whitespace normalization and re-indentation for BACI C-- source."""

import re

from .models import FormatOptions, Range, TextEdit
from .scanner import split_lines
from .utils import detect_line_ending

# Literals and comments are copied through untouched
PROTECTED_PATTERN = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|//.*$|/\*.*?(?:\*/|$)')

# Longest operators first so compound ones are matched as a unit
OPERATOR_PATTERN = re.compile(
    r"\s*(<<=|>>=|<<|>>|\+\+|--|==|!=|<=|>=|[+\-*/]=|[=+\-*/])\s*"
)
SPACED_OPERATORS = frozenset({"=", "+", "-", "*", "/", "<<", ">>", "+=", "-=", "*=", "/=", "<<=", ">>="})

# After these, + and - are signs rather than operators
UNARY_CONTEXT_CHARS = set("=(,[{+-*/<>!&|?:;%")
UNARY_CONTEXT_WORDS = re.compile(r"\b(return|case)$")

MULTI_SPACE_PATTERN = re.compile(r"\s{2,}")
SPACE_BEFORE_TERMINATOR_PATTERN = re.compile(r"\s*;\s*$")


def split_code(line: str, in_comment: bool = False) -> tuple[str, bool]:
    """
    The code of one line with literals and comments dropped.

    Args:
        line: Source line.
        in_comment: Whether a block comment from an earlier line is still open.

    Returns:
        The code text, and whether a block comment is open at the end of the line.
    """
    if in_comment:
        end = line.find("*/")
        if end == -1:
            return "", True
        line = line[end + 2:]

    parts: list[str] = []
    pos = 0
    open_comment = False
    for match in PROTECTED_PATTERN.finditer(line):
        parts.append(line[pos:match.start()])
        pos = match.end()
        token = match.group(0)
        if token.startswith("/*") and not (len(token) >= 4 and token.endswith("*/")):
            open_comment = True
    parts.append(line[pos:])
    return " ".join(parts), open_comment


def _is_unary(before: str) -> bool:
    before = before.rstrip()
    if not before:
        return True
    return before[-1] in UNARY_CONTEXT_CHARS or bool(UNARY_CONTEXT_WORDS.search(before))


def _space_operators(code: str, context: str) -> str:
    def replace(match: re.Match[str]) -> str:
        op = match.group(1)
        if op not in SPACED_OPERATORS:
            return match.group(0)
        if op in ("+", "-") and _is_unary(context + code[: match.start()]):
            return match.group(0)
        return f" {op} "

    return OPERATOR_PATTERN.sub(replace, code)


def normalize_spaces(line: str, space_around_operators: bool) -> str:
    """
    Pass 1 for one line.

    Spaces operators (when enabled), collapses runs of whitespace to a single
    space and drops the whitespace before a trailing `;`.
    """
    out: list[str] = []
    pos = 0
    for match in PROTECTED_PATTERN.finditer(line):
        out.append(_normalize_code(line[pos:match.start()], "".join(out), space_around_operators))
        out.append(match.group(0))
        pos = match.end()
    out.append(_normalize_code(line[pos:], "".join(out), space_around_operators))
    return SPACE_BEFORE_TERMINATOR_PATTERN.sub(";", "".join(out))


def _normalize_code(code: str, context: str, space_around_operators: bool) -> str:
    if space_around_operators:
        code = _space_operators(code, context)
    return MULTI_SPACE_PATTERN.sub(" ", code)


def reindent(
    lines: list[str], indent_size: int, verbatim: frozenset[int] = frozenset()
) -> list[str]:
    """
    Pass 2: recompute indentation from brace nesting.

    A line starting with `}` dedents itself; a line ending with `{` indents
    the lines after it. Blank lines stay empty. Lines whose index is in
    `verbatim` (block comment continuations) are copied unchanged and don't
    affect nesting.
    """
    level = 0
    out: list[str] = []
    for i, line in enumerate(lines):
        if i in verbatim:
            out.append(line)
            continue
        stripped = line.strip()
        if stripped.startswith("}"):
            level = max(0, level - 1)
        out.append(" " * (indent_size * level) + stripped if stripped else "")
        if stripped.endswith("{"):
            level += 1
    return out


class Formatter:
    """Reformats a whole document into a single replacement edit."""

    def __init__(self, options: FormatOptions | None = None):
        self.options = options or FormatOptions()

    def format_text(self, text: str) -> str:
        lines = split_lines(text)
        trailing_newline = text.endswith("\n")
        if trailing_newline:
            lines = lines[:-1]

        spacing = self.options.space_around_operators
        normalized: list[str] = []
        verbatim: set[int] = set()
        in_comment = False
        for i, line in enumerate(lines):
            if not in_comment:
                normalized.append(normalize_spaces(line, spacing))
                in_comment = split_code(line)[1]
                continue

            verbatim.add(i)
            end = line.find("*/")
            if end == -1:
                normalized.append(line)
                continue
            head, rest = line[: end + 2], line[end + 2:]
            normalized.append(head + normalize_spaces(rest, spacing) if rest.strip() else line)
            in_comment = split_code(rest)[1]

        indented = reindent(normalized, self.options.indent_size, frozenset(verbatim))

        eol = detect_line_ending(text)
        result = eol.join(indented)
        if trailing_newline:
            result += eol
        return result

    def format(self, text: str) -> TextEdit:
        return TextEdit(Range.whole_document(split_lines(text)), self.format_text(text))


def format_document(text: str, options: FormatOptions | None = None) -> TextEdit:
    return Formatter(options).format(text)
