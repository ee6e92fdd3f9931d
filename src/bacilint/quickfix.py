"""Quick-fix synthesis for diagnosed violations.

Every fix re-reads the current document text rather than trusting the
analysis that produced the diagnostic, since the document may have been
edited in between. A fix that cannot find what it expects returns None.
"""

import re
from typing import Callable

from loguru import logger

from .analyzer import FUNCTION_DECL_PATTERN, IDENT
from .diagnostics import classify_severity
from .formatter import split_code
from .models import Diagnostic, QuickFix, Range, TextEdit, ViolationKind
from .scanner import split_lines
from .utils import collapse_blank_runs, detect_line_ending, leading_whitespace

DEFAULT_STRING_LENGTH = 20

STRING_DECL_PATTERN = re.compile(rf"\bstring\b\s+({IDENT})(\s*[;=])")
FOR_HEADER_PATTERN = re.compile(rf"\bfor\s*\(\s*int\s+({IDENT})\s*=([^;]+);")
FOR_HEADER_DECL_PATTERN = re.compile(rf"\(\s*int\s+({IDENT})\s*=([^;]+);")
MAIN_DECL_PATTERN = re.compile(r"\b(void|int)\s+main\s*\(")


class QuickFixSynthesizer:
    """Computes the edit that resolves a diagnostic, when one is known."""

    def __init__(self, default_string_length: int = DEFAULT_STRING_LENGTH):
        self.default_string_length = default_string_length
        self._fixers: dict[ViolationKind, Callable[[str, Diagnostic], QuickFix | None]] = {
            ViolationKind.STRING_WITHOUT_LENGTH: self.fix_string_length,
            ViolationKind.FOR_INDEX_IN_HEADER: self.fix_for_header_index,
            ViolationKind.MAIN_NOT_LAST: self.fix_move_main_to_end,
        }

    def can_fix(self, diagnostic: Diagnostic) -> bool:
        return _resolve_kind(diagnostic) in self._fixers

    def synthesize(self, text: str, diagnostic: Diagnostic) -> QuickFix | None:
        """
        Compute the fix for one diagnostic.

        Args:
            text: Current document text.
            diagnostic: The diagnostic to resolve. Its kind is used when set,
                otherwise the kind is recovered from its message.

        Returns:
            A QuickFix, or None if the violation has no fix or the expected
            pattern is no longer on the diagnostic's line.
        """
        fixer = self._fixers.get(_resolve_kind(diagnostic))
        if fixer is None:
            return None
        fix = fixer(text, diagnostic)
        if fix is None:
            logger.debug(f"No fix for '{diagnostic.message}' at line {diagnostic.line}")
        return fix

    def fix_string_length(self, text: str, diagnostic: Diagnostic) -> QuickFix | None:
        lines = split_lines(text)
        line_no = diagnostic.line
        if not 0 <= line_no < len(lines):
            return None

        line = lines[line_no]
        match = STRING_DECL_PATTERN.search(line)
        if not match:
            return None

        length = self.default_string_length
        replacement = (
            line[: match.start()]
            + f"string[{length}] {match.group(1)}{match.group(2)}"
            + line[match.end():]
        )
        return QuickFix(
            title=f"Declare string length (string[{length}])",
            kind=ViolationKind.STRING_WITHOUT_LENGTH,
            edits=[TextEdit(Range.of(line_no, 0, line_no, len(line)), replacement)],
            is_preferred=True,
            diagnostic=diagnostic,
        )

    def fix_for_header_index(self, text: str, diagnostic: Diagnostic) -> QuickFix | None:
        lines = split_lines(text)
        line_no = diagnostic.line
        if not 0 <= line_no < len(lines):
            return None

        line = lines[line_no]
        match = FOR_HEADER_PATTERN.search(line)
        if not match:
            return None

        name = match.group(1)
        init = match.group(2).strip()
        header = FOR_HEADER_DECL_PATTERN.search(line, match.start())
        if header is None:
            return None
        new_line = line[: header.start()] + f"({name} = {init};" + line[header.end():]
        declaration = f"{leading_whitespace(line)}int {name} = {init};{detect_line_ending(text)}"

        return QuickFix(
            title="Move loop index declaration out of header",
            kind=ViolationKind.FOR_INDEX_IN_HEADER,
            edits=[
                TextEdit(Range.of(line_no, 0, line_no, 0), declaration),
                TextEdit(Range.of(line_no, 0, line_no, len(line)), new_line),
            ],
            is_preferred=True,
            diagnostic=diagnostic,
        )

    def fix_move_main_to_end(self, text: str, diagnostic: Diagnostic) -> QuickFix | None:
        """
        Move the body of main() after every other line of the file.

        Gives up (None) when main is declared more than once, when main is
        already the last function, or when main's braces never balance.
        """
        lines = split_lines(text)
        main_lines = [i for i, line in enumerate(lines) if MAIN_DECL_PATTERN.search(line)]
        last_function = -1
        for i, line in enumerate(lines):
            if FUNCTION_DECL_PATTERN.search(line):
                last_function = i

        if len(main_lines) != 1:
            return None
        start = main_lines[0]
        if last_function == start:
            return None

        end = find_block_end(lines, start)
        if end is None:
            return None

        eol = detect_line_ending(text)
        block = lines[start:end + 1]
        rest = lines[:start] + lines[end + 1:]
        while rest and not rest[-1].strip():
            rest.pop()
        if start == 0:
            while rest and not rest[0].strip():
                rest.pop(0)

        new_lines = rest + [""] + block if rest else block
        new_text = eol.join(new_lines)
        if text.endswith("\n"):
            new_text += eol
        new_text = collapse_blank_runs(new_text, eol)

        return QuickFix(
            title="Move main() to end of file",
            kind=ViolationKind.MAIN_NOT_LAST,
            edits=[TextEdit(Range.whole_document(lines), new_text)],
            is_preferred=False,
            diagnostic=diagnostic,
        )


def find_block_end(lines: list[str], start: int) -> int | None:
    """
    Index of the line that closes the brace block opened at or after `start`.

    Braces inside string and char literals and comments are ignored. Returns
    None if no brace opens or the depth never returns to zero.
    """
    depth = 0
    opened = False
    in_comment = False
    for i in range(start, len(lines)):
        code, in_comment = split_code(lines[i], in_comment)
        for ch in code:
            if ch == "{":
                depth += 1
                opened = True
            elif ch == "}":
                depth -= 1
        if opened and depth <= 0:
            return i
    return None


def _resolve_kind(diagnostic: Diagnostic) -> ViolationKind | None:
    return diagnostic.kind or ViolationKind.from_message(diagnostic.message)


def synthesize_fix(
    text: str,
    message: str,
    range: Range,
    default_string_length: int = DEFAULT_STRING_LENGTH,
) -> QuickFix | None:
    """Compute a fix from a bare diagnostic message and range."""
    diagnostic = Diagnostic(
        message=message,
        range=range,
        severity=classify_severity(message),
        kind=ViolationKind.from_message(message),
    )
    return QuickFixSynthesizer(default_string_length).synthesize(text, diagnostic)

