"""Data models for bacilint."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidSettingsError


class TokenKind(str, Enum):
    IDENTIFIER = "identifier"
    NUMBER = "number"
    PUNCTUATION = "punctuation"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ViolationKind(str, Enum):
    """Closed set of rule breaches the analyzer and diagnostic pass report."""

    NESTED_COBEGIN = "nested_cobegin"
    STRING_WITHOUT_LENGTH = "string_without_length"
    SEMAPHORE_NEGATIVE = "semaphore_negative"
    BINARYSEM_RANGE = "binarysem_range"
    INITIALSEM_NEGATIVE = "initialsem_negative"
    INITIALSEM_BINARY_RANGE = "initialsem_binary_range"
    FOR_INDEX_IN_HEADER = "for_index_in_header"
    MISSING_MAIN = "missing_main"
    MAIN_NOT_LAST = "main_not_last"
    UNSUPPORTED_TYPE = "unsupported_type"

    @classmethod
    def from_message(cls, message: str) -> "ViolationKind | None":
        """
        Recover a violation kind from diagnostic text.

        Hosts that only round-trip the message (and not the kind) still get
        quick fixes this way. Order matters: the initialsem wordings also
        contain the declaration-site wordings.
        """
        for pattern, kind in _MESSAGE_KINDS:
            if pattern.search(message):
                return kind
        return None


_MESSAGE_KINDS: list[tuple[re.Pattern[str], ViolationKind]] = [
    (re.compile(r"Nested cobegin block not allowed"), ViolationKind.NESTED_COBEGIN),
    (re.compile(r"String variable must declare length"), ViolationKind.STRING_WITHOUT_LENGTH),
    (re.compile(r"initialsem: semaphore value must be non-negative"), ViolationKind.INITIALSEM_NEGATIVE),
    (re.compile(r"initialsem: binarysem value must be 0 or 1"), ViolationKind.INITIALSEM_BINARY_RANGE),
    (re.compile(r"semaphore must be non-negative"), ViolationKind.SEMAPHORE_NEGATIVE),
    (re.compile(r"binarysem must be initialized to 0 or 1"), ViolationKind.BINARYSEM_RANGE),
    (re.compile(r"For-loop index cannot be declared in header"), ViolationKind.FOR_INDEX_IN_HEADER),
    (re.compile(r"Missing main\(\) function"), ViolationKind.MISSING_MAIN),
    (re.compile(r"main\(\) must be the last function"), ViolationKind.MAIN_NOT_LAST),
    (re.compile(r"Type '[^']*' is not supported"), ViolationKind.UNSUPPORTED_TYPE),
]


# Positions and edits


@dataclass(frozen=True)
class Position:
    """A zero-based line/character position."""

    line: int
    character: int

    def to_dict(self) -> dict[str, Any]:
        return {"line": self.line, "character": self.character}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Position":
        return cls(line=data["line"], character=data.get("character", 0))


@dataclass(frozen=True)
class Range:
    """A span between two positions, end exclusive."""

    start: Position
    end: Position

    @classmethod
    def of(cls, start_line: int, start_char: int, end_line: int, end_char: int) -> "Range":
        return cls(Position(start_line, start_char), Position(end_line, end_char))

    @classmethod
    def for_line(cls, lines: list[str], line: int) -> "Range":
        """Range covering a whole line, with the line clamped into the document."""
        last = len(lines) - 1 if lines else 0
        i = min(max(line, 0), last)
        length = len(lines[i]) if lines else 0
        return cls.of(i, 0, i, length)

    @classmethod
    def whole_document(cls, lines: list[str]) -> "Range":
        return cls.of(0, 0, len(lines), 0)

    def intersects(self, other: "Range") -> bool:
        """True if the two ranges share at least one line."""
        return max(self.start.line, other.start.line) <= min(self.end.line, other.end.line)

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Range":
        return cls(
            start=Position.from_dict(data["start"]),
            end=Position.from_dict(data["end"]),
        )


@dataclass(frozen=True)
class TextEdit:
    """Replace the text in `range` with `new_text`. An empty range inserts."""

    range: Range
    new_text: str

    def to_dict(self) -> dict[str, Any]:
        return {"range": self.range.to_dict(), "new_text": self.new_text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TextEdit":
        return cls(range=Range.from_dict(data["range"]), new_text=data["new_text"])


# Structural model


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    line: int
    column: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "text": self.text,
            "line": self.line,
            "column": self.column,
        }


@dataclass(frozen=True)
class FunctionDeclaration:
    name: str
    return_type: str  # "void" | "int"
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "return_type": self.return_type, "line": self.line}


@dataclass(frozen=True)
class SemaphoreDeclaration:
    name: str
    kind: str  # "semaphore" | "binarysem"
    line: int
    initial_value: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "kind": self.kind, "line": self.line}
        if self.initial_value is not None:
            result["initial_value"] = self.initial_value
        return result


@dataclass(frozen=True)
class Violation:
    """A rule breach found by the structural pass."""

    kind: ViolationKind
    message: str
    line: int
    column: int | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
            "line": self.line,
        }
        if self.column is not None:
            result["column"] = self.column
        if self.data:
            result["data"] = dict(self.data)
        return result


@dataclass(frozen=True)
class Diagnostic:
    """A violation positioned in a document, with its severity."""

    message: str
    range: Range
    severity: Severity
    kind: ViolationKind | None = None
    data: dict[str, Any] = field(default_factory=dict)
    source: str = "bacilint"

    @property
    def line(self) -> int:
        return self.range.start.line

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "message": self.message,
            "range": self.range.to_dict(),
            "severity": self.severity.value,
            "source": self.source,
        }
        if self.kind is not None:
            result["kind"] = self.kind.value
        if self.data:
            result["data"] = dict(self.data)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Diagnostic":
        kind = data.get("kind")
        return cls(
            message=data["message"],
            range=Range.from_dict(data["range"]),
            severity=Severity(data.get("severity", Severity.WARNING.value)),
            kind=ViolationKind(kind) if kind else None,
            data=data.get("data", {}),
            source=data.get("source", "bacilint"),
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Everything one structural pass learned about one document snapshot."""

    functions: list[FunctionDeclaration]
    has_main: bool
    tokens: list[Token]
    cobegin_lines: list[int]
    violations: list[Violation]
    semaphores: list[SemaphoreDeclaration]

    def to_dict(self, include_tokens: bool = True) -> dict[str, Any]:
        result: dict[str, Any] = {
            "functions": [f.to_dict() for f in self.functions],
            "has_main": self.has_main,
            "cobegin_lines": list(self.cobegin_lines),
            "violations": [v.to_dict() for v in self.violations],
            "semaphores": [s.to_dict() for s in self.semaphores],
        }
        if include_tokens:
            result["tokens"] = [t.to_dict() for t in self.tokens]
        return result


@dataclass(frozen=True)
class QuickFix:
    """A titled set of edits resolving one diagnostic."""

    title: str
    kind: ViolationKind
    edits: list[TextEdit]
    is_preferred: bool
    diagnostic: Diagnostic | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "title": self.title,
            "kind": self.kind.value,
            "edits": [e.to_dict() for e in self.edits],
            "is_preferred": self.is_preferred,
        }
        if self.diagnostic is not None:
            result["diagnostic"] = self.diagnostic.to_dict()
        return result


# Configuration

MAX_INDENT_SIZE = 16


@dataclass
class FormatOptions:
    space_around_operators: bool = True
    indent_size: int = 2

    def validate(self) -> None:
        if not isinstance(self.space_around_operators, bool):
            raise InvalidSettingsError(
                "format.spaceAroundOperators", self.space_around_operators, "must be a boolean"
            )
        if (
            not isinstance(self.indent_size, int)
            or isinstance(self.indent_size, bool)
            or not 0 <= self.indent_size <= MAX_INDENT_SIZE
        ):
            raise InvalidSettingsError(
                "format.indentSize", self.indent_size, f"must be an integer in 0..{MAX_INDENT_SIZE}"
            )


@dataclass
class Settings:
    """Host-owned configuration, read by the core on every call."""

    default_string_length: int = 20
    format: FormatOptions = field(default_factory=FormatOptions)

    def validate(self) -> None:
        if (
            not isinstance(self.default_string_length, int)
            or isinstance(self.default_string_length, bool)
            or self.default_string_length < 1
        ):
            raise InvalidSettingsError(
                "defaultStringLength", self.default_string_length, "must be a positive integer"
            )
        self.format.validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "defaultStringLength": self.default_string_length,
            "format.spaceAroundOperators": self.format.space_around_operators,
            "format.indentSize": self.format.indent_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        defaults = cls()
        settings = cls(
            default_string_length=data.get("defaultStringLength", defaults.default_string_length),
            format=FormatOptions(
                space_around_operators=data.get(
                    "format.spaceAroundOperators", defaults.format.space_around_operators
                ),
                indent_size=data.get("format.indentSize", defaults.format.indent_size),
            ),
        )
        settings.validate()
        return settings
