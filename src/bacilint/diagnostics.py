"""Diagnostic generation: structural violations plus the declared-type check."""

import re

from .models import AnalysisResult, Diagnostic, Range, Severity, ViolationKind
from .scanner import split_lines

# Words that make a message an error rather than advice
IMPERATIVE_PATTERN = re.compile(r"must|missing|not allowed|cannot", re.IGNORECASE)

DECLARATION_PATTERN = re.compile(
    r"\b([A-Za-z_][A-Za-z0-9_]*)\b\s+[A-Za-z_][A-Za-z0-9_]*\s*(?:[;=\[])"
)

VALUE_TYPES = frozenset({"int", "char", "string"})
CONCURRENCY_TYPES = frozenset({"semaphore", "binarysem", "monitor", "condition"})
DECLARATION_MODIFIERS = frozenset({"typedef", "extern", "const", "void"})
RECOGNIZED_TYPES = VALUE_TYPES | CONCURRENCY_TYPES | DECLARATION_MODIFIERS


def classify_severity(message: str) -> Severity:
    """Errors are the messages worded as rules; everything else is a warning."""
    if IMPERATIVE_PATTERN.search(message):
        return Severity.ERROR
    return Severity.WARNING


def unsupported_type_message(type_name: str) -> str:
    return f"Type '{type_name}' is not supported"


class DiagnosticGenerator:
    """Merges analyzer violations with the unsupported-type heuristic."""

    def diagnose(self, text: str, result: AnalysisResult | None = None) -> list[Diagnostic]:
        """
        Build the full diagnostic list for a document.

        Args:
            text: The document text the result was computed from.
            result: Structural pass output; when omitted only the type
                check runs.

        Returns:
            Structural diagnostics in pass order, then type warnings in
            line order. Each diagnostic spans its whole line.
        """
        lines = split_lines(text)
        diagnostics: list[Diagnostic] = []

        if result is not None:
            for violation in result.violations:
                diagnostics.append(
                    Diagnostic(
                        message=violation.message,
                        range=Range.for_line(lines, violation.line),
                        severity=classify_severity(violation.message),
                        kind=violation.kind,
                        data=dict(violation.data),
                    )
                )

        diagnostics.extend(self.check_declared_types(lines))
        return diagnostics

    def check_declared_types(self, lines: list[str]) -> list[Diagnostic]:
        """
        Flag declarations whose leading word is not a known type.

        This is advisory: a typedef'd alias looks the same as an unsupported
        type at this depth, so these are always warnings.
        """
        diagnostics: list[Diagnostic] = []
        for i, line in enumerate(lines):
            match = DECLARATION_PATTERN.search(line)
            if not match:
                continue
            type_name = match.group(1)
            if type_name in RECOGNIZED_TYPES:
                continue
            diagnostics.append(
                Diagnostic(
                    message=unsupported_type_message(type_name),
                    range=Range.for_line(lines, i),
                    severity=Severity.WARNING,
                    kind=ViolationKind.UNSUPPORTED_TYPE,
                    data={"type": type_name},
                )
            )
        return diagnostics


def diagnose(text: str, result: AnalysisResult | None = None) -> list[Diagnostic]:
    return DiagnosticGenerator().diagnose(text, result)
