"""Structural analysis for BACI C-- source.

A single forward pass over lines. Each check is a line-local regex match, so
half-typed or otherwise unparseable code still analyzes; the only state
carried between lines is the brace depth and the cobegin nesting depth.
"""

import re
from dataclasses import dataclass, field

from loguru import logger

from .models import (
    AnalysisResult,
    FunctionDeclaration,
    SemaphoreDeclaration,
    Violation,
    ViolationKind,
)
from .scanner import Scanner, split_lines

# Regex patterns
IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
FUNCTION_DECL_PATTERN = re.compile(rf"\b(void|int)\s+({IDENT})\s*\(")
COBEGIN_PATTERN = re.compile(r"\bcobegin\b")
CLOSING_BRACE_PATTERN = re.compile(r"^\s*\}")
STRING_WITHOUT_LENGTH_PATTERN = re.compile(rf"\bstring\b\s+({IDENT})\s*[;=]")
STRING_WITH_LENGTH_PATTERN = re.compile(rf"\bstring\s*\[\s*\d+\s*\]\s+{IDENT}")
SEMAPHORE_DECL_PATTERN = re.compile(
    rf"\b(semaphore|binarysem)\s+({IDENT})\s*(?:=\s*(-?\d+)\s*)?;"
)
INITIALSEM_CALL_PATTERN = re.compile(rf"\binitialsem\s*\(\s*({IDENT})\s*,\s*(-?\d+)\s*\)")
FOR_INDEX_DECL_PATTERN = re.compile(rf"\bfor\s*\(\s*int\s+({IDENT})")
FOR_INDEX_INIT_PATTERN = re.compile(rf"\bfor\s*\(\s*int\s+({IDENT})\s*=([^;]+);")

# Messages
NESTED_COBEGIN_MSG = "Nested cobegin block not allowed"
STRING_LENGTH_MSG = "String variable must declare length: string[20] name;"
SEMAPHORE_NEGATIVE_MSG = "semaphore must be non-negative"
BINARYSEM_RANGE_MSG = "binarysem must be initialized to 0 or 1"
INITIALSEM_NEGATIVE_MSG = "initialsem: semaphore value must be non-negative"
INITIALSEM_BINARY_MSG = "initialsem: binarysem value must be 0 or 1"
FOR_INDEX_MSG = "For-loop index cannot be declared in header; declare at block start"
MISSING_MAIN_MSG = "Missing main() function"
MAIN_NOT_LAST_MSG = "main() must be the last function"


@dataclass
class _PassState:
    brace_depth: int = 0
    cobegin_depth: int = 0
    functions: list[FunctionDeclaration] = field(default_factory=list)
    semaphores: list[SemaphoreDeclaration] = field(default_factory=list)
    cobegin_lines: list[int] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)

    def report(self, kind: ViolationKind, message: str, line: int,
               column: int | None = None, **data) -> None:
        self.violations.append(Violation(kind, message, line, column, data))


def semaphore_value_ok(kind: str, value: int) -> bool:
    """A semaphore may start at any n >= 0, a binarysem only at 0 or 1."""
    if kind == "binarysem":
        return value in (0, 1)
    return value >= 0


class StructuralAnalyzer:
    """Extracts declarations and rule violations from BACI C-- source."""

    def __init__(self, scanner: Scanner | None = None):
        self.scanner = scanner or Scanner()

    def analyze(self, text: str) -> AnalysisResult:
        """
        Run one full pass over a document snapshot.

        Args:
            text: Full document text, `\\n` or `\\r\\n` terminated.

        Returns:
            A fresh AnalysisResult. Never raises for any input text.
        """
        state = _PassState()
        lines = split_lines(text)

        for i, line in enumerate(lines):
            self._track_braces(state, line)
            self._check_function(state, line, i)
            self._check_cobegin(state, line, i)
            self._check_string(state, line, i)
            self._check_semaphore(state, line, i)
            self._check_initialsem(state, line, i)
            self._check_for_header(state, line, i)

        has_main = any(f.name == "main" for f in state.functions)
        if not has_main:
            state.report(ViolationKind.MISSING_MAIN, MISSING_MAIN_MSG, 0)
        else:
            last = state.functions[-1]
            if last.name != "main":
                state.report(
                    ViolationKind.MAIN_NOT_LAST, MAIN_NOT_LAST_MSG, last.line,
                    last_function=last.name,
                )

        if state.brace_depth != 0:
            logger.debug(f"Analysis finished with {state.brace_depth} unclosed brace(s)")
        logger.debug(
            f"Analyzed {len(lines)} line(s): {len(state.functions)} function(s), "
            f"{len(state.violations)} violation(s)"
        )

        return AnalysisResult(
            functions=state.functions,
            has_main=has_main,
            tokens=self.scanner.scan(text),
            cobegin_lines=state.cobegin_lines,
            violations=state.violations,
            semaphores=state.semaphores,
        )

    def _track_braces(self, state: _PassState, line: str) -> None:
        trimmed = line.strip()
        if trimmed.endswith("{"):
            state.brace_depth += 1
        if trimmed.startswith("}"):
            state.brace_depth = max(0, state.brace_depth - 1)

    def _check_function(self, state: _PassState, line: str, i: int) -> None:
        match = FUNCTION_DECL_PATTERN.search(line)
        if match:
            state.functions.append(
                FunctionDeclaration(name=match.group(2), return_type=match.group(1), line=i)
            )

    def _check_cobegin(self, state: _PassState, line: str, i: int) -> None:
        match = COBEGIN_PATTERN.search(line)
        if match:
            state.cobegin_lines.append(i)
            if state.cobegin_depth > 0:
                state.report(
                    ViolationKind.NESTED_COBEGIN, NESTED_COBEGIN_MSG, i, match.start(),
                    depth=state.cobegin_depth,
                )
            state.cobegin_depth += 1
        # A block closing at depth 0 is ignored
        if CLOSING_BRACE_PATTERN.match(line) and state.cobegin_depth > 0:
            state.cobegin_depth -= 1

    def _check_string(self, state: _PassState, line: str, i: int) -> None:
        match = STRING_WITHOUT_LENGTH_PATTERN.search(line)
        if match and not STRING_WITH_LENGTH_PATTERN.search(line):
            state.report(
                ViolationKind.STRING_WITHOUT_LENGTH, STRING_LENGTH_MSG, i, match.start(),
                name=match.group(1),
            )

    def _check_semaphore(self, state: _PassState, line: str, i: int) -> None:
        match = SEMAPHORE_DECL_PATTERN.search(line)
        if not match:
            return

        kind, name, raw_value = match.groups()
        value = int(raw_value) if raw_value is not None else None
        state.semaphores.append(
            SemaphoreDeclaration(name=name, kind=kind, line=i, initial_value=value)
        )

        if value is None or semaphore_value_ok(kind, value):
            return
        if kind == "semaphore":
            state.report(
                ViolationKind.SEMAPHORE_NEGATIVE, SEMAPHORE_NEGATIVE_MSG, i, match.start(),
                name=name, value=value,
            )
        else:
            state.report(
                ViolationKind.BINARYSEM_RANGE, BINARYSEM_RANGE_MSG, i, match.start(),
                name=name, value=value,
            )

    def _check_initialsem(self, state: _PassState, line: str, i: int) -> None:
        match = INITIALSEM_CALL_PATTERN.search(line)
        if not match:
            return

        name = match.group(1)
        value = int(match.group(2))
        # First declaration with this name wins, even if the name is redeclared
        sem = next((s for s in state.semaphores if s.name == name), None)
        if sem is None or semaphore_value_ok(sem.kind, value):
            return
        if sem.kind == "semaphore":
            state.report(
                ViolationKind.INITIALSEM_NEGATIVE, INITIALSEM_NEGATIVE_MSG, i, match.start(),
                name=name, value=value, declared_line=sem.line,
            )
        else:
            state.report(
                ViolationKind.INITIALSEM_BINARY_RANGE, INITIALSEM_BINARY_MSG, i, match.start(),
                name=name, value=value, declared_line=sem.line,
            )

    def _check_for_header(self, state: _PassState, line: str, i: int) -> None:
        match = FOR_INDEX_DECL_PATTERN.search(line)
        if not match:
            return

        data = {"name": match.group(1)}
        init = FOR_INDEX_INIT_PATTERN.search(line)
        if init:
            data["init"] = init.group(2).strip()
        state.report(ViolationKind.FOR_INDEX_IN_HEADER, FOR_INDEX_MSG, i, match.start(), **data)


def analyze(text: str) -> AnalysisResult:
    """Analyze a document snapshot with a fresh StructuralAnalyzer."""
    return StructuralAnalyzer().analyze(text)
