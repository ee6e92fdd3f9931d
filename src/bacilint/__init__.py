"""bacilint - analysis, quick fixes and formatting for BACI C-- source."""

__version__ = "0.1.0"

from .analyzer import StructuralAnalyzer, analyze
from .diagnostics import DiagnosticGenerator, classify_severity, diagnose
from .formatter import Formatter, format_document
from .quickfix import QuickFixSynthesizer, synthesize_fix
from .scanner import Scanner

__all__ = [
    "DiagnosticGenerator",
    "Formatter",
    "QuickFixSynthesizer",
    "Scanner",
    "StructuralAnalyzer",
    "analyze",
    "classify_severity",
    "diagnose",
    "format_document",
    "synthesize_fix",
]
