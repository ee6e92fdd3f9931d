"""Editor-facing host: document lifecycle, diagnostics refresh, code actions.

The analysis core is stateless. Everything with a lifecycle (the set of open
documents, the latest diagnostics for each, whether the host is running)
lives here.
"""

from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from .analyzer import StructuralAnalyzer
from .diagnostics import DiagnosticGenerator
from .errors import DocumentNotFoundError, HostNotInitializedError
from .formatter import Formatter
from .models import AnalysisResult, Diagnostic, FormatOptions, QuickFix, Range, Settings, TextEdit
from .quickfix import QuickFixSynthesizer

LANGUAGE_ID = "baci"


@dataclass
class Document:
    """An open document and the diagnostics of its latest successful pass."""

    uri: str
    text: str
    language_id: str = LANGUAGE_ID
    version: int = 0
    analysis: AnalysisResult | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)


class LanguageHost:
    """Owns open documents and runs a full analysis pass on every change."""

    def __init__(self, settings_provider: Callable[[], Settings] | None = None):
        """
        Args:
            settings_provider: Called on every operation that needs settings,
                so changes apply from the next call on. Defaults to built-in
                defaults.
        """
        self._settings_provider = settings_provider or Settings
        self._documents: dict[str, Document] = {}
        self._active = False
        self.analyzer = StructuralAnalyzer()
        self.generator = DiagnosticGenerator()

    @property
    def active(self) -> bool:
        return self._active

    def initialize(self) -> bool:
        """Start the host. Returns False (and does nothing) if already started."""
        if self._active:
            logger.warning("BACI host already initialized, skipping duplicate initialization")
            return False
        self._active = True
        logger.debug("BACI host initialized")
        return True

    def shutdown(self) -> None:
        """Stop the host and forget all documents. Safe to call repeatedly."""
        if self._active:
            logger.debug(f"BACI host shutting down with {len(self._documents)} open document(s)")
        self._active = False
        self._documents.clear()

    def settings(self) -> Settings:
        return self._settings_provider()

    def _require_active(self) -> None:
        if not self._active:
            raise HostNotInitializedError()

    # Document lifecycle

    def open_document(
        self, uri: str, text: str, language_id: str = LANGUAGE_ID, version: int = 0
    ) -> Document:
        self._require_active()
        doc = Document(uri=uri, text=text, language_id=language_id, version=version)
        self._documents[uri] = doc
        self.refresh_diagnostics(doc)
        return doc

    def change_document(self, uri: str, text: str, version: int | None = None) -> Document:
        doc = self.get_document(uri)
        doc.text = text
        doc.version = version if version is not None else doc.version + 1
        self.refresh_diagnostics(doc)
        return doc

    def save_document(self, uri: str, text: str | None = None) -> Document:
        doc = self.get_document(uri)
        if text is not None:
            doc.text = text
        self.refresh_diagnostics(doc)
        return doc

    def close_document(self, uri: str) -> Document:
        doc = self.get_document(uri)
        del self._documents[uri]
        return doc

    def get_document(self, uri: str) -> Document:
        self._require_active()
        doc = self._documents.get(uri)
        if doc is None:
            raise DocumentNotFoundError(uri)
        return doc

    def list_documents(self) -> list[Document]:
        self._require_active()
        return list(self._documents.values())

    def refresh_diagnostics(self, doc: Document) -> None:
        """
        Replace a document's diagnostics with those of a fresh pass.

        An unexpected failure is logged and the previous diagnostics are
        kept, so the document stays usable.
        """
        if doc.language_id != LANGUAGE_ID:
            return
        try:
            analysis = self.analyzer.analyze(doc.text)
            diagnostics = self.generator.diagnose(doc.text, analysis)
        except Exception:
            logger.exception(f"BACI diagnostics error for {doc.uri}")
            return
        doc.analysis = analysis
        doc.diagnostics = diagnostics

    def diagnostics_for(self, uri: str) -> list[Diagnostic]:
        return list(self.get_document(uri).diagnostics)

    # Editing services

    def code_actions(
        self, uri: str, range: Range, diagnostics: list[Diagnostic] | None = None
    ) -> list[QuickFix]:
        """
        Quick fixes for the diagnostics that touch `range`.

        Args:
            uri: Document to fix.
            range: Lines the editor is asking about.
            diagnostics: Diagnostics from the editor's context; defaults to the
                host's own diagnostics for the document.
        """
        doc = self.get_document(uri)
        if diagnostics is None:
            diagnostics = [d for d in doc.diagnostics if d.range.intersects(range)]

        synthesizer = QuickFixSynthesizer(self.settings().default_string_length)
        fixes: list[QuickFix] = []
        for diagnostic in diagnostics:
            fix = synthesizer.synthesize(doc.text, diagnostic)
            if fix is not None:
                fixes.append(fix)
        return fixes

    def format(self, uri: str, options: FormatOptions | None = None) -> TextEdit:
        doc = self.get_document(uri)
        return Formatter(options or self.settings().format).format(doc.text)
