"""Tests for the language host."""

import pytest

from bacilint.errors import DocumentNotFoundError, HostNotInitializedError
from bacilint.host import LanguageHost
from bacilint.models import FormatOptions, Range, Settings, ViolationKind


BAD_STRING = "void main() {\n  string s;\n}\n"


@pytest.fixture
def host():
    h = LanguageHost()
    h.initialize()
    yield h
    h.shutdown()


class TestLifecycle:
    def test_initialize_once(self):
        h = LanguageHost()

        assert h.initialize() is True
        assert h.initialize() is False
        assert h.active

    def test_use_before_initialize(self):
        with pytest.raises(HostNotInitializedError):
            LanguageHost().open_document("a.cm", "")

    def test_shutdown_is_idempotent(self, host):
        host.open_document("a.cm", BAD_STRING)

        host.shutdown()
        host.shutdown()

        assert not host.active
        with pytest.raises(HostNotInitializedError):
            host.list_documents()

    def test_restart_forgets_documents(self, host):
        host.open_document("a.cm", BAD_STRING)
        host.shutdown()

        assert host.initialize() is True
        assert host.list_documents() == []


class TestDocuments:
    def test_open_computes_diagnostics(self, host):
        doc = host.open_document("a.cm", BAD_STRING)

        assert [d.kind for d in doc.diagnostics] == [ViolationKind.STRING_WITHOUT_LENGTH]
        assert doc.analysis is not None and doc.analysis.has_main

    def test_change_refreshes(self, host):
        host.open_document("a.cm", BAD_STRING)

        doc = host.change_document("a.cm", "void main() {\n  string[5] s;\n}\n")

        assert doc.version == 1
        assert host.diagnostics_for("a.cm") == []

    def test_save_with_text(self, host):
        host.open_document("a.cm", "void main() {}\n")

        host.save_document("a.cm", BAD_STRING)

        assert len(host.diagnostics_for("a.cm")) == 1

    def test_close(self, host):
        host.open_document("a.cm", BAD_STRING)

        host.close_document("a.cm")

        with pytest.raises(DocumentNotFoundError):
            host.diagnostics_for("a.cm")

    def test_unknown_document(self, host):
        with pytest.raises(DocumentNotFoundError) as exc_info:
            host.get_document("missing.cm")
        assert exc_info.value.uri == "missing.cm"

    def test_other_language_gets_no_diagnostics(self, host):
        doc = host.open_document("notes.txt", BAD_STRING, language_id="plaintext")

        assert doc.diagnostics == []
        assert doc.analysis is None

    def test_failed_pass_keeps_previous_diagnostics(self, host, monkeypatch):
        host.open_document("a.cm", BAD_STRING)
        before = host.diagnostics_for("a.cm")

        def boom(text):
            raise RuntimeError("analyzer crashed")

        monkeypatch.setattr(host.analyzer, "analyze", boom)
        host.change_document("a.cm", "int x;\n")

        assert host.diagnostics_for("a.cm") == before
        assert host.get_document("a.cm").text == "int x;\n"


class TestEditingServices:
    def test_code_actions_in_range(self, host):
        host.open_document("a.cm", BAD_STRING)

        fixes = host.code_actions("a.cm", Range.of(1, 0, 1, 0))

        assert len(fixes) == 1
        assert fixes[0].edits[0].new_text == "  string[20] s;"

    def test_code_actions_outside_range(self, host):
        host.open_document("a.cm", BAD_STRING)

        assert host.code_actions("a.cm", Range.of(2, 0, 2, 1)) == []

    def test_code_actions_read_current_settings(self):
        current = {"settings": Settings()}
        h = LanguageHost(settings_provider=lambda: current["settings"])
        h.initialize()
        h.open_document("a.cm", BAD_STRING)

        first = h.code_actions("a.cm", Range.of(1, 0, 1, 0))
        current["settings"] = Settings(default_string_length=64)
        second = h.code_actions("a.cm", Range.of(1, 0, 1, 0))

        assert first[0].edits[0].new_text == "  string[20] s;"
        assert second[0].edits[0].new_text == "  string[64] s;"

    def test_format_uses_settings(self):
        settings = Settings(format=FormatOptions(space_around_operators=False, indent_size=4))
        h = LanguageHost(settings_provider=lambda: settings)
        h.initialize()
        h.open_document("a.cm", "void main() {\nx=1;\n}\n")

        edit = h.format("a.cm")

        assert edit.new_text == "void main() {\n    x=1;\n}\n"

    def test_format_explicit_options(self, host):
        host.open_document("a.cm", "void main() {\nx=1;\n}\n")

        edit = host.format("a.cm", FormatOptions(indent_size=2))

        assert edit.new_text == "void main() {\n  x = 1;\n}\n"
        assert edit.range == Range.of(0, 0, 4, 0)
