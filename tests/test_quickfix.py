"""Tests for QuickFixSynthesizer."""

from bacilint.analyzer import analyze
from bacilint.diagnostics import diagnose
from bacilint.models import Diagnostic, Range, Severity, ViolationKind
from bacilint.quickfix import QuickFixSynthesizer, find_block_end, synthesize_fix
from bacilint.utils import apply_edits

STRING_MSG = "String variable must declare length: string[20] name;"
FOR_MSG = "For-loop index cannot be declared in header; declare at block start"
MAIN_MSG = "main() must be the last function"


def diagnostic_for(text, kind):
    matches = [d for d in diagnose(text, analyze(text)) if d.kind == kind]
    assert matches, f"no {kind} diagnostic"
    return matches[0]


class TestStringLengthFix:
    def test_inserts_default_length(self):
        fix = synthesize_fix("string name;", STRING_MSG, Range.of(0, 0, 0, 12))

        assert fix is not None
        assert fix.kind == ViolationKind.STRING_WITHOUT_LENGTH
        assert fix.is_preferred is True
        assert len(fix.edits) == 1
        assert fix.edits[0].new_text == "string[20] name;"
        assert fix.edits[0].range == Range.of(0, 0, 0, 12)

    def test_configured_length(self):
        fix = synthesize_fix("string name;", STRING_MSG, Range.of(0, 0, 0, 12), 64)

        assert fix.edits[0].new_text == "string[64] name;"
        assert fix.title == "Declare string length (string[64])"

    def test_keeps_indent_and_initializer(self):
        text = 'void main() {\n  string greeting = "hi";\n}\n'
        diag = diagnostic_for(text, ViolationKind.STRING_WITHOUT_LENGTH)
        fix = QuickFixSynthesizer().synthesize(text, diag)

        assert fix.edits[0].new_text == '  string[20] greeting = "hi";'
        assert apply_edits(text, fix.edits) == (
            'void main() {\n  string[20] greeting = "hi";\n}\n'
        )

    def test_already_fixed_line_gives_no_fix(self):
        assert synthesize_fix("string[20] name;", STRING_MSG, Range.of(0, 0, 0, 16)) is None

    def test_line_out_of_range_gives_no_fix(self):
        assert synthesize_fix("string name;", STRING_MSG, Range.of(5, 0, 5, 0)) is None


class TestForHeaderFix:
    def test_hoists_declaration(self):
        line = "  for (int i = 0; i < n; i++)"
        fix = synthesize_fix(line, FOR_MSG, Range.of(0, 0, 0, len(line)))

        assert fix is not None
        assert fix.is_preferred is True
        insert, replace = fix.edits
        assert insert.range == Range.of(0, 0, 0, 0)
        assert insert.new_text == "  int i = 0;\n"
        assert replace.range == Range.of(0, 0, 0, len(line))
        assert replace.new_text == "  for (i = 0; i < n; i++)"

    def test_applied_to_document(self):
        text = "void main() {\n  for (int i = 0; i < n; i++) {\n  }\n}\n"
        diag = diagnostic_for(text, ViolationKind.FOR_INDEX_IN_HEADER)
        fix = QuickFixSynthesizer().synthesize(text, diag)

        assert apply_edits(text, fix.edits) == (
            "void main() {\n  int i = 0;\n  for (i = 0; i < n; i++) {\n  }\n}\n"
        )

    def test_initializer_expression_kept(self):
        text = "for (int k = n - 1; k >= 0; k--)"
        fix = synthesize_fix(text, FOR_MSG, Range.of(0, 0, 0, len(text)))

        assert fix.edits[0].new_text == "int k = n - 1;\n"
        assert fix.edits[1].new_text == "for (k = n - 1; k >= 0; k--)"

    def test_crlf_document(self):
        text = "void main() {\r\n  for (int i = 0; i < 3; i++) {\r\n  }\r\n}\r\n"
        fix = synthesize_fix(text, FOR_MSG, Range.of(1, 0, 1, 0))

        assert fix.edits[0].new_text == "  int i = 0;\r\n"
        assert apply_edits(text, fix.edits) == (
            "void main() {\r\n  int i = 0;\r\n  for (i = 0; i < 3; i++) {\r\n  }\r\n}\r\n"
        )

    def test_header_without_initializer_gives_no_fix(self):
        text = "for (int i; i < 3; i++)"
        assert synthesize_fix(text, FOR_MSG, Range.of(0, 0, 0, len(text))) is None

    def test_already_fixed_gives_no_fix(self):
        text = "for (i = 0; i < 3; i++)"
        assert synthesize_fix(text, FOR_MSG, Range.of(0, 0, 0, len(text))) is None


class TestMoveMainFix:
    def test_moves_main_after_other_functions(self):
        text = "void main() {\n  p();\n}\n\nvoid p() {\n}\n"
        fix = synthesize_fix(text, MAIN_MSG, Range.of(4, 0, 4, 10))

        assert fix is not None
        assert fix.is_preferred is False
        assert fix.title == "Move main() to end of file"
        assert len(fix.edits) == 1
        assert fix.edits[0].range == Range.of(0, 0, 7, 0)
        assert fix.edits[0].new_text == "void p() {\n}\n\nvoid main() {\n  p();\n}\n"

    def test_result_has_no_main_order_violation(self):
        text = (
            "semaphore s;\n"
            "\n"
            "void main() {\n"
            "  cobegin {\n"
            "    p(); q();\n"
            "  }\n"
            "}\n"
            "\n"
            "\n"
            "\n"
            "void p() {\n"
            "  wait(s);\n"
            "}\n"
            "\n"
            "void q() {\n"
            "  signal(s);\n"
            "}\n"
        )
        diag = diagnostic_for(text, ViolationKind.MAIN_NOT_LAST)
        fix = QuickFixSynthesizer().synthesize(text, diag)
        new_text = apply_edits(text, fix.edits)

        assert "\n\n\n" not in new_text
        assert new_text.endswith("void main() {\n  cobegin {\n    p(); q();\n  }\n}\n")
        assert new_text.startswith("semaphore s;\n\nvoid p() {\n")
        result = analyze(new_text)
        assert [f.name for f in result.functions] == ["p", "q", "main"]
        assert result.violations == []

    def test_main_already_last_gives_no_fix(self):
        text = "void p() {\n}\nvoid main() {\n}\n"
        assert synthesize_fix(text, MAIN_MSG, Range.of(0, 0, 0, 0)) is None

    def test_no_main_gives_no_fix(self):
        assert synthesize_fix("void p() {\n}\n", MAIN_MSG, Range.of(0, 0, 0, 0)) is None

    def test_duplicate_main_gives_no_fix(self):
        text = "void main();\nvoid main() {\n}\nvoid p() {\n}\n"
        assert synthesize_fix(text, MAIN_MSG, Range.of(3, 0, 3, 0)) is None

    def test_unbalanced_braces_give_no_fix(self):
        text = "void main() {\n  p();\nvoid p() {\n}\n"
        assert synthesize_fix(text, MAIN_MSG, Range.of(2, 0, 2, 0)) is None

    def test_brace_in_string_moves_whole_main(self):
        text = 'void main() {\n  s = "}";\n}\nvoid a() {}\n'
        fix = synthesize_fix(text, MAIN_MSG, Range.of(3, 0, 3, 0))

        assert fix is not None
        assert apply_edits(text, fix.edits) == 'void a() {}\n\nvoid main() {\n  s = "}";\n}\n'


class TestFindBlockEnd:
    def test_brace_on_next_line(self):
        lines = ["void main()", "{", "  if (x) {", "  }", "}", "void p() {"]
        assert find_block_end(lines, 0) == 4

    def test_single_line_block(self):
        assert find_block_end(["void main() { p(); }", "x"], 0) == 0

    def test_never_opened(self):
        assert find_block_end(["void main();", "int x;"], 0) is None

    def test_braces_in_literals_ignored(self):
        lines = ["void main() {", "  s = \"}\";", "  c = '{';", "}", "void a() {}"]
        assert find_block_end(lines, 0) == 3

    def test_braces_in_comments_ignored(self):
        lines = ["void main() {", "  /* } */ x;", "  // }", "  /*", "  }", "  */", "}"]
        assert find_block_end(lines, 0) == 6


class TestDispatch:
    def test_unfixable_kinds(self):
        synthesizer = QuickFixSynthesizer()
        diag = Diagnostic(
            message="Nested cobegin block not allowed",
            range=Range.of(0, 0, 0, 0),
            severity=Severity.ERROR,
            kind=ViolationKind.NESTED_COBEGIN,
        )
        assert synthesizer.can_fix(diag) is False
        assert synthesizer.synthesize("cobegin {", diag) is None

    def test_unknown_message(self):
        assert synthesize_fix("float f;", "Type 'float' is not supported", Range.of(0, 0, 0, 8)) is None
        assert synthesize_fix("x", "something else", Range.of(0, 0, 0, 1)) is None

    def test_kind_recovered_from_message(self):
        diag = Diagnostic(message=STRING_MSG, range=Range.of(0, 0, 0, 9), severity=Severity.ERROR)
        synthesizer = QuickFixSynthesizer(8)

        assert synthesizer.can_fix(diag) is True
        assert synthesizer.synthesize("string s;", diag).edits[0].new_text == "string[8] s;"

    def test_fix_keeps_its_diagnostic(self):
        text = "string s;"
        diag = diagnostic_for(text, ViolationKind.STRING_WITHOUT_LENGTH)
        fix = QuickFixSynthesizer().synthesize(text, diag)

        assert fix.diagnostic == diag
