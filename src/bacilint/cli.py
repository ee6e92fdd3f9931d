"""Command-line interface for bacilint."""

import argparse
import json
import sys

from loguru import logger

from . import __version__
from .analyzer import StructuralAnalyzer
from .diagnostics import DiagnosticGenerator
from .errors import BacilintError, SourceFileError
from .formatter import Formatter
from .models import Diagnostic, FormatOptions, QuickFix, Severity
from .quickfix import QuickFixSynthesizer
from .scanner import Scanner
from .settings_store import SettingsStore
from .utils import apply_edits


def read_source(path: str) -> str:
    """Read a source file, keeping its line endings."""
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SourceFileError(path, str(e)) from e


def write_source(path: str, text: str) -> None:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise SourceFileError(path, str(e)) from e


def diagnose_source(text: str) -> list[Diagnostic]:
    result = StructuralAnalyzer().analyze(text)
    return DiagnosticGenerator().diagnose(text, result)


def format_diagnostic(path: str, diag: Diagnostic) -> str:
    """Format a diagnostic compiler-style, with 1-based line numbers."""
    return f"{path}:{diag.line + 1}: {diag.severity.value}: {diag.message}"


def cmd_check(args: argparse.Namespace) -> int:
    """Report diagnostics for one or more files."""
    try:
        results: dict[str, list[Diagnostic]] = {}
        for path in args.files:
            results[path] = diagnose_source(read_source(path))

        if args.json:
            output = {path: [d.to_dict() for d in diags] for path, diags in results.items()}
            print(json.dumps(output, indent=2))
        else:
            for path, diags in results.items():
                for diag in diags:
                    print(format_diagnostic(path, diag))
            total = sum(len(d) for d in results.values())
            errors = sum(
                1 for diags in results.values() for d in diags if d.severity == Severity.ERROR
            )
            print(f"{total} problem(s) ({errors} error(s), {total - errors} warning(s))")

        has_errors = any(
            d.severity == Severity.ERROR for diags in results.values() for d in diags
        )
        return 2 if has_errors else 0

    except BacilintError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_tokens(args: argparse.Namespace) -> int:
    """Print the token stream of a file."""
    try:
        tokens = Scanner().scan(read_source(args.file))
        if args.json:
            print(json.dumps([t.to_dict() for t in tokens], indent=2))
        else:
            for token in tokens:
                print(f"{token.line + 1}:{token.column + 1}\t{token.kind.value}\t{token.text}")
        return 0

    except BacilintError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def next_fix(text: str, synthesizer: QuickFixSynthesizer, include_all: bool) -> QuickFix | None:
    """First applicable fix for the current text, in diagnostic order."""
    for diag in diagnose_source(text):
        fix = synthesizer.synthesize(text, diag)
        if fix is not None and (fix.is_preferred or include_all):
            return fix
    return None


def cmd_fix(args: argparse.Namespace) -> int:
    """Apply quick fixes one at a time, re-analyzing after each."""
    try:
        settings = SettingsStore().load_or_default()
        length = (
            args.string_length if args.string_length is not None
            else settings.default_string_length
        )
        synthesizer = QuickFixSynthesizer(length)

        text = read_source(args.file)
        applied: list[QuickFix] = []
        # Each fix removes its diagnostic, so this bounds the loop
        max_rounds = len(diagnose_source(text)) + 1
        for _ in range(max_rounds):
            fix = next_fix(text, synthesizer, args.all)
            if fix is None:
                break
            new_text = apply_edits(text, fix.edits)
            if new_text == text:
                break
            applied.append(fix)
            text = new_text

        if args.write:
            if applied:
                write_source(args.file, text)
            for fix in applied:
                print(f"Applied: {fix.title}")
            print(f"{len(applied)} fix(es) applied to {args.file}")
        else:
            sys.stdout.write(text)
        return 0

    except BacilintError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_format(args: argparse.Namespace) -> int:
    """Reformat a file."""
    try:
        settings = SettingsStore().load_or_default()
        options = FormatOptions(
            space_around_operators=(
                False if args.no_space_around_operators
                else settings.format.space_around_operators
            ),
            indent_size=(
                args.indent_size if args.indent_size is not None
                else settings.format.indent_size
            ),
        )
        options.validate()

        text = read_source(args.file)
        formatted = Formatter(options).format_text(text)

        if args.check:
            if formatted != text:
                print(f"Would reformat {args.file}")
                return 2
            return 0
        if args.write:
            if formatted != text:
                write_source(args.file, formatted)
                print(f"Reformatted {args.file}")
            return 0
        sys.stdout.write(formatted)
        return 0

    except BacilintError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_settings_init(args: argparse.Namespace) -> int:
    try:
        store = SettingsStore()
        store.init(force=args.force)
        print(f"Initialized settings at {store.config_path}")
        return 0

    except BacilintError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_settings_show(args: argparse.Namespace) -> int:
    try:
        settings = SettingsStore().load_or_default()
        if args.json:
            print(json.dumps(settings.to_dict(), indent=2))
        else:
            for key, value in settings.to_dict().items():
                print(f"{key} = {json.dumps(value)}")
        return 0

    except BacilintError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_settings_set(args: argparse.Namespace) -> int:
    try:
        try:
            value = json.loads(args.value)
        except json.JSONDecodeError:
            value = args.value
        settings = SettingsStore().update({args.key: value})
        print(f"{args.key} = {json.dumps(settings.to_dict()[args.key])}")
        return 0

    except BacilintError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        print("Starting bacilint API server...")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "bacilint.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Open documents live in process memory
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def positive_int(value: str) -> int:
    """argparse type for options that must be a positive integer."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {number}")
    return number


def configure_logging(verbose: bool) -> None:
    """Send warnings (or everything, with --verbose) to stderr."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bacilint",
        description="Check, fix and format BACI C-- source files.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log analysis details to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # check
    check_parser = subparsers.add_parser("check", help="Report diagnostics")
    check_parser.add_argument("files", nargs="+", help="Source files to check")
    check_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # tokens
    tokens_parser = subparsers.add_parser("tokens", help="Print the token stream of a file")
    tokens_parser.add_argument("file", help="Source file")
    tokens_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # fix
    fix_parser = subparsers.add_parser("fix", help="Apply quick fixes")
    fix_parser.add_argument("file", help="Source file")
    fix_parser.add_argument(
        "--write", "-w", action="store_true",
        help="Rewrite the file in place (default: print the result)"
    )
    fix_parser.add_argument(
        "--all", "-a", action="store_true",
        help="Also apply fixes that are not preferred (e.g. moving main)"
    )
    fix_parser.add_argument(
        "--string-length", type=positive_int,
        help="Length for undeclared string lengths (default: defaultStringLength setting)"
    )

    # format
    format_parser = subparsers.add_parser("format", help="Reformat a file")
    format_parser.add_argument("file", help="Source file")
    mode = format_parser.add_mutually_exclusive_group()
    mode.add_argument("--write", "-w", action="store_true", help="Rewrite the file in place")
    mode.add_argument(
        "--check", action="store_true",
        help="Exit with code 2 if the file would be reformatted"
    )
    format_parser.add_argument(
        "--indent-size", type=int, help="Spaces per indent level (default: format.indentSize)"
    )
    format_parser.add_argument(
        "--no-space-around-operators", action="store_true",
        help="Don't insert spaces around operators"
    )

    # settings (subcommand group)
    settings_parser = subparsers.add_parser("settings", help="Manage settings")
    settings_subparsers = settings_parser.add_subparsers(dest="settings_command")

    settings_init_parser = settings_subparsers.add_parser("init", help="Write default settings")
    settings_init_parser.add_argument(
        "--force", "-f", action="store_true", help="Overwrite existing settings"
    )

    settings_show_parser = settings_subparsers.add_parser("show", help="Show settings")
    settings_show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    settings_set_parser = settings_subparsers.add_parser("set", help="Change one setting")
    settings_set_parser.add_argument(
        "key", help="defaultStringLength, format.spaceAroundOperators or format.indentSize"
    )
    settings_set_parser.add_argument("value", help="New value (JSON literal)")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()
    configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    # Handle settings subcommands
    if args.command == "settings":
        if not getattr(args, "settings_command", None):
            parser.parse_args(["settings", "--help"])
            return 0
        if args.settings_command == "init":
            return cmd_settings_init(args)
        elif args.settings_command == "show":
            return cmd_settings_show(args)
        elif args.settings_command == "set":
            return cmd_settings_set(args)

    commands = {
        "check": cmd_check,
        "tokens": cmd_tokens,
        "fix": cmd_fix,
        "format": cmd_format,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
