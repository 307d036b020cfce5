#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import argparse
import os
from pathlib import Path
from typing import Dict, List

from psmb_context import BuildContext, LogLevel
from psmb_diagnostics import Diagnostic
from psmb_driver import ModuleBuildDriver
from psmb_errors import BuildError
from psmb_logger import log_diagnostic, log_error, log_info
from psmb_paths import DEFAULT_MAX_DEPTH
from psmb_scanner import Scanner, TokenKind


def _default_max_depth() -> int:
    value = os.getenv("PSMB_MAX_DEPTH")
    if not value:
        return DEFAULT_MAX_DEPTH
    try:
        return int(value)
    except ValueError:
        return DEFAULT_MAX_DEPTH


def _load_file_lines(path: str, cache: Dict[str, List[str]]) -> List[str]:
    if path not in cache:
        text = Path(path).read_text(encoding="utf-8-sig")
        cache[path] = text.splitlines()
    return cache[path]


def print_diagnostic_with_snippet(diag: Diagnostic, file_cache: Dict[str, List[str]], context: BuildContext = None) -> None:
    log_diagnostic(context, diag)

    if not diag.filename or diag.line is None:
        return

    try:
        lines = _load_file_lines(diag.filename, file_cache)
    except (OSError, UnicodeDecodeError):
        # Can't read file; fall back to header only
        return

    line_idx = diag.line - 1
    if not (0 <= line_idx < len(lines)):
        return

    src_line = lines[line_idx]

    width = max(5, len(str(diag.line)))
    log_error(context, f"{diag.line:>{width}} | " + src_line)

    if diag.column is None:
        return

    caret_prefix = " " * width + " | " + " " * (max(1, diag.column) - 1)
    log_error(context, caret_prefix + "^")


def build_context(args: argparse.Namespace) -> BuildContext:
    """Build a BuildContext from command-line arguments."""
    log_rich_format = getattr(args, 'log', False)

    # Convert verbosity count to LogLevel
    verbosity = getattr(args, 'verbosity', 0)
    if verbosity >= 3:
        log_level = LogLevel.DEBUG
    elif verbosity >= 1:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.WARNING

    context = BuildContext(log_rich_format=log_rich_format, log_level=log_level)
    for spec in getattr(args, 'known_alias', None) or []:
        name, _, target = spec.partition("=")
        context.known_aliases[name.strip()] = target.strip()
    return context


def _default_output(root: str) -> Path:
    name = Path(root).resolve().name or "module"
    return Path(f"{name}.psm1")


def cmd_build(args: argparse.Namespace) -> int:
    """Build a script module from a source tree."""
    context = build_context(args)
    output = Path(args.output) if args.output else _default_output(args.root)
    driver = ModuleBuildDriver(args.root, context=context, max_depth=args.max_depth)
    try:
        result = driver.build(output)
    except BuildError as e:
        print_diagnostic_with_snippet(e.diagnostic, {}, context)
        return 1
    log_info(context, f"Wrote {result.destination}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Ingest a source tree and report problems without writing anything."""
    context = build_context(args)
    driver = ModuleBuildDriver(args.root, context=context, max_depth=args.max_depth)
    try:
        result = driver.check()
    except BuildError as e:
        print_diagnostic_with_snippet(e.diagnostic, {}, context)
        return 1
    if args.print:
        print(result.text, end="")
    return 0


def cmd_tok(args: argparse.Namespace) -> int:
    """Dump scanner tokens of one script file."""
    context = build_context(args)
    path = Path(args.file)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        log_error(context, f"error: [DRV-0020] cannot read {path}: {e}")
        return 1

    try:
        tokens = Scanner(text.replace("\r\n", "\n"), filename=str(path)).tokenize()
    except BuildError as e:
        print_diagnostic_with_snippet(e.diagnostic, {}, context)
        return 1

    for tok in tokens:
        if not args.include_eof and tok.kind is TokenKind.EOF:
            continue
        # Format: file:line:col: KIND  'text'
        print(
            f"{path}:{tok.line}:{tok.column}:\t"
            f"{tok.kind.name:<12} {tok.text!r}"
        )
    return 0


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    """Add the source root and discovery arguments."""
    parser.add_argument(
        "--max-depth",
        type=int,
        default=_default_max_depth(),
        help=f"Ignore files nested deeper than this many directories (default: $PSMB_MAX_DEPTH or {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "--known-alias",
        action="append",
        default=[],
        metavar="NAME=TARGET",
        help="Declare an existing alias to check harvested aliases against (can be passed multiple times)",
    )
    parser.add_argument("root", help="Module source root directory")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="psmbc", description="PowerShell script module builder")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    parser.add_argument("-v", "--verbose",
                        action='count',
                        default=0,
                        dest='verbosity',
                        help="Increase verbosity: -v=INFO, -vvv=DEBUG")
    parser.add_argument("-l", "--log",
                        action='store_true',
                        default=False,
                        help="Enable rich log formatting (timestamps, levels)")

    ###########################
    # build command
    ###########################
    p_build = subparsers.add_parser("build", help="Build a script module")
    p_build.add_argument("--output", "-o", help="Output module path (default: <root name>.psm1)")
    _add_source_args(p_build)
    p_build.set_defaults(func=cmd_build)

    ###########################
    # check command
    ###########################
    p_check = subparsers.add_parser("check", help="Check a source tree without writing")
    p_check.add_argument("--print", "-p", action="store_true",
                         help="Print the rendered module to stdout")
    _add_source_args(p_check)
    p_check.set_defaults(func=cmd_check)

    ###########################
    # tok command
    ###########################
    p_tok = subparsers.add_parser("tok", help="Dump scanner tokens", aliases=["tokens"])
    p_tok.add_argument("--include-eof", "-I", action="store_true",
                       help="Include the EOF token in the output")
    p_tok.add_argument("file", help="Script file to tokenize")
    p_tok.set_defaults(func=cmd_tok)

    args = parser.parse_args(argv)

    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
