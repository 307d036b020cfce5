"""
Progress and diagnostic output for the module builder.

Everything goes to stderr so that `psmbc check --print` can write the
rendered module to stdout untouched.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import sys
import time
from typing import Optional, Tuple

from psmb_context import BuildContext, LogLevel
from psmb_diagnostics import Diagnostic


def log(context: Optional[BuildContext], log_level: LogLevel, message: str) -> None:
    """
    Print `message` to stderr when `context` admits `log_level`.

    Without a context the builder defaults apply (warnings and errors only).
    With `log_rich_format` set, each line gets a timestamp and the level name.
    """
    context = context or BuildContext.default()
    if context.log_level < log_level:
        return
    if context.log_rich_format:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        message = f"{timestamp} [{log_level.name}] {message}"
    print(message, file=sys.stderr)


def log_error(context: Optional[BuildContext], message: str) -> None:
    log(context, LogLevel.ERROR, message)


def log_warning(context: Optional[BuildContext], message: str) -> None:
    log(context, LogLevel.WARNING, message)


def log_info(context: Optional[BuildContext], message: str) -> None:
    log(context, LogLevel.INFO, message)


def log_debug(context: Optional[BuildContext], message: str) -> None:
    log(context, LogLevel.DEBUG, message)


def log_diagnostic(context: Optional[BuildContext], diag: Diagnostic) -> None:
    """Route a diagnostic to the level matching its kind."""
    level = LogLevel.WARNING if diag.kind == "warning" else LogLevel.ERROR
    log(context, level, diag.format())


def log_stage(
        context: Optional[BuildContext],
        stage: str,
        source: Optional[str] = None,
        position: Optional[Tuple[int, int]] = None,
) -> None:
    """
    Log the start of a build stage at INFO level.

    `position` is a 1-based `(index, total)` pair for stages that repeat per
    file, e.g. `Ingesting 'a.ps1' (3/12)`.
    """
    text = f"{stage} '{source}'" if source else f"{stage}..."
    if position is not None:
        text += f" ({position[0]}/{position[1]})"
    log(context, LogLevel.INFO, text)
