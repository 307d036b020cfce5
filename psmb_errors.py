#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from psmb_diagnostics import Diagnostic, make_diagnostic


class ErrorKind(Enum):
    OMISSION = "omission"      # recognized but dropped; the build continues
    COLLISION = "collision"    # differing definitions for one identity; fatal
    STRUCTURAL = "structural"  # malformed input; fatal

    @property
    def is_fatal(self) -> bool:
        return self is not ErrorKind.OMISSION


@dataclass(frozen=True)
class MergeOutcome:
    """
    Result of folding one statement into the build state.

    kind is None when the statement was accepted.
    """
    kind: Optional[ErrorKind] = None
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.kind is None

    @staticmethod
    def ok() -> "MergeOutcome":
        return _ACCEPTED

    @staticmethod
    def omission(message: str) -> "MergeOutcome":
        return MergeOutcome(ErrorKind.OMISSION, message)

    @staticmethod
    def collision(message: str) -> "MergeOutcome":
        return MergeOutcome(ErrorKind.COLLISION, message)

    @staticmethod
    def structural(message: str) -> "MergeOutcome":
        return MergeOutcome(ErrorKind.STRUCTURAL, message)


_ACCEPTED = MergeOutcome()


class BuildError(Exception):
    """
    A fatal build failure (collision or structural error).

    Carries the location-tagged diagnostic that terminates the run.
    """

    def __init__(self, kind: ErrorKind, diagnostic: Diagnostic):
        super().__init__(diagnostic.message)
        self.kind = kind
        self.diagnostic = diagnostic

    @property
    def message(self) -> str:
        return self.diagnostic.message

    def format(self) -> str:
        return self.diagnostic.format()


def structural_error(
        message: str,
        *,
        filename: Optional[str],
        line: Optional[int] = None,
        column: Optional[int] = None,
        text: Optional[str] = None,
) -> BuildError:
    return BuildError(
        ErrorKind.STRUCTURAL,
        make_diagnostic("error", message, filename=filename, line=line, column=column, text=text),
    )
