#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
import re
from dataclasses import dataclass
from typing import Optional


DIAGNOSTIC_CODE_FAMILIES = {
    "SCN": [
        "SCN-0010",  # unterminated string literal
        "SCN-0020",  # unterminated here-string
        "SCN-0030",  # unterminated block comment
        "SCN-0040",  # unterminated braced variable
    ],
    "CLS": [
        "CLS-0010",
        "CLS-0020",
        "CLS-0021",
        "CLS-0030",
        "CLS-0040",
        "CLS-0041",
        "CLS-0050",
        "CLS-0060",
        "CLS-0070",
    ],
    "REQ": [
        "REQ-0010",
        "REQ-0020",
        "REQ-0030",
        "REQ-0031",
        "REQ-0032",
        "REQ-0033",
        "REQ-0040",
    ],
    "IMP": [
        "IMP-0010",
        "IMP-0020",
    ],
    "REG": [
        "REG-0010",
        "REG-0020",
    ],
    "TYP": [
        "TYP-0010",
    ],
    "ENT": [
        "ENT-0010",
        "ENT-0011",
        "ENT-0020",
    ],
    "FMT": [
        "FMT-0010",
        "FMT-0020",
    ],
    "DRV": [
        "DRV-0010",
        "DRV-0020",
        "DRV-0030",
        "DRV-0040",
    ],
}

EXCERPT_LIMIT = 64

_WS_RE = re.compile(r"\s+")


def excerpt(text: Optional[str], limit: int = EXCERPT_LIMIT) -> Optional[str]:
    """Collapse whitespace runs and cap the result at `limit` visible characters."""
    if text is None:
        return None
    collapsed = _WS_RE.sub(" ", text).strip()
    if len(collapsed) > limit:
        return collapsed[: limit - 3] + "..."
    return collapsed


@dataclass
class Diagnostic:
    kind: str  # "error" or "warning"
    message: str
    filename: Optional[str] = None

    line: Optional[int] = None
    column: Optional[int] = None

    # Already truncated offending text, if any
    excerpt: Optional[str] = None

    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc += f"{os.path.abspath(str(self.filename))}"
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        if loc:
            loc += ": "
        near = f" (near '{self.excerpt}')" if self.excerpt else ""
        return f"{loc}{self.kind}: {self.message}{near}"


def make_diagnostic(
        kind: str,
        message: str,
        *,
        filename: Optional[str],
        line: Optional[int] = None,
        column: Optional[int] = None,
        text: Optional[str] = None,
) -> Diagnostic:
    return Diagnostic(
        kind=kind,
        message=message,
        filename=filename,
        line=line,
        column=column,
        excerpt=excerpt(text),
    )
