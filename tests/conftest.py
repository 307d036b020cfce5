#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

import sys
from pathlib import Path
from textwrap import dedent

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from psmb_context import BuildContext, LogLevel


@pytest.fixture
def repo_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    root = tmp_path / "src"
    root.mkdir()
    return root


@pytest.fixture
def write_ps1(source_root: Path):
    """Write a script file below the source root.

    Usage:
        def test_something(write_ps1):
            write_ps1("Public/Get-Foo.ps1", '''
                param([string] $Name)
                "Hello $Name"
            ''')
    """

    def _write(rel_path: str, content: str) -> Path:
        file_path = source_root.joinpath(*rel_path.split("/"))
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(dedent(content).lstrip("\n"), encoding="utf-8")
        return file_path

    return _write


@pytest.fixture
def quiet_context() -> BuildContext:
    return BuildContext(log_level=LogLevel.SILENT)


def format_view_xml(*view_names: str) -> str:
    """A minimal .format.ps1xml document declaring the given views."""
    views = "\n".join(
        f"""    <View>
      <Name>{name}</Name>
      <ViewSelectedBy><TypeName>{name}Type</TypeName></ViewSelectedBy>
      <TableControl/>
    </View>"""
        for name in view_names
    )
    return f"""<?xml version="1.0" encoding="utf-8"?>
<Configuration>
  <ViewDefinitions>
{views}
  </ViewDefinitions>
</Configuration>
"""


def has_error_code(diagnostics, code: str) -> bool:
    """Check if any diagnostic contains the given error code.

    Args:
        diagnostics: List of Diagnostic objects
        code: Error code string like "REG-0010" or "[REG-0010]"

    Returns:
        True if any diagnostic message contains the error code
    """
    if not code.startswith("["):
        code = f"[{code}]"
    return any(code in d.message for d in diagnostics)
