#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

DEFAULT_MAX_DEPTH = 16

SCRIPT_SUFFIX = ".ps1"
TEST_SCRIPT_SUFFIX = ".tests.ps1"
FORMAT_SUFFIX = ".format.ps1xml"


@dataclass
class SourceTree:
    """
    Source files of one module.

    - scripts: `*.ps1` files, except Pester tests (`*.Tests.ps1`)
    - formats: `*.format.ps1xml` view definitions

    Hidden files and directories (leading '.') are skipped. Files nested more
    than `max_depth` directories below `root` are ignored. Both lists are in a
    stable order: case-insensitive relative path, then exact relative path.
    """
    root: Path
    max_depth: int = DEFAULT_MAX_DEPTH
    scripts: List[Path] = field(default_factory=list)
    formats: List[Path] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def scan(self) -> "SourceTree":
        """
        Walk `root` and collect its source files.

        Raises FileNotFoundError if `root` is not a directory.
        """
        if not self.root.is_dir():
            raise FileNotFoundError(f"Source root '{self.root}' is not a directory")

        scripts: List[Path] = []
        formats: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            rel_dir = Path(dirpath).relative_to(self.root)
            depth = len(rel_dir.parts)
            if depth >= self.max_depth:
                dirnames[:] = []
            else:
                dirnames[:] = [d for d in dirnames if not d.startswith(".")]

            for name in filenames:
                if name.startswith("."):
                    continue
                lowered = name.casefold()
                if lowered.endswith(FORMAT_SUFFIX):
                    formats.append(rel_dir / name)
                elif lowered.endswith(SCRIPT_SUFFIX) and not lowered.endswith(TEST_SCRIPT_SUFFIX):
                    scripts.append(rel_dir / name)

        self.scripts = [self.root / p for p in sorted(scripts, key=_order_key)]
        self.formats = [self.root / p for p in sorted(formats, key=_order_key)]
        return self

    def relative(self, path: Path) -> Path:
        return Path(path).relative_to(self.root)


def _order_key(rel: Path):
    text = rel.as_posix()
    return text.casefold(), text
