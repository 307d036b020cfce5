#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from psmb_assembler import ModuleAssembler
from psmb_context import BuildContext
from psmb_diagnostics import Diagnostic
from psmb_errors import structural_error
from psmb_logger import log_debug, log_info, log_stage
from psmb_paths import DEFAULT_MAX_DEPTH, SourceTree


@dataclass
class BuildResult:
    text: str
    destination: Optional[Path] = None
    warnings: List[Diagnostic] = field(default_factory=list)


class ModuleBuildDriver:
    """
    Module build pipeline:
      - discover the source tree
      - read every file (UTF-8, BOM accepted)
      - feed scripts, then format resources, to one ModuleAssembler
      - render and save the artifact

    Entry points:
      - assemble(destination): ingest everything; nothing is written.
      - build(destination): assemble, then write the artifact.

    Fatal problems raise BuildError; nothing is written in that case.
    """

    def __init__(
        self,
        root: str | Path,
        context: BuildContext | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.root = Path(root)
        self.context = context or BuildContext.default()
        self.max_depth = max_depth

    # --- Public API ---

    def discover(self) -> SourceTree:
        log_stage(self.context, "Scanning source tree", str(self.root))
        try:
            tree = SourceTree(self.root, max_depth=self.max_depth).scan()
        except FileNotFoundError as e:
            raise structural_error(f"[DRV-0010] {e}", filename=None) from None
        log_debug(
            self.context,
            f"Found {len(tree.scripts)} script(s) and {len(tree.formats)} format resource(s)",
        )
        return tree

    def read_source(self, path: Path) -> str:
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise structural_error(f"[DRV-0020] cannot read '{path}': {e}", filename=str(path)) from None
        return text.replace("\r\n", "\n")

    def assemble(self, destination: str | Path | None = None) -> ModuleAssembler:
        """
        Ingest the whole source tree into a fresh ModuleAssembler.

        Format resources are registered with paths relative to the directory
        of `destination` (or to the source root when there is none).
        """
        tree = self.discover()
        assembler = ModuleAssembler(self.context)

        total = len(tree.scripts)
        for n, path in enumerate(tree.scripts, 1):
            assembler.add_source_file(self.read_source(path), str(path), (n, total))

        base = Path(destination).resolve().parent if destination is not None else self.root.resolve()
        for path in tree.formats:
            resource_path = Path(os.path.relpath(path.resolve(), base)).as_posix()
            assembler.add_format_resource(self.read_source(path), str(path), resource_path)

        return assembler

    def build(self, destination: str | Path) -> BuildResult:
        destination = Path(destination)
        if not destination.resolve().parent.is_dir():
            raise structural_error(
                f"[DRV-0040] destination directory '{destination.parent}' does not exist",
                filename=str(destination),
            )

        assembler = self.assemble(destination)

        log_stage(self.context, "Writing", str(destination))
        try:
            text = assembler.save(str(destination))
        except OSError as e:
            raise structural_error(f"[DRV-0030] cannot write '{destination}': {e}", filename=str(destination)) from None

        log_info(self.context, f"Built '{destination}' with {len(assembler.warnings)} warning(s)")
        return BuildResult(text, destination, list(assembler.warnings))

    def check(self) -> BuildResult:
        """Ingest and render without writing anything."""
        assembler = self.assemble()
        return BuildResult(assembler.render(), None, list(assembler.warnings))
