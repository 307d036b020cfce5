#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
import stat
import tempfile
from typing import Dict, List, Optional, Tuple

from psmb_classifier import StatementClassifier, find_param_block
from psmb_context import BuildContext
from psmb_diagnostics import Diagnostic, make_diagnostic
from psmb_emitter import ModuleEmitter
from psmb_entrypoint import EntryPointExtractor
from psmb_errors import BuildError, MergeOutcome, structural_error
from psmb_formats import read_view_names
from psmb_imports import ImportMerger
from psmb_logger import log_debug, log_diagnostic, log_stage
from psmb_registry import SectionKind, StatementRegistry
from psmb_requirements import RequirementMerger
from psmb_scanner import Scanner
from psmb_statements import (
    ClassStatement, EntryPoint, EnumStatement, FunctionStatement, RequiresStatement, Statement,
    UsingStatement, VariableStatement,
)
from psmb_types import TypeDefinitionError, canonical_enum_text, order_classes

PLACEHOLDER = "[Diagnostics.CodeAnalysis.SuppressMessageAttribute('PSUseDeclaredVarsMoreThanAssignments', '')] param()"


def entry_point_name(path: str) -> str:
    """`src/Public/Get-Foo.ps1` -> `Get-Foo`"""
    return os.path.splitext(os.path.basename(path))[0]


def _artifact_mode(path: str) -> int:
    # mkstemp creates 0600 files; keep the previous artifact's mode, else honour the umask.
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


class ModuleAssembler:
    """
    Owns the build state of one module build and renders the artifact.

    Statements are folded in arrival order. Omissions are logged as warnings
    and collected in `warnings`; collisions and structural errors raise
    BuildError and end the build.
    """

    def __init__(self, context: BuildContext | None = None):
        self.context = context or BuildContext.default()
        self.requirements = RequirementMerger()
        self.imports = ImportMerger()
        self.registry = StatementRegistry()
        self.emitter = ModuleEmitter()
        self.warnings: List[Diagnostic] = []
        # Accepted class statements by casefolded name; registry values are their text.
        self._classes: Dict[str, ClassStatement] = {}

    # --- Outcome handling ---

    def _apply(
            self,
            outcome: MergeOutcome,
            filename: Optional[str],
            line: Optional[int] = None,
            column: Optional[int] = None,
            text: Optional[str] = None,
    ) -> bool:
        """Return True if the statement was accepted; log omissions; raise on fatal outcomes."""
        if outcome.accepted:
            return True
        if outcome.kind.is_fatal:
            raise BuildError(
                outcome.kind,
                make_diagnostic("error", outcome.message, filename=filename, line=line, column=column, text=text),
            )
        diag = make_diagnostic("warning", outcome.message, filename=filename, line=line, column=column, text=text)
        self._warn(diag)
        return False

    def _apply_statement(self, outcome: MergeOutcome, stmt: Statement) -> bool:
        line = stmt.span.start_line if stmt.span else None
        column = stmt.span.start_column if stmt.span else None
        return self._apply(outcome, stmt.filename, line, column, stmt.text)

    def _warn(self, diag: Diagnostic) -> None:
        self.warnings.append(diag)
        log_diagnostic(self.context, diag)

    # --- Ingestion ---

    def add_requirement(self, stmt: RequiresStatement) -> bool:
        return self._apply_statement(self.requirements.add(stmt), stmt)

    def add_import(self, stmt: UsingStatement) -> bool:
        return self._apply_statement(self.imports.add(stmt), stmt)

    def add_statement(self, stmt: Statement) -> bool:
        """Route one classified statement to its merger or registry section."""
        if isinstance(stmt, RequiresStatement):
            return self.add_requirement(stmt)
        if isinstance(stmt, UsingStatement):
            return self.add_import(stmt)
        if isinstance(stmt, EnumStatement):
            try:
                text = canonical_enum_text(stmt)
            except TypeDefinitionError as e:
                line = stmt.span.start_line if stmt.span else None
                raise structural_error(e.message, filename=stmt.filename, line=line, text=stmt.text) from None
            return self._apply_statement(self.registry.add(SectionKind.ENUM, stmt.name, text, stmt.filename), stmt)
        if isinstance(stmt, ClassStatement):
            accepted = self._apply_statement(
                self.registry.add(SectionKind.CLASS, stmt.name, stmt.text, stmt.filename), stmt
            )
            if accepted:
                self._classes[stmt.name.casefold()] = stmt
            return accepted
        if isinstance(stmt, VariableStatement):
            return self._apply_statement(
                self.registry.add(SectionKind.VARIABLE, stmt.name, stmt.render(), stmt.filename), stmt
            )
        if isinstance(stmt, FunctionStatement):
            return self._apply_statement(
                self.registry.add(
                    SectionKind.FUNCTION, stmt.name, stmt.text, stmt.filename,
                    exclusive_with=(SectionKind.ENTRY_POINT,),
                ), stmt
            )
        raise structural_error(
            f"[CLS-0010] unsupported statement record {type(stmt).__name__}",
            filename=getattr(stmt, "filename", None),
        )

    def add_entry_point(self, entry: EntryPoint) -> bool:
        """Register an extracted entry point together with its directives and aliases."""
        for directive in entry.directives:
            self.add_statement(directive)

        line = entry.span.start_line if entry.span else None
        accepted = self._apply(
            self.registry.add(
                SectionKind.ENTRY_POINT, entry.name, entry.render(), entry.filename,
                exclusive_with=(SectionKind.FUNCTION,),
            ),
            entry.filename,
            line,
            text=entry.body,
        )
        for alias in entry.aliases:
            self._apply(
                self.registry.add(SectionKind.ALIAS, alias.name, entry.name, entry.filename),
                entry.filename,
                alias.line,
                alias.column,
                alias.name,
            )
        return accepted

    def add_entry_point_source(self, source: str, filename: str, tokens=None) -> bool:
        extractor = EntryPointExtractor(
            source, entry_point_name(filename), tokens=tokens, filename=filename, context=self.context
        )
        entry = extractor.extract()
        for diag in extractor.warnings:
            self._warn(diag)
        return self.add_entry_point(entry)

    def add_format_resource(self, text: str, filename: str, resource_path: str) -> List[str]:
        """
        Register every view of a format resource under `resource_path` (the
        path the artifact loads it from, relative to the artifact).
        """
        views = read_view_names(text, filename)
        for view in views:
            self._apply(self.registry.add(SectionKind.FORMAT, view, resource_path, filename), filename, text=view)
        log_debug(self.context, f"Registered {len(views)} view(s) from '{filename}'")
        return views

    def add_source_file(self, source: str, filename: str, position: Optional[Tuple[int, int]] = None) -> None:
        """Scan one script file and route it as an entry point or as plain statements."""
        log_stage(self.context, "Ingesting", filename, position)
        tokens = Scanner(source, filename=filename).tokenize()
        if find_param_block(tokens) is not None:
            log_debug(self.context, f"'{filename}' is an entry point")
            self.add_entry_point_source(source, filename, tokens)
            return

        statements = StatementClassifier(tokens, source, filename).classify()
        log_debug(self.context, f"'{filename}' has {len(statements)} statement(s)")
        for stmt in statements:
            self.add_statement(stmt)

    # --- Derived export lists ---

    def exported_functions(self) -> List[str]:
        return self.registry.section(SectionKind.ENTRY_POINT).keys()

    def exported_aliases(self) -> List[str]:
        return [alias for alias, _ in self._aliases_by_target()]

    def exported_variables(self) -> List[str]:
        return self.registry.section(SectionKind.VARIABLE).keys()

    def type_names(self) -> List[str]:
        return self.registry.section(SectionKind.ENUM).keys() + [cls.name for cls in self._ordered_classes()]

    def _ordered_classes(self) -> List[ClassStatement]:
        classes = [self._classes[key.casefold()] for key in self.registry.section(SectionKind.CLASS).keys()]
        return order_classes(classes)

    def _aliases_by_target(self) -> List[Tuple[str, str]]:
        targets = self.registry.section(SectionKind.ENTRY_POINT).keys()
        rank = {name.casefold(): i for i, name in enumerate(targets)}
        entries = list(self.registry.section(SectionKind.ALIAS))
        entries.sort(key=lambda e: rank.get(e.value.casefold(), len(rank)))
        return [(e.key, e.value) for e in entries]

    # --- Rendering ---

    def render(self) -> str:
        """Render the artifact text; regions appear only when they have content."""
        log_stage(self.context, "Rendering module")
        em = self.emitter
        reg = self.registry
        regions: List[str] = []

        req = self.requirements.requirement
        if not req.is_empty():
            regions.append(em.region("Requirements", req.render()))

        if not self.imports.imports.is_empty():
            regions.append(em.region("Imports", self.imports.imports.render()))

        if reg.has(SectionKind.VARIABLE):
            regions.append(em.region("Placeholder", [PLACEHOLDER]))

        if reg.has(SectionKind.ENUM):
            regions.append(em.region("Enum", reg.section(SectionKind.ENUM).values(), "\n\n"))

        if reg.has(SectionKind.CLASS):
            regions.append(em.region("Class", [cls.text for cls in self._ordered_classes()], "\n\n"))

        if reg.has(SectionKind.VARIABLE):
            regions.append(em.region("Variable", reg.section(SectionKind.VARIABLE).values()))

        if reg.has(SectionKind.FUNCTION):
            regions.append(em.region("Function", reg.section(SectionKind.FUNCTION).values(), "\n\n"))

        if reg.has(SectionKind.ENTRY_POINT):
            regions.append(em.region("EntryPoint", reg.section(SectionKind.ENTRY_POINT).values(), "\n\n"))

        if reg.has(SectionKind.ALIAS):
            regions.append(em.region(
                "Alias", [em.emit_alias(alias, target) for alias, target in self._aliases_by_target()]
            ))

        if reg.has(SectionKind.FORMAT):
            by_path: Dict[str, List[str]] = {}
            for entry in reg.section(SectionKind.FORMAT):
                by_path.setdefault(entry.value, []).append(entry.key)
            regions.append(em.region(
                "Format", [em.emit_format_registration(path, views) for path, views in by_path.items()], "\n\n"
            ))

        regions.append(em.region("Export", [em.emit_export(
            self.exported_functions(), self.exported_aliases(), self.exported_variables()
        )]))

        types = self.type_names()
        if types:
            regions.append(em.region("TypeRegistry", [em.emit_type_registry(types)]))

        return em.join_regions(regions)

    def save(self, path: str) -> str:
        """
        Render the artifact and write it to `path`.

        The text goes to a temporary file next to `path` which then replaces
        `path` in one step; on failure any previous artifact stays intact.
        """
        text = self.render()
        directory = os.path.dirname(os.path.abspath(path))
        fd, temp_path = tempfile.mkstemp(prefix=".psmb-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            os.chmod(temp_path, _artifact_mode(path))
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
        log_debug(self.context, f"Wrote {len(text)} character(s) to '{path}'")
        return text
