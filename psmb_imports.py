#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from typing import Dict, List

from psmb_errors import MergeOutcome
from psmb_names import canonical_namespace
from psmb_statements import ImportKind, UsingStatement


def normalize_assembly(name: str) -> str:
    """
    Sort the `key=value` detail clauses of an assembly reference by key, so
    equivalent references written in a different clause order compare equal.

    "Foo, Version = 1.0, Culture=neutral" -> "Foo, Culture=neutral, Version=1.0"
    """
    head, *rest = [part.strip() for part in name.split(",")]
    clauses = []
    for clause in rest:
        if not clause:
            continue
        if "=" in clause:
            key, value = clause.split("=", 1)
            clause = f"{key.strip()}={value.strip()}"
        clauses.append(clause)
    clauses.sort(key=lambda clause: clause.split("=", 1)[0].strip().casefold())
    return ", ".join([head] + clauses)


class ImportSet:
    """Case-insensitive, insertion-ordered namespace and assembly sets."""

    def __init__(self) -> None:
        self.namespaces: Dict[str, str] = {}
        self.assemblies: Dict[str, str] = {}

    def is_empty(self) -> bool:
        return not self.namespaces and not self.assemblies

    def render(self) -> List[str]:
        lines = [f"using namespace {ns}" for ns in self.namespaces.values()]
        lines.extend(f"using assembly {asm}" for asm in self.assemblies.values())
        return lines


class ImportMerger:
    """
    Folds `using` directives into one ImportSet.

    Namespace and assembly imports are set-inserted (duplicates are silently
    absorbed). Module imports cannot be merged into a single script module
    and are always dropped with a warning.
    """

    def __init__(self) -> None:
        self.imports = ImportSet()

    def add(self, stmt: UsingStatement) -> MergeOutcome:
        if stmt.kind is ImportKind.NAMESPACE:
            display = canonical_namespace(stmt.name)
            self.imports.namespaces.setdefault(display.casefold(), display)
            return MergeOutcome.ok()

        if stmt.kind is ImportKind.ASSEMBLY:
            display = normalize_assembly(stmt.name)
            self.imports.assemblies.setdefault(display.casefold(), display)
            return MergeOutcome.ok()

        if stmt.kind is ImportKind.MODULE:
            return MergeOutcome.omission(
                f"[IMP-0010] 'using module {stmt.name}' is not supported in a merged module; "
                f"declare the dependency in the module manifest's RequiredModules instead"
            )

        return MergeOutcome.omission(f"[IMP-0020] unrecognized import directive '{stmt.text}'")
