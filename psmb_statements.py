#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


# ==========================
# Source statement records
# ==========================


@dataclass(frozen=True)
class Span:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass(frozen=True)
class Statement:
    filename: Optional[str] = field(default=None, compare=False, kw_only=True)
    span: Optional[Span] = field(default=None, repr=False, compare=False, kw_only=True)
    text: str = field(default="", repr=False, compare=False, kw_only=True)  # original source text


# --- requirements ---

@dataclass(frozen=True)
class ModuleSpec:
    """One `-Modules` entry of a #Requires directive."""
    name: str
    guid: Optional[str] = None
    min_version: Optional[str] = None
    max_version: Optional[str] = None
    exact_version: Optional[str] = None


@dataclass(frozen=True)
class RequiresStatement(Statement):
    version: Optional[str] = None
    editions: Tuple[str, ...] = ()
    modules: Tuple[ModuleSpec, ...] = ()
    run_as_admin: bool = False
    # Legacy `-Assembly` requirement; always rejected
    assemblies: Tuple[str, ...] = ()


# --- imports ---

class ImportKind(Enum):
    NAMESPACE = "namespace"
    ASSEMBLY = "assembly"
    MODULE = "module"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class UsingStatement(Statement):
    kind: ImportKind
    name: str


# --- types ---

@dataclass(frozen=True)
class EnumMember:
    name: str
    value: Optional[str] = None  # literal text of an explicit value


@dataclass(frozen=True)
class EnumStatement(Statement):
    name: str
    members: Tuple[EnumMember, ...]
    attributes: Tuple[str, ...] = ()  # e.g. "[Flags()]"
    underlying_type: Optional[str] = None


@dataclass(frozen=True)
class ClassStatement(Statement):
    name: str
    base_types: Tuple[str, ...] = ()


# --- variables and functions ---

@dataclass(frozen=True)
class VariableStatement(Statement):
    name: str  # bare name, without '$' or scope prefix
    target: str  # as written, e.g. "$script:Cache"
    expression: str
    type_constraint: Optional[str] = None  # e.g. "[int]"

    def render(self) -> str:
        prefix = self.type_constraint or ""
        return f"{prefix}{self.target} = {self.expression}"


@dataclass(frozen=True)
class FunctionStatement(Statement):
    name: str


SourceStatement = (
    RequiresStatement
    | UsingStatement
    | EnumStatement
    | ClassStatement
    | VariableStatement
    | FunctionStatement
)


# --- entry points ---

@dataclass(frozen=True)
class AliasDeclaration:
    name: str
    line: int
    column: int


@dataclass
class EntryPoint:
    """
    An exported script file, wrapped into a function named after the file.

    `directives` holds the #Requires / using statements stripped from the body;
    they are merged centrally instead of being repeated per entry point.
    """
    name: str
    body: str
    aliases: List[AliasDeclaration] = field(default_factory=list)
    directives: List[Statement] = field(default_factory=list)
    filename: Optional[str] = None
    span: Optional[Span] = None

    @property
    def alias_names(self) -> List[str]:
        return [alias.name for alias in self.aliases]

    def render(self) -> str:
        return f"function {self.name} {{\n{self.body}\n}}"
