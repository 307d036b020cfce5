#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from psmb_errors import MergeOutcome


class SectionKind(Enum):
    ENUM = "enum"
    CLASS = "class"
    VARIABLE = "variable"
    FUNCTION = "function"
    ENTRY_POINT = "entry point"
    ALIAS = "alias"
    FORMAT = "format view"


@dataclass
class SectionEntry:
    key: str  # as first written
    value: Any
    filename: Optional[str] = None


class Section:
    """
    Insertion-ordered map with case-insensitive keys.

    Keys are normalized with str.casefold(); the first spelling of a key is
    kept for display.
    """

    def __init__(self, kind: SectionKind) -> None:
        self.kind = kind
        self._entries: Dict[str, SectionEntry] = {}

    def __contains__(self, key: str) -> bool:
        return key.casefold() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SectionEntry]:
        return iter(self._entries.values())

    def get(self, key: str) -> Optional[SectionEntry]:
        return self._entries.get(key.casefold())

    def put(self, key: str, value: Any, filename: Optional[str] = None) -> None:
        self._entries[key.casefold()] = SectionEntry(key, value, filename)

    def keys(self) -> List[str]:
        return [entry.key for entry in self._entries.values()]

    def values(self) -> List[Any]:
        return [entry.value for entry in self._entries.values()]


class StatementRegistry:
    """
    One Section per statement category, created on first use.

    Re-declaring a key with a textually identical value is an omission (the
    duplicate is dropped); re-declaring it with a different value is a
    collision.
    """

    def __init__(self) -> None:
        self.sections: Dict[SectionKind, Section] = {}

    def section(self, kind: SectionKind) -> Section:
        """Return the section for `kind`; an empty, unregistered one if it was never used."""
        return self.sections.get(kind) or Section(kind)

    def has(self, kind: SectionKind) -> bool:
        return kind in self.sections and len(self.sections[kind]) > 0

    def add(
            self,
            kind: SectionKind,
            key: str,
            value: Any,
            filename: Optional[str] = None,
            exclusive_with: Tuple[SectionKind, ...] = (),
    ) -> MergeOutcome:
        """
        Register `value` under `key` in the `kind` section.

        A key already present in any of the `exclusive_with` sections is a
        collision whatever its value.
        """
        for other in exclusive_with:
            rival = self.section(other).get(key)
            if rival is not None:
                origin = f" in '{rival.filename}'" if rival.filename else ""
                return MergeOutcome.collision(
                    f"[REG-0020] conflicting {kind.value} '{key}'; already defined as {other.value}{origin}"
                )

        section = self.sections.get(kind)
        if section is None:
            section = Section(kind)
            self.sections[kind] = section

        existing = section.get(key)
        if existing is None:
            section.put(key, value, filename)
            return MergeOutcome.ok()

        origin = f" in '{existing.filename}'" if existing.filename else ""
        if existing.value == value:
            return MergeOutcome.omission(
                f"[REG-0010] duplicate {kind.value} '{key}' dropped; identical to the definition{origin}"
            )
        return MergeOutcome.collision(
            f"[REG-0020] conflicting {kind.value} '{key}'; a different definition already exists{origin}"
        )
