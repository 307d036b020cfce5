#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import heapq
from typing import Dict, List, Sequence, Set, Tuple

from psmb_statements import ClassStatement, EnumStatement


class TypeDefinitionError(ValueError):
    """Raised when a type definition cannot be canonicalized."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _parse_enum_value(text: str) -> int:
    text = text.strip()
    try:
        return int(text, 0)
    except ValueError:
        # int(..., 0) rejects leading zeros ("010")
        return int(text, 10)


def enum_member_values(stmt: EnumStatement) -> List[Tuple[str, int]]:
    """
    Assign an explicit integer to every member.

    An explicit value resets the running counter; an omitted value continues
    from the previous value + 1, starting at 0.
    """
    values: List[Tuple[str, int]] = []
    next_value = 0
    for member in stmt.members:
        if member.value is not None:
            try:
                next_value = _parse_enum_value(member.value)
            except ValueError:
                raise TypeDefinitionError(
                    f"[TYP-0010] enum '{stmt.name}' member '{member.name}' has non-integer value '{member.value}'"
                ) from None
        values.append((member.name, next_value))
        next_value += 1
    return values


def canonical_enum_text(stmt: EnumStatement) -> str:
    """
    Render an enum with an explicit, aligned value on every member.

    This text is what duplicate/collision checks compare, so two files that
    spell the same enum differently (implicit vs. explicit values) agree.
    """
    lines = list(stmt.attributes)
    header = f"enum {stmt.name}"
    if stmt.underlying_type:
        header += f" : {stmt.underlying_type}"
    lines.append(header + " {")
    values = enum_member_values(stmt)
    width = max((len(name) for name, _ in values), default=0)
    for name, value in values:
        lines.append(f"    {name:<{width}} = {value}")
    lines.append("}")
    return "\n".join(lines)


def base_type_key(name: str) -> str:
    """`System.Collections.Generic.List[string]` -> `list`"""
    name = name.strip().split("[", 1)[0]
    return name.rsplit(".", 1)[-1].casefold()


def order_classes(classes: Sequence[ClassStatement]) -> List[ClassStatement]:
    """
    Order classes so that every locally-defined base type precedes its subclasses.

    Base types not defined locally are assumed to be available already and are
    ignored. Classes caught in a dependency cycle are appended afterwards in
    their original input order.
    """
    position: Dict[str, int] = {}
    for i, cls in enumerate(classes):
        position.setdefault(cls.name.casefold(), i)

    # deps[i]: local base classes of classes[i]; dependents[j]: classes deriving from classes[j]
    deps: Dict[int, Set[int]] = {}
    dependents: Dict[int, Set[int]] = {i: set() for i in range(len(classes))}
    for i, cls in enumerate(classes):
        local = {position[key] for key in map(base_type_key, cls.base_types) if key in position}
        deps[i] = local
        for j in local:
            dependents[j].add(i)

    in_degree = {i: len(deps[i]) for i in deps}
    ready = [i for i, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    order: List[int] = []

    while ready:
        i = heapq.heappop(ready)
        order.append(i)
        for dependent in dependents[i]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(order) != len(classes):
        emitted = set(order)
        order.extend(i for i in range(len(classes)) if i not in emitted)

    return [classes[i] for i in order]
