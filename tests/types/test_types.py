#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from itertools import permutations

import pytest

from psmb_statements import ClassStatement, EnumMember, EnumStatement
from psmb_types import (
    TypeDefinitionError, base_type_key, canonical_enum_text, enum_member_values, order_classes,
)


def _names(classes):
    return [c.name for c in classes]


def test_enum_values_continue_from_explicit_value():
    stmt = EnumStatement("Color", (
        EnumMember("Red"),
        EnumMember("Green", "5"),
        EnumMember("Blue"),
        EnumMember("Alpha", "0x10"),
        EnumMember("Beta"),
        EnumMember("Low", "-2"),
        EnumMember("Lower"),
    ))

    assert enum_member_values(stmt) == [
        ("Red", 0), ("Green", 5), ("Blue", 6), ("Alpha", 16), ("Beta", 17), ("Low", -2), ("Lower", -1),
    ]


def test_canonical_enum_text_is_aligned():
    stmt = EnumStatement(
        "Access",
        (EnumMember("Read", "1"), EnumMember("Write", "2"), EnumMember("Execute")),
        attributes=("[Flags()]",),
        underlying_type="int",
    )

    assert canonical_enum_text(stmt) == (
        "[Flags()]\n"
        "enum Access : int {\n"
        "    Read    = 1\n"
        "    Write   = 2\n"
        "    Execute = 3\n"
        "}"
    )


def test_implicit_and_explicit_spellings_agree():
    implicit = EnumStatement("E", (EnumMember("A"), EnumMember("B")))
    explicit = EnumStatement("E", (EnumMember("A", "0"), EnumMember("B", "1")))

    assert canonical_enum_text(implicit) == canonical_enum_text(explicit)


def test_non_integer_enum_value_is_rejected():
    stmt = EnumStatement("E", (EnumMember("A", "[int]::MaxValue"),))

    with pytest.raises(TypeDefinitionError) as excinfo:
        canonical_enum_text(stmt)

    assert "[TYP-0010]" in excinfo.value.message


def test_base_type_key_ignores_namespace_and_generics():
    assert base_type_key("System.Collections.Generic.List[string]") == "list"
    assert base_type_key("  Contoso.Animal ") == "animal"


@pytest.mark.parametrize("order", list(permutations(["A", "B", "C"])))
def test_classes_are_ordered_by_base_type(order):
    defs = {
        "C": ClassStatement("C", ("B",)),
        "B": ClassStatement("B", ("A",)),
        "A": ClassStatement("A"),
    }

    assert _names(order_classes([defs[n] for n in order])) == ["A", "B", "C"]


def test_ties_keep_input_order_and_external_bases_are_ignored():
    classes = [
        ClassStatement("Zeta", ("System.Exception",)),
        ClassStatement("Child", ("contoso.parent",)),
        ClassStatement("Alpha"),
        ClassStatement("Parent", ("IDisposable",)),
    ]

    assert _names(order_classes(classes)) == ["Zeta", "Alpha", "Parent", "Child"]


def test_cycle_falls_back_to_input_order():
    classes = [
        ClassStatement("Free"),
        ClassStatement("X", ("Y",)),
        ClassStatement("Y", ("X",)),
        ClassStatement("Last", ("Free",)),
    ]

    assert _names(order_classes(classes)) == ["Free", "Last", "X", "Y"]
