#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from psmb_errors import ErrorKind
from psmb_registry import Section, SectionKind, StatementRegistry


def test_section_keys_are_case_insensitive_and_ordered():
    section = Section(SectionKind.FUNCTION)
    section.put("Get-Foo", "a")
    section.put("Set-Bar", "b")

    assert "get-foo" in section
    assert section.get("GET-FOO").value == "a"
    assert section.keys() == ["Get-Foo", "Set-Bar"]
    assert section.values() == ["a", "b"]
    assert len(section) == 2


def test_sections_are_created_lazily():
    registry = StatementRegistry()

    assert not registry.has(SectionKind.ENUM)
    assert len(registry.section(SectionKind.ENUM)) == 0
    assert SectionKind.ENUM not in registry.sections

    registry.add(SectionKind.ENUM, "Color", "enum Color {}")
    assert registry.has(SectionKind.ENUM)


def test_identical_redefinition_is_an_omission():
    registry = StatementRegistry()
    first = registry.add(SectionKind.FUNCTION, "Helper", "function Helper {}", "a.ps1")
    second = registry.add(SectionKind.FUNCTION, "helper", "function Helper {}", "b.ps1")

    assert first.accepted
    assert second.kind is ErrorKind.OMISSION
    assert "[REG-0010]" in second.message
    assert "a.ps1" in second.message
    assert registry.section(SectionKind.FUNCTION).keys() == ["Helper"]


def test_different_redefinition_is_a_collision():
    registry = StatementRegistry()
    registry.add(SectionKind.ALIAS, "gf", "Get-Foo", "Get-Foo.ps1")
    outcome = registry.add(SectionKind.ALIAS, "GF", "Get-File", "Get-File.ps1")

    assert outcome.kind is ErrorKind.COLLISION
    assert "[REG-0020]" in outcome.message
    assert "Get-Foo.ps1" in outcome.message
    assert registry.section(SectionKind.ALIAS).get("gf").value == "Get-Foo"


def test_same_key_in_different_sections_does_not_collide():
    registry = StatementRegistry()

    assert registry.add(SectionKind.FUNCTION, "Foo", "function Foo {}").accepted
    assert registry.add(SectionKind.ENTRY_POINT, "Foo", "function Foo {\nparam()\n}").accepted


def test_exclusive_sections_collide_whatever_the_value():
    registry = StatementRegistry()
    registry.add(SectionKind.FUNCTION, "Get-Foo", "function Get-Foo { 1 }", "Helper.ps1")

    outcome = registry.add(
        SectionKind.ENTRY_POINT, "get-foo", "function Get-Foo {\nparam()\n}", "Get-Foo.ps1",
        exclusive_with=(SectionKind.FUNCTION,),
    )

    assert outcome.kind is ErrorKind.COLLISION
    assert "[REG-0020]" in outcome.message
    assert "already defined as function in 'Helper.ps1'" in outcome.message
    assert not registry.has(SectionKind.ENTRY_POINT)
