#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from itertools import permutations

import pytest

from psmb_errors import ErrorKind
from psmb_requirements import RequirementMerger
from psmb_statements import ModuleSpec, RequiresStatement


def _merge(*reqs):
    merger = RequirementMerger()
    outcomes = [merger.add(r) for r in reqs]
    return merger, outcomes


@pytest.mark.parametrize("order", list(permutations(["5.1", "5.0", "6.0"])))
def test_version_is_monotonic_in_any_order(order):
    merger, outcomes = _merge(*(RequiresStatement(version=v) for v in order))

    assert all(o.accepted for o in outcomes)
    assert merger.requirement.version == (6, 0)


def test_version_keeps_major_minor_only():
    merger, _ = _merge(RequiresStatement(version="5.1.19041"))

    assert merger.requirement.render() == ["#Requires -Version 5.1"]


def test_invalid_version_is_structural():
    _, (outcome,) = _merge(RequiresStatement(version="latest"))

    assert outcome.kind is ErrorKind.STRUCTURAL
    assert "[REQ-0033]" in outcome.message


def test_same_edition_twice_is_accepted():
    merger, outcomes = _merge(RequiresStatement(editions=("Core",)), RequiresStatement(editions=("core",)))

    assert all(o.accepted for o in outcomes)
    assert merger.requirement.editions == ("Core",)


def test_edition_conflict_is_a_collision():
    _, outcomes = _merge(RequiresStatement(editions=("Core",)), RequiresStatement(editions=("Desktop",)))

    assert outcomes[0].accepted
    assert outcomes[1].kind is ErrorKind.COLLISION
    assert "[REQ-0010]" in outcomes[1].message


def test_edition_sets_are_compared_sorted():
    merger, outcomes = _merge(
        RequiresStatement(editions=("Desktop", "Core")),
        RequiresStatement(editions=("Core", "Desktop")),
    )

    assert all(o.accepted for o in outcomes)
    assert merger.requirement.render() == ["#Requires -PSEdition Core, Desktop"]


def test_module_bounds_tighten():
    merger, outcomes = _merge(
        RequiresStatement(modules=(ModuleSpec("Pester", min_version="4.0", max_version="5.9"),)),
        RequiresStatement(modules=(ModuleSpec("pester", min_version="5.1", max_version="6.0"),)),
    )

    assert all(o.accepted for o in outcomes)
    constraint = merger.requirement.modules["pester"]
    assert constraint.name == "Pester"
    assert constraint.min_version == "5.1"
    assert constraint.max_version == "5.9"
    assert merger.requirement.render() == [
        "#Requires -Modules @{ ModuleName = 'Pester'; ModuleVersion = '5.1'; MaximumVersion = '5.9' }"
    ]


def test_plain_module_renders_as_name():
    merger, _ = _merge(RequiresStatement(modules=(ModuleSpec("PSReadLine"),)))

    assert merger.requirement.render() == ["#Requires -Modules PSReadLine"]


def test_module_guid_conflict():
    _, outcomes = _merge(
        RequiresStatement(modules=(ModuleSpec("Az", guid="aaaa"),)),
        RequiresStatement(modules=(ModuleSpec("Az", guid="bbbb"),)),
    )

    assert outcomes[1].kind is ErrorKind.COLLISION
    assert "[REQ-0020]" in outcomes[1].message


def test_exact_pin_conflicts():
    pinned = RequiresStatement(modules=(ModuleSpec("Az", exact_version="2.0"),))

    _, outcomes = _merge(pinned, RequiresStatement(modules=(ModuleSpec("Az", exact_version="2.0.0"),)))
    assert outcomes[1].accepted

    _, outcomes = _merge(pinned, RequiresStatement(modules=(ModuleSpec("Az", exact_version="3.0"),)))
    assert "[REQ-0032]" in outcomes[1].message

    _, outcomes = _merge(pinned, RequiresStatement(modules=(ModuleSpec("Az", min_version="1.0"),)))
    assert "[REQ-0030]" in outcomes[1].message

    _, outcomes = _merge(pinned, RequiresStatement(modules=(ModuleSpec("Az", max_version="9.0"),)))
    assert "[REQ-0031]" in outcomes[1].message

    _, outcomes = _merge(RequiresStatement(modules=(ModuleSpec("Az", min_version="1.0"),)), pinned)
    assert outcomes[1].kind is ErrorKind.COLLISION
    assert "[REQ-0032]" in outcomes[1].message


def test_failed_module_merge_leaves_state_untouched():
    merger, outcomes = _merge(
        RequiresStatement(modules=(ModuleSpec("Az", exact_version="2.0"),)),
        RequiresStatement(modules=(ModuleSpec("Az", guid="cccc", min_version="1.0"),)),
    )

    assert not outcomes[1].accepted
    assert merger.requirement.modules["az"].guid is None


def test_elevation_is_sticky():
    merger, _ = _merge(RequiresStatement(run_as_admin=True), RequiresStatement(version="5.1"))

    assert merger.requirement.elevation_required
    assert merger.requirement.render()[-1] == "#Requires -RunAsAdministrator"


def test_assembly_requirement_is_always_rejected():
    _, (outcome,) = _merge(RequiresStatement(assemblies=("System.Drawing",)))

    assert outcome.kind is ErrorKind.STRUCTURAL
    assert "[REQ-0040]" in outcome.message
