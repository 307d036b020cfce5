#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from psmb_errors import ErrorKind
from psmb_imports import ImportMerger, normalize_assembly
from psmb_names import canonical_namespace
from psmb_statements import ImportKind, UsingStatement


def test_known_namespace_uses_canonical_casing():
    assert canonical_namespace("system.io") == "System.IO"
    assert canonical_namespace("SYSTEM.COLLECTIONS.GENERIC") == "System.Collections.Generic"


def test_unknown_namespace_is_title_cased():
    assert canonical_namespace("contoso.tools") == "Contoso.Tools"
    assert canonical_namespace("contoso.IO") == "Contoso.IO"


def test_assembly_clauses_are_sorted_by_key():
    assert normalize_assembly("Foo, Version = 1.0, Culture=neutral") == "Foo, Culture=neutral, Version=1.0"
    assert normalize_assembly("Foo") == "Foo"


def test_namespace_imports_are_deduplicated_case_insensitively():
    merger = ImportMerger()
    outcomes = [
        merger.add(UsingStatement(ImportKind.NAMESPACE, "System.IO")),
        merger.add(UsingStatement(ImportKind.NAMESPACE, "system.io")),
        merger.add(UsingStatement(ImportKind.ASSEMBLY, "Foo, Version=1.0, Culture=neutral")),
        merger.add(UsingStatement(ImportKind.ASSEMBLY, "foo, culture=neutral, version=1.0")),
        merger.add(UsingStatement(ImportKind.NAMESPACE, "System.Text")),
    ]

    assert all(o.accepted for o in outcomes)
    assert merger.imports.render() == [
        "using namespace System.IO",
        "using namespace System.Text",
        "using assembly Foo, Culture=neutral, Version=1.0",
    ]


def test_module_import_is_an_omission():
    merger = ImportMerger()
    outcome = merger.add(UsingStatement(ImportKind.MODULE, "Pester"))

    assert outcome.kind is ErrorKind.OMISSION
    assert "[IMP-0010]" in outcome.message
    assert "RequiredModules" in outcome.message
    assert merger.imports.is_empty()


def test_unknown_import_kind_is_an_omission():
    merger = ImportMerger()
    outcome = merger.add(UsingStatement(ImportKind.UNKNOWN, "Thing", text="using type Thing"))

    assert outcome.kind is ErrorKind.OMISSION
    assert "[IMP-0020]" in outcome.message
