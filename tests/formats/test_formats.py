#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import pytest

from conftest import format_view_xml
from psmb_errors import BuildError, ErrorKind
from psmb_formats import read_view_names


def test_view_names_in_document_order():
    assert read_view_names(format_view_xml("Zeta", "Alpha")) == ["Zeta", "Alpha"]


def test_namespaced_document():
    text = (
        '<Configuration xmlns="http://schemas.microsoft.com/PowerShell/2004/04">'
        "<ViewDefinitions><View><Name> Wide </Name></View></ViewDefinitions>"
        "</Configuration>"
    )

    assert read_view_names(text) == ["Wide"]


def test_document_without_views():
    assert read_view_names("<Configuration><SelectionSets/></Configuration>") == []


def test_malformed_xml_is_structural():
    with pytest.raises(BuildError) as excinfo:
        read_view_names("<Configuration><View>", filename="Bad.format.ps1xml")

    assert excinfo.value.kind is ErrorKind.STRUCTURAL
    assert "[FMT-0010]" in excinfo.value.message
    assert excinfo.value.diagnostic.filename == "Bad.format.ps1xml"
    assert excinfo.value.diagnostic.line == 1


def test_view_without_name_is_structural():
    with pytest.raises(BuildError) as excinfo:
        read_view_names("<Configuration><ViewDefinitions><View/></ViewDefinitions></Configuration>")

    assert "[FMT-0020]" in excinfo.value.message
