#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import xml.etree.ElementTree as ET
from typing import List, Optional

from psmb_errors import structural_error


def _local_name(tag: str) -> str:
    # "{http://schemas.microsoft.com/...}View" -> "View"
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def read_view_names(text: str, filename: Optional[str] = None) -> List[str]:
    """
    Return the names of all views declared by a `.format.ps1xml` document, in
    document order.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        line, column = e.position
        raise structural_error(
            f"[FMT-0010] malformed format resource: {e}",
            filename=filename,
            line=line,
            column=column + 1,
        ) from None

    names: List[str] = []
    for element in root.iter():
        if _local_name(element.tag) != "View":
            continue
        name_element = _child(element, "Name")
        name = (name_element.text or "").strip() if name_element is not None else ""
        if not name:
            raise structural_error("[FMT-0020] view definition without a name", filename=filename)
        names.append(name)
    return names
