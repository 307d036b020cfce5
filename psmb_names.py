#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from typing import Dict


# Canonical casing for well-known .NET namespaces. A namespace import that
# matches one of these case-insensitively is displayed exactly as listed.
SYSTEM_NAMESPACES = [
    "System",
    "System.Collections",
    "System.Collections.Concurrent",
    "System.Collections.Generic",
    "System.Collections.ObjectModel",
    "System.Collections.Specialized",
    "System.ComponentModel",
    "System.Data",
    "System.Data.SqlClient",
    "System.Diagnostics",
    "System.Diagnostics.CodeAnalysis",
    "System.Drawing",
    "System.Globalization",
    "System.IO",
    "System.IO.Compression",
    "System.Linq",
    "System.Management.Automation",
    "System.Management.Automation.Language",
    "System.Management.Automation.Runspaces",
    "System.Net",
    "System.Net.Http",
    "System.Net.Sockets",
    "System.Reflection",
    "System.Runtime.InteropServices",
    "System.Security",
    "System.Security.AccessControl",
    "System.Security.Cryptography",
    "System.Security.Cryptography.X509Certificates",
    "System.Security.Principal",
    "System.Text",
    "System.Text.Json",
    "System.Text.RegularExpressions",
    "System.Threading",
    "System.Threading.Tasks",
    "System.Web",
    "System.Windows.Forms",
    "System.Xml",
    "System.Xml.Linq",
    "Microsoft.PowerShell",
    "Microsoft.PowerShell.Commands",
    "Microsoft.Win32",
]

_KNOWN: Dict[str, str] = {name.casefold(): name for name in SYSTEM_NAMESPACES}


def _title_segment(segment: str) -> str:
    # All-caps segments are acronyms (IO, XML) and keep their casing
    if not segment or (segment.isupper() and len(segment) > 1):
        return segment
    return segment[0].upper() + segment[1:].lower()


def canonical_namespace(name: str) -> str:
    """
    Return the display form of a namespace identifier.

    Known system namespaces use their canonical casing; anything else is
    title-cased segment by segment ("contoso.tools" -> "Contoso.Tools").
    """
    name = name.strip()
    known = _KNOWN.get(name.casefold())
    if known is not None:
        return known
    return ".".join(_title_segment(seg) for seg in name.split("."))
