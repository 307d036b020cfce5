"""
Build context for cross-cutting builder options.

This module defines the BuildContext dataclass which holds options that
affect multiple stages of a module build (logging, alias checks, etc.).
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict


class LogLevel(IntEnum):
    """Hierarchical logging levels for the module builder."""
    SILENT = 0      # No logging
    ERROR = 3       # Error messages only
    WARNING = 6     # Warning messages (default)
    INFO = 10       # General progress messages (-v)
    DEBUG = 30      # Detailed diagnostic information (-vvv)


# Aliases every PowerShell session already exposes, mapped to their target
# command. Harvested entry-point aliases are checked against this table.
BUILTIN_ALIASES: Dict[str, str] = {
    "%": "ForEach-Object",
    "?": "Where-Object",
    "cat": "Get-Content",
    "cd": "Set-Location",
    "chdir": "Set-Location",
    "clc": "Clear-Content",
    "clear": "Clear-Host",
    "cls": "Clear-Host",
    "copy": "Copy-Item",
    "cp": "Copy-Item",
    "del": "Remove-Item",
    "dir": "Get-ChildItem",
    "echo": "Write-Output",
    "erase": "Remove-Item",
    "foreach": "ForEach-Object",
    "ft": "Format-Table",
    "fl": "Format-List",
    "gal": "Get-Alias",
    "gc": "Get-Content",
    "gci": "Get-ChildItem",
    "gcm": "Get-Command",
    "gi": "Get-Item",
    "gl": "Get-Location",
    "gm": "Get-Member",
    "gp": "Get-ItemProperty",
    "gps": "Get-Process",
    "group": "Group-Object",
    "gsv": "Get-Service",
    "gv": "Get-Variable",
    "iex": "Invoke-Expression",
    "ii": "Invoke-Item",
    "irm": "Invoke-RestMethod",
    "iwr": "Invoke-WebRequest",
    "kill": "Stop-Process",
    "ls": "Get-ChildItem",
    "man": "help",
    "md": "mkdir",
    "measure": "Measure-Object",
    "mi": "Move-Item",
    "move": "Move-Item",
    "mv": "Move-Item",
    "ni": "New-Item",
    "nv": "New-Variable",
    "ogv": "Out-GridView",
    "popd": "Pop-Location",
    "ps": "Get-Process",
    "pushd": "Push-Location",
    "pwd": "Get-Location",
    "r": "Invoke-History",
    "rd": "Remove-Item",
    "ren": "Rename-Item",
    "ri": "Remove-Item",
    "rm": "Remove-Item",
    "rmdir": "Remove-Item",
    "rv": "Remove-Variable",
    "sal": "Set-Alias",
    "select": "Select-Object",
    "set": "Set-Variable",
    "si": "Set-Item",
    "sl": "Set-Location",
    "sleep": "Start-Sleep",
    "sort": "Sort-Object",
    "sp": "Set-ItemProperty",
    "start": "Start-Process",
    "sv": "Set-Variable",
    "tee": "Tee-Object",
    "type": "Get-Content",
    "where": "Where-Object",
    "write": "Write-Output",
}


@dataclass
class BuildContext:
    """
    Holds cross-cutting options that affect multiple build stages.

    Attributes:
        log_rich_format:    If True, emit logs in rich format: may include log level, timestamps, etc.
        log_level:          Current logging level.
        known_aliases:      Externally visible aliases (name -> target command); a harvested
                            alias that names one of these with a different target is reported.
    """
    log_rich_format: bool = False
    log_level: LogLevel = LogLevel.WARNING
    known_aliases: Dict[str, str] = field(default_factory=lambda: dict(BUILTIN_ALIASES))

    @staticmethod
    def default() -> 'BuildContext':
        """Create a BuildContext with default settings."""
        return BuildContext(log_level=LogLevel.WARNING)

    def external_alias_target(self, alias: str) -> str | None:
        """Return the command an externally visible alias points to, if any."""
        folded = alias.casefold()
        for name, target in self.known_aliases.items():
            if name.casefold() == folded:
                return target
        return None
