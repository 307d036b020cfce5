#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence


def ps_quote(text: str) -> str:
    """Render `text` as a single-quoted PowerShell string literal."""
    return "'" + text.replace("'", "''") + "'"


def ps_list(items: Sequence[str]) -> str:
    """Render a comma-separated list of quoted strings; `@()` when empty."""
    if not items:
        return "@()"
    return ", ".join(ps_quote(item) for item in items)


@dataclass
class ScriptBuilder:
    """
    Helper for building PowerShell code with indentation tracking.
    """
    lines: List[str] = field(default_factory=list)
    indent_level: int = 0
    indent_str: str = "    "  # 4 spaces

    def indent(self) -> None:
        self.indent_level += 1

    def dedent(self) -> None:
        assert self.indent_level > 0, "dedent below zero"
        self.indent_level -= 1

    def emit(self, line: str = "") -> None:
        """Emit a line with current indentation."""
        if line:
            self.lines.append(self.indent_str * self.indent_level + line)
        else:
            self.lines.append("")

    def emit_raw(self, text: str) -> None:
        """Emit (possibly multi-line) text without indentation."""
        self.lines.extend(text.split("\n"))

    def to_string(self) -> str:
        return "\n".join(self.lines)


@dataclass
class ModuleEmitter:
    """
    PowerShell-specific text generation for the module artifact.

    Knows the syntax of regions, aliases, format registration, exports and the
    type accelerator registry. Decides nothing about what is emitted.
    """

    def region(self, title: str, blocks: Iterable[str], separator: str = "\n") -> str:
        out = ScriptBuilder()
        out.emit(f"#region {title}")
        out.emit_raw(separator.join(blocks))
        out.emit("#endregion")
        return out.to_string()

    def emit_alias(self, alias: str, target: str) -> str:
        return f"Set-Alias -Name {ps_quote(alias)} -Value {ps_quote(target)}"

    def emit_format_registration(self, resource_path: str, view_names: Sequence[str]) -> str:
        # Skip resources whose views are already loaded into the session
        out = ScriptBuilder()
        out.emit(
            "if (-not (Get-FormatData | ForEach-Object { $_.FormatViewDefinition.Name } | "
            f"Where-Object {{ $_ -in @({ps_list(view_names)}) }})) {{"
        )
        out.indent()
        out.emit(f"Update-FormatData -PrependPath (Join-Path $PSScriptRoot {ps_quote(resource_path)})")
        out.dedent()
        out.emit("}")
        return out.to_string()

    def emit_export(self, functions: Sequence[str], aliases: Sequence[str], variables: Sequence[str]) -> str:
        parts = [f"Export-ModuleMember -Function {ps_list(functions)}"]
        if aliases:
            parts.append(f"-Alias {ps_list(aliases)}")
        if variables:
            parts.append(f"-Variable {ps_list(variables)}")
        return " ".join(parts)

    def emit_type_registry(self, type_names: Sequence[str]) -> str:
        out = ScriptBuilder()
        out.emit("$typeAccelerators = [psobject].Assembly.GetType('System.Management.Automation.TypeAccelerators')")
        out.emit("$exportableTypes = @(")
        out.indent()
        for name in type_names:
            out.emit(f"[{name}]")
        out.dedent()
        out.emit(")")
        out.emit("foreach ($type in $exportableTypes) {")
        out.indent()
        out.emit("$null = $typeAccelerators::Add($type.FullName, $type)")
        out.dedent()
        out.emit("}")
        out.emit("$MyInvocation.MyCommand.ScriptBlock.Module.OnRemove = {")
        out.indent()
        out.emit("foreach ($type in $exportableTypes) {")
        out.indent()
        out.emit("$null = $typeAccelerators::Remove($type.FullName)")
        out.dedent()
        out.emit("}")
        out.dedent()
        out.emit("}.GetNewClosure()")
        return out.to_string()

    def join_regions(self, regions: Sequence[str]) -> str:
        """Join rendered regions with one blank line between them."""
        return "\n\n".join(regions) + "\n"
