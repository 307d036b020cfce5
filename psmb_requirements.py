#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from psmb_errors import MergeOutcome
from psmb_statements import ModuleSpec, RequiresStatement


KNOWN_EDITIONS = {"core": "Core", "desktop": "Desktop"}


def parse_version(text: str) -> Optional[Tuple[int, ...]]:
    """Parse a dotted numeric version; None if `text` is not one."""
    parts = text.strip().split(".")
    if not parts or not all(p.isdigit() for p in parts):
        return None
    return tuple(int(p) for p in parts)


def _version_key(text: str) -> Tuple[int, ...]:
    # 1.2 == 1.2.0 == 1.2.0.0
    trimmed = list(parse_version(text))
    while len(trimmed) > 1 and trimmed[-1] == 0:
        trimmed.pop()
    return tuple(trimmed)


@dataclass
class ModuleConstraint:
    name: str
    guid: Optional[str] = None
    min_version: Optional[str] = None
    max_version: Optional[str] = None
    exact_version: Optional[str] = None

    def render(self) -> str:
        if not (self.guid or self.min_version or self.max_version or self.exact_version):
            return self.name
        fields = [f"ModuleName = '{self.name}'"]
        if self.guid:
            fields.append(f"GUID = '{self.guid}'")
        if self.min_version:
            fields.append(f"ModuleVersion = '{self.min_version}'")
        if self.max_version:
            fields.append(f"MaximumVersion = '{self.max_version}'")
        if self.exact_version:
            fields.append(f"RequiredVersion = '{self.exact_version}'")
        return "@{ " + "; ".join(fields) + " }"


@dataclass
class ModuleRequirement:
    """Aggregate of every #Requires directive seen during a build."""
    version: Optional[Tuple[int, int]] = None
    editions: Optional[Tuple[str, ...]] = None
    modules: Dict[str, ModuleConstraint] = field(default_factory=dict)  # keyed by casefolded name
    elevation_required: bool = False

    def is_empty(self) -> bool:
        return self.version is None and self.editions is None and not self.modules and not self.elevation_required

    def render(self) -> List[str]:
        lines: List[str] = []
        if self.version is not None:
            lines.append(f"#Requires -Version {self.version[0]}.{self.version[1]}")
        if self.editions:
            lines.append(f"#Requires -PSEdition {', '.join(self.editions)}")
        for constraint in self.modules.values():
            lines.append(f"#Requires -Modules {constraint.render()}")
        if self.elevation_required:
            lines.append("#Requires -RunAsAdministrator")
        return lines


class RequirementMerger:
    """
    Folds per-file #Requires directives into one ModuleRequirement.

    - version: the highest version wins (major.minor precision)
    - edition: the first edition set is kept; a different set is a collision
    - modules: guid first-wins, min/max bounds tighten, an exact pin excludes bounds
    - elevation: sticky once any file asks for it
    """

    def __init__(self) -> None:
        self.requirement = ModuleRequirement()

    def add(self, req: RequiresStatement) -> MergeOutcome:
        if req.assemblies:
            return MergeOutcome.structural(
                "[REQ-0040] '#Requires -Assembly' is no longer supported; use 'using assembly' instead"
            )

        if req.version is not None:
            parsed = parse_version(req.version)
            if parsed is None:
                return MergeOutcome.structural(f"[REQ-0033] invalid version '{req.version}'")
            major_minor = (parsed[0], parsed[1] if len(parsed) > 1 else 0)
            current = self.requirement.version
            if current is None or major_minor > current:
                self.requirement.version = major_minor

        if req.editions:
            editions = tuple(sorted({KNOWN_EDITIONS.get(e.casefold(), e) for e in req.editions}))
            if self.requirement.editions is None:
                self.requirement.editions = editions
            elif self.requirement.editions != editions:
                return MergeOutcome.collision(
                    f"[REQ-0010] conflicting PSEdition requirements: "
                    f"'{', '.join(self.requirement.editions)}' vs '{', '.join(editions)}'"
                )

        for spec in req.modules:
            outcome = self._add_module(spec)
            if not outcome.accepted:
                return outcome

        if req.run_as_admin:
            self.requirement.elevation_required = True

        return MergeOutcome.ok()

    def _add_module(self, spec: ModuleSpec) -> MergeOutcome:
        key = spec.name.casefold()
        existing = self.requirement.modules.get(key)
        c = replace(existing) if existing is not None else ModuleConstraint(spec.name)

        for label, text in (("minimum", spec.min_version), ("maximum", spec.max_version),
                            ("required", spec.exact_version)):
            if text is not None and parse_version(text) is None:
                return MergeOutcome.structural(
                    f"[REQ-0033] invalid {label} version '{text}' for module '{spec.name}'"
                )

        if spec.guid:
            if c.guid is None:
                c.guid = spec.guid
            elif c.guid.casefold() != spec.guid.casefold():
                return MergeOutcome.collision(
                    f"[REQ-0020] module '{spec.name}' required with conflicting GUIDs '{c.guid}' and '{spec.guid}'"
                )

        if spec.exact_version:
            if c.exact_version is not None and (
                    _version_key(c.exact_version) != _version_key(spec.exact_version)):
                return MergeOutcome.collision(
                    f"[REQ-0032] module '{spec.name}' pinned to both "
                    f"'{c.exact_version}' and '{spec.exact_version}'"
                )
            if c.min_version or c.max_version:
                return MergeOutcome.collision(
                    f"[REQ-0032] module '{spec.name}' pinned to '{spec.exact_version}' "
                    f"but also has a version range"
                )
            c.exact_version = c.exact_version or spec.exact_version

        if spec.min_version:
            if c.exact_version is not None:
                return MergeOutcome.collision(
                    f"[REQ-0030] module '{spec.name}' minimum version '{spec.min_version}' "
                    f"conflicts with pinned version '{c.exact_version}'"
                )
            if c.min_version is None or _version_key(spec.min_version) > _version_key(c.min_version):
                c.min_version = spec.min_version

        if spec.max_version:
            if c.exact_version is not None:
                return MergeOutcome.collision(
                    f"[REQ-0031] module '{spec.name}' maximum version '{spec.max_version}' "
                    f"conflicts with pinned version '{c.exact_version}'"
                )
            if c.max_version is None or _version_key(spec.max_version) < _version_key(c.max_version):
                c.max_version = spec.max_version

        self.requirement.modules[key] = c
        return MergeOutcome.ok()
