"""Aspect registry: maps fingerprint types to their display metadata.

Built once at startup (normally from the ``aspects:`` config section) and
passed to the components that render fingerprints.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from orgscope.db.models import Fingerprint


@dataclass(frozen=True)
class Aspect:
    """Display metadata for one fingerprint type.

    Attributes:
        name: Fingerprint type this aspect owns.
        display_name: Human-readable aspect name.
        display_field: Key of ``data`` holding the displayable value.
        name_pattern: Regex over fingerprint names, for fingerprints whose
            stored type does not match any aspect name.
    """

    name: str
    display_name: str = ""
    display_field: str | None = None
    name_pattern: str | None = None

    def selects(self, fp: Fingerprint) -> bool:
        return bool(self.name_pattern) and re.search(self.name_pattern, fp.name) is not None

    def display_value(self, fp: Fingerprint) -> str:
        if self.display_field and isinstance(fp.data, dict) and self.display_field in fp.data:
            return str(fp.data[self.display_field])
        return default_display_value(fp)


def default_display_value(fp: Fingerprint) -> str:
    """Scalars display as themselves; structured data falls back to the sha."""
    if isinstance(fp.data, (str, int, float, bool)):
        return str(fp.data)
    return fp.sha


class AspectRegistry:
    """Aspects keyed by name, with an ordered fallback scan.

    Lookup by type is a dict hit. Fingerprints whose type is unknown are
    matched against each aspect's ``name_pattern`` in registration order;
    the first match wins.
    """

    def __init__(self, aspects: Iterable[Aspect] = ()) -> None:
        self._by_name: dict[str, Aspect] = {}
        self._ordered: list[Aspect] = []
        for aspect in aspects:
            if aspect is None:
                raise ValueError("A null aspect was passed in")
            if aspect.name in self._by_name:
                raise ValueError(f"Duplicate aspect name '{aspect.name}'")
            self._by_name[aspect.name] = aspect
            self._ordered.append(aspect)

    @classmethod
    def from_dicts(cls, raw: Iterable[Mapping[str, Any]]) -> AspectRegistry:
        """Build from config entries: ``{name, display_name, display_field, name_pattern}``."""
        return cls(
            Aspect(
                name=str(entry["name"]),
                display_name=str(entry.get("display_name", "")),
                display_field=entry.get("display_field"),
                name_pattern=entry.get("name_pattern"),
            )
            for entry in raw
        )

    @property
    def aspects(self) -> list[Aspect]:
        return list(self._ordered)

    def aspect_of(self, type: str) -> Aspect | None:
        return self._by_name.get(type) if type else None

    def aspect_for(self, fp: Fingerprint) -> Aspect | None:
        aspect = self.aspect_of(fp.type)
        if aspect is not None:
            return aspect
        return next((a for a in self._ordered if a.selects(fp)), None)

    def display_value(self, fp: Fingerprint) -> str:
        aspect = self.aspect_for(fp)
        return aspect.display_value(fp) if aspect else default_display_value(fp)

    def display_name(self, type: str) -> str:
        aspect = self.aspect_of(type)
        return (aspect.display_name if aspect else "") or type
