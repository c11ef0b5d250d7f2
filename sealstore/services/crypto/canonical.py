"""Deterministic string forms of signed rows.

Each signed table declares an append-only tuple of templates, one per schema
generation, e.g. ``("{id}:{application_id}:{name}", "{id}:{application_id}:{name}:{type}")``.
A row records the index of the template it was signed with, so rows written
before a generation was added keep verifying against their own template.

Placeholders are filled with the JSON rendering of each value, which keeps
separators unambiguous and dict values independent of key order.
"""

from __future__ import annotations

import json
import string
from datetime import datetime
from typing import Any, Mapping, Sequence


class UnknownGenerationError(LookupError):
    pass


class _CanonicalFormatter(string.Formatter):
    def get_value(self, key: int | str, args: Sequence[Any], kwargs: Mapping[str, Any]) -> Any:
        if isinstance(key, int):
            raise ValueError("canonical templates only accept named fields")
        return kwargs[key]

    def format_field(self, value: Any, format_spec: str) -> str:
        return render_value(value)


_FORMATTER = _CanonicalFormatter()


def render_value(value: Any) -> str:
    if isinstance(value, datetime):
        value = value.isoformat()
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def template_fields(template: str) -> set[str]:
    return {name for _, name, _, _ in _FORMATTER.parse(template) if name}


def latest_version(templates: Sequence[str]) -> int:
    if not templates:
        raise UnknownGenerationError("no canonical form declared")
    return len(templates) - 1


def canonical_form(templates: Sequence[str], values: Mapping[str, Any], version: int) -> str:
    # Resolve exactly one generation; never fall back to another template.
    if version is None or version < 0 or version >= len(templates):
        raise UnknownGenerationError(f"canonical form generation {version} is not declared")
    return _FORMATTER.vformat(templates[version], (), values)


def canonical_forms(templates: Sequence[str], values: Mapping[str, Any]) -> tuple[str, ...]:
    return tuple(canonical_form(templates, values, version) for version in range(len(templates)))
