"""``{{ dotted.path }}`` placeholder rendering for hook action configs."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Mapping

_PLACEHOLDER = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
_MISSING = object()


def _lookup(context: Any, path: str) -> Any:
    current = context
    for key in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(key, _MISSING)
        else:
            current = getattr(current, key, _MISSING)
        if current is _MISSING:
            return _MISSING
    return current


def _stringify(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if value is None:
        return ""
    return str(value)


def render_template(value: Any, context: Any) -> Any:
    """Substitute placeholders in strings, recursing into dicts and lists.

    Unresolved placeholders are left untouched; non-string leaves pass through.

    Examples:
        >>> render_template("Job {{name}} done", {"name": "Foo"})
        'Job Foo done'
        >>> render_template({"text": ["{{ job.id }}", 3]}, {"job": {"id": "j1"}})
        {'text': ['j1', 3]}
    """
    if isinstance(value, str):

        def _sub(m: re.Match[str]) -> str:
            found = _lookup(context, m.group(1))
            return m.group(0) if found is _MISSING else _stringify(found)

        return _PLACEHOLDER.sub(_sub, value)
    if isinstance(value, list):
        return [render_template(v, context) for v in value]
    if isinstance(value, dict):
        return {k: render_template(v, context) for k, v in value.items()}
    return value
