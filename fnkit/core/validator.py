"""Argument validation against a built declaration."""

from __future__ import annotations

from typing import Any

from fnkit.shared.errors import MissingRequiredParameter, TypeMismatchError
from fnkit.shared.schemas.tools import Declaration


def validate(declaration: Declaration, arguments: dict[str, Any] | None) -> dict[str, Any]:
    """Check ``arguments`` against ``declaration`` and return a normalized copy.

    - every missing required parameter is reported in one error, together
      with any mistyped array elements of the same call;
    - undeclared keys pass through unchanged;
    - a scalar given for an array parameter becomes a one-element list, and
      each element must match the declared item type;
    - absent flags are filled in (``False`` unless a default says otherwise).

    ``None`` values count as absent. Neither input is mutated.
    """
    arguments = dict(arguments or {})
    missing = [
        p.name for p in declaration.parameters
        if p.required and arguments.get(p.name) is None
    ]

    normalized: dict[str, Any] = {}
    mismatches: list[tuple[str, str, object]] = []
    declared = {p.name: p for p in declaration.parameters}

    for key, value in arguments.items():
        param = declared.get(key)
        if value is None and param is not None:
            continue
        if param is None or not param.is_array:
            normalized[key] = value
            continue
        items = value if isinstance(value, list) else [value]
        for item in items:
            if not _matches(item, param.items or "string"):
                mismatches.append((key, param.items or "string", item))
        normalized[key] = list(items)

    if missing:
        raise MissingRequiredParameter(declaration.name, missing, mismatches)
    if mismatches:
        raise TypeMismatchError(declaration.name, mismatches)

    for param in declaration.parameters:
        if param.is_flag and param.name not in normalized:
            normalized[param.name] = param.default if isinstance(param.default, bool) else False
    return normalized


def _matches(value: Any, kind: str) -> bool:
    # bool is a subclass of int, so check it first
    if kind == "boolean":
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if kind == "integer":
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if kind == "number":
        return isinstance(value, (int, float))
    return isinstance(value, str)
