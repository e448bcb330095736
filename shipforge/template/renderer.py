from __future__ import annotations

import re
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from .types import BindingError

OPEN = "{{"
CLOSE = "}}"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_.-]*)\s*\}\}")


def render(body: str, bindings: Mapping[str, str], *, task_id: str | None = None) -> str:
    """
    Substitute every `{{ name }}` in body with bindings[name].

    Values are inserted verbatim, no shell escaping is applied.
    """
    out: list[str] = []
    pos = 0

    while True:
        start = body.find(OPEN, pos)
        if start < 0:
            out.append(body[pos:])
            break

        match = _PLACEHOLDER_RE.match(body, start)
        if match is None:
            if body.find(CLOSE, start + len(OPEN)) < 0:
                raise BindingError(
                    f"unterminated placeholder at offset {start}", task_id=task_id
                )
            raise BindingError(
                f"malformed placeholder at offset {start}", task_id=task_id
            )

        name = match.group(1)
        if name not in bindings:
            raise BindingError(
                f"missing variable '{name}'", name=name, task_id=task_id
            )

        out.append(body[pos:start])
        out.append(str(bindings[name]))
        pos = match.end()

    return "".join(out)


def placeholders(body: str) -> list[str]:
    seen: list[str] = []
    for match in _PLACEHOLDER_RE.finditer(body):
        if match.group(1) not in seen:
            seen.append(match.group(1))
    return seen


def make_bindings(
    defaults: Mapping[str, Any] | None = None,
    overrides: Mapping[str, Any] | None = None,
    *,
    now: datetime | None = None,
) -> Mapping[str, str]:
    """
    Build the frozen variable table for one run.

    `timestamp` is computed once from `now`. Overrides win over defaults and
    over `timestamp`. Values may reference other variables; references are
    resolved here so the returned mapping holds final strings only.
    """
    moment = now if now is not None else datetime.now()
    raw: dict[str, str] = {"timestamp": moment.strftime(TIMESTAMP_FORMAT)}

    for source in (defaults or {}, overrides or {}):
        for key, value in source.items():
            raw[key] = str(value)

    resolved: dict[str, str] = {}
    for key in raw:
        _resolve(key, raw, resolved, [])

    return MappingProxyType(resolved)


def _resolve(key: str, raw: dict[str, str], resolved: dict[str, str], stack: list[str]) -> str:
    if key in resolved:
        return resolved[key]

    if key in stack:
        cycle = " -> ".join(stack[stack.index(key):] + [key])
        raise BindingError(f"variable cycle: {cycle}", name=key)

    if key not in raw:
        referrer = stack[-1] if stack else key
        raise BindingError(
            f"variable '{referrer}' references missing variable '{key}'", name=key
        )

    stack.append(key)
    deps = {name: _resolve(name, raw, resolved, stack) for name in placeholders(raw[key])}
    stack.pop()

    resolved[key] = render(raw[key], deps)
    return resolved[key]
