"""Bracket placeholder substitution (``[key]`` -> value)."""

from __future__ import annotations

import re
from typing import Any, Mapping

_PLACEHOLDER = re.compile(r"\[([\w.\-]+)\]")


def substitute(template: str, values: Mapping[str, Any]) -> str:
    """Replace every ``[key]`` in ``template`` with ``values[key]``.

    Unknown keys are left untouched so that literal brackets survive.
    ``None`` renders as an empty string.
    """

    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key not in values:
            return match.group(0)
        value = values[key]
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_replace, str(template))


__all__ = ["substitute"]
