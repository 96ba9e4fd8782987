from __future__ import annotations

from typing import Mapping, Optional


def first_missing(fields: Mapping[str, object]) -> Optional[str]:
    """Return the name of the first blank field, or None when all are set."""
    for name, value in fields.items():
        if value is None:
            return name
        if isinstance(value, str) and not value.strip():
            return name
    return None
