from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Member:
    """Read-only directory entry; member profiles are managed elsewhere."""

    id: str
    full_name: str
    active: bool = True
