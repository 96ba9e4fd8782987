from __future__ import annotations

from typing import Protocol, Sequence

from .model import Member


class MemberDirectory(Protocol):
    async def list_members(self) -> Sequence[Member]:
        raise NotImplementedError
