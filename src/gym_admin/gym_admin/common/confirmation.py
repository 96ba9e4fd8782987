"""Confirmation port.

Destructive actions ask an injected ``Confirmation`` instead of popping a
blocking dialog, so the engines run the same way under a UI, an HTTP request
or a test.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol


class Confirmation(Protocol):
    def confirm(self, message: str) -> bool:
        raise NotImplementedError


@dataclass
class StaticConfirmation:
    """Answers every prompt the same way and remembers what was asked."""

    answer: bool = True
    asked: List[str] = field(default_factory=list)

    def confirm(self, message: str) -> bool:
        self.asked.append(message)
        return self.answer
