from __future__ import annotations

from enum import Enum


class EventStatus(str, Enum):
    """Status of an agenda event as stored in the database."""

    ACTIVE = "active"
    DENIED = "denied"


class StatusFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    DENIED = "denied"


class MutationState(str, Enum):
    """Steps a single mutation attempt goes through."""

    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED = "rejected"
    OPTIMISTICALLY_APPLIED = "optimistically_applied"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class OutcomeKind(str, Enum):
    """How a mutation ended, from the caller's point of view."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT_ERROR = "conflict_error"
    TRANSPORT_ERROR = "transport_error"
    DECLINED = "declined"
