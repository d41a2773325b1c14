"""Functional core - pure business logic with no I/O."""

from .records import Entry, Draft, Chat, Message, Role, DisplayItem
from .reconcile import reconcile
from .session import EditSession, EditSessionGuard, EditBaseline, EntryData, is_dirty
from .navigation import Decision, InterceptorState, NavPhase, transition
from .moon import MoonPhase, moon_phase_for

__all__ = [
    # Records
    "Entry",
    "Draft",
    "Chat",
    "Message",
    "Role",
    "DisplayItem",
    # Reconciliation
    "reconcile",
    # Edit session
    "EditSession",
    "EditSessionGuard",
    "EditBaseline",
    "EntryData",
    "is_dirty",
    # Navigation
    "Decision",
    "InterceptorState",
    "NavPhase",
    "transition",
    # Moon
    "MoonPhase",
    "moon_phase_for",
]
