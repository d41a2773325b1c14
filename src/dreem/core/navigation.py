"""Unsaved-edit navigation guard as a pure state machine - no I/O.

The caller feeds events in and carries out the effects that come back:
block or allow the transition, ask the user, persist a draft, clear the
edit session.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, auto

from .session import EditSession, EntryData

JOURNAL_ROUTE = "Journal"


class NavPhase(Enum):
    """Interceptor phases for one editor."""

    CLEAN = auto()
    DIRTY = auto()
    PENDING_DECISION = auto()
    RESOLVED = auto()


class Decision(Enum):
    """Answers to the unsaved-changes prompt."""

    DISCARD = "discard"
    CANCEL = "cancel"
    SAVE_DRAFT = "save_draft"


@dataclass(frozen=True)
class InterceptorState:
    phase: NavPhase = NavPhase.CLEAN
    target: str | None = None
    pending: EntryData | None = None


# ============== Events ==============


@dataclass(frozen=True)
class EditChanged:
    has_changes: bool


@dataclass(frozen=True)
class Saved:
    pass


@dataclass(frozen=True)
class NavigationAttempted:
    target: str
    session: EditSession = field(default_factory=EditSession)


@dataclass(frozen=True)
class DecisionMade:
    decision: Decision


Event = EditChanged | Saved | NavigationAttempted | DecisionMade


# ============== Effects ==============


@dataclass(frozen=True)
class AllowNavigation:
    target: str


@dataclass(frozen=True)
class BlockNavigation:
    target: str


@dataclass(frozen=True)
class PromptUser:
    target: str


@dataclass(frozen=True)
class PersistDraft:
    entry_data: EntryData


@dataclass(frozen=True)
class ClearSession:
    pass


Effect = AllowNavigation | BlockNavigation | PromptUser | PersistDraft | ClearSession


def should_intercept(session: EditSession) -> bool:
    """Dirty and not blank. Abandoning an empty editor never prompts."""
    if not session.has_unsaved_changes:
        return False
    data = session.entry_data
    return data is not None and not data.is_blank


def transition(state: InterceptorState, event: Event) -> tuple[InterceptorState, list[Effect]]:
    """
    Advance the interceptor by one event.

    Returns the new state and the effects to execute, in order.
    Pure function - no I/O.
    """
    match event:
        case EditChanged(has_changes=has_changes):
            if state.phase == NavPhase.PENDING_DECISION:
                return state, []
            return InterceptorState(NavPhase.DIRTY if has_changes else NavPhase.CLEAN), []

        case Saved():
            return InterceptorState(NavPhase.CLEAN), []

        case NavigationAttempted(target=target, session=session):
            if state.phase == NavPhase.PENDING_DECISION:
                return state, []
            if not should_intercept(session):
                return state, [AllowNavigation(target)]
            pending = InterceptorState(
                phase=NavPhase.PENDING_DECISION,
                target=target,
                pending=session.entry_data,
            )
            return pending, [BlockNavigation(target), PromptUser(target)]

        case DecisionMade(decision=decision):
            if state.phase != NavPhase.PENDING_DECISION or state.target is None:
                return state, []
            if decision == Decision.CANCEL:
                # Only dirty sessions are intercepted
                return InterceptorState(NavPhase.DIRTY), []
            effects: list[Effect] = []
            if decision == Decision.SAVE_DRAFT and state.pending is not None:
                effects.append(PersistDraft(state.pending))
            effects.extend([ClearSession(), AllowNavigation(state.target)])
            return replace(state, phase=NavPhase.RESOLVED, pending=None), effects

    raise TypeError(f"Unknown navigation event: {event!r}")


def prompt_message(target: str) -> tuple[str, str]:
    """Title and body for the unsaved-changes prompt."""
    if target == JOURNAL_ROUTE:
        return (
            "Unsaved Changes",
            "You have unsaved changes. Save them as a draft before going back to your journal?",
        )
    return (
        "Leave Entry?",
        f"You have unsaved changes. Save them as a draft before switching to {target}?",
    )
