"""Journal, draft and chat record types - no I/O dependencies.

Records travel to and from storage as plain dicts with camelCase keys, which
is the on-disk format of the namespace files.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum

NEW_CHAT_TITLE = "New Chat"
TITLE_MAX_LENGTH = 50

logger = logging.getLogger(__name__)

_last_id = 0
_id_lock = threading.Lock()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp or YYYY-MM-DD key. Naive values are UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def date_iso_for(date_key: str) -> str:
    """Timestamp for midnight UTC of a dateKey."""
    day = date.fromisoformat(date_key)
    return format_timestamp(datetime(day.year, day.month, day.day, tzinfo=timezone.utc))


def new_id() -> str:
    """Time-derived id, strictly increasing within the process."""
    global _last_id
    with _id_lock:
        _last_id = max(int(time.time() * 1000), _last_id + 1)
        return str(_last_id)


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Entry:
    """A finalized journal entry for one day."""

    date_key: str
    date_iso: str = ""
    text: str = ""
    moon_phase: str = ""
    moon_phase_emoji: str = ""
    ai_analysis: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        return cls(
            date_key=data["dateKey"],
            date_iso=data.get("dateIso") or "",
            text=data.get("text") or "",
            moon_phase=data.get("moonPhase") or "",
            moon_phase_emoji=data.get("moonPhaseEmoji") or "",
            ai_analysis=data.get("aiAnalysis"),
        )

    def to_dict(self) -> dict:
        data = {
            "dateKey": self.date_key,
            "dateIso": self.date_iso,
            "text": self.text,
            "moonPhase": self.moon_phase,
            "moonPhaseEmoji": self.moon_phase_emoji,
        }
        if self.ai_analysis is not None:
            data["aiAnalysis"] = self.ai_analysis
        return data


@dataclass
class Draft:
    """Unfinalized editor content for one day, superseded by an Entry."""

    date_key: str
    text: str = ""
    ai_result: str = ""
    saved_at: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Draft":
        return cls(
            date_key=data["dateKey"],
            text=data.get("text") or "",
            ai_result=data.get("aiResult") or "",
            saved_at=data.get("savedAt") or "",
        )

    def to_dict(self) -> dict:
        return {
            "dateKey": self.date_key,
            "text": self.text,
            "aiResult": self.ai_result,
            "savedAt": self.saved_at,
        }


@dataclass(frozen=True)
class Message:
    """A chat message. Never edited once appended."""

    id: str
    role: Role
    content: str
    timestamp: str

    @classmethod
    def create(cls, role: Role, content: str) -> "Message":
        return cls(id=new_id(), role=role, content=content, timestamp=format_timestamp(utc_now()))

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(
            id=str(data["id"]),
            role=Role(data.get("role", "user")),
            content=data.get("content") or "",
            timestamp=data.get("timestamp") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }


@dataclass
class Chat:
    """A conversation with an append-only message list."""

    id: str
    title: str = NEW_CHAT_TITLE
    messages: list[Message] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Chat":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or NEW_CHAT_TITLE,
            messages=_parse_messages(data.get("messages") or []),
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


def _parse_messages(raw: list) -> list[Message]:
    """Well-formed messages in stored order; malformed ones are dropped."""
    messages = []
    for data in raw:
        try:
            messages.append(Message.from_dict(data))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping malformed chat message: {e!r}")
    return messages


def title_from_message(content: str) -> str:
    """Chat title derived from the first user message."""
    if len(content) > TITLE_MAX_LENGTH:
        return content[:TITLE_MAX_LENGTH] + "..."
    return content


@dataclass
class DisplayItem:
    """One row of the journal list: an Entry, or a Draft with no Entry."""

    date_key: str
    text: str
    timestamp: str
    is_draft: bool
    moon_phase: str = ""
    moon_phase_emoji: str = ""
    ai_analysis: str | None = None

    @property
    def preview(self) -> str:
        return self.text or "No content yet"
