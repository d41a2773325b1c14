"""Merge entries and drafts into the journal list - no I/O dependencies."""

from datetime import datetime, timezone

from .records import DisplayItem, Draft, Entry, parse_timestamp

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _entry_timestamp(entry: Entry) -> str:
    return entry.date_iso or entry.date_key


def reconcile(entries: list[Entry], drafts: list[Draft]) -> list[DisplayItem]:
    """
    Build the display list, one item per dateKey, newest first.

    Entries go in first; a draft is only shown for a dateKey with no entry,
    so a stray draft left behind by a failed cleanup never surfaces.
    Pure function - no I/O.
    """
    by_key: dict[str, DisplayItem] = {}

    for entry in entries:
        by_key[entry.date_key] = DisplayItem(
            date_key=entry.date_key,
            text=entry.text,
            timestamp=_entry_timestamp(entry),
            is_draft=False,
            moon_phase=entry.moon_phase,
            moon_phase_emoji=entry.moon_phase_emoji,
            ai_analysis=entry.ai_analysis,
        )

    for draft in drafts:
        if draft.date_key in by_key:
            continue
        by_key[draft.date_key] = DisplayItem(
            date_key=draft.date_key,
            text=draft.text,
            timestamp=draft.saved_at,
            is_draft=True,
            ai_analysis=draft.ai_result or None,
        )

    def sort_key(item: DisplayItem) -> datetime:
        return parse_timestamp(item.timestamp) or _OLDEST

    return sorted(by_key.values(), key=sort_key, reverse=True)
