"""Lunar phase name and emoji for a calendar day."""

import logging
from dataclasses import dataclass
from datetime import date

from astral import moon

logger = logging.getLogger(__name__)

# astral.moon.phase() runs from 0 (new) through 7, 14 and 21 back to 28
LUNAR_CYCLE = 28.0

PHASES = [
    ("New", "🌑"),
    ("Waxing Crescent", "🌒"),
    ("First Quarter", "🌓"),
    ("Waxing Gibbous", "🌔"),
    ("Full", "🌕"),
    ("Waning Gibbous", "🌖"),
    ("Last Quarter", "🌗"),
    ("Waning Crescent", "🌘"),
]


@dataclass(frozen=True)
class MoonPhase:
    phase: str
    emoji: str


UNKNOWN = MoonPhase("Unknown", "🌑")


def moon_phase_for(target: date) -> MoonPhase:
    """Name and emoji of the phase, one of eight equal segments."""
    try:
        age = moon.phase(target)
        index = int(age / LUNAR_CYCLE * len(PHASES) + 0.5) % len(PHASES)
    except (AttributeError, TypeError, ValueError, OverflowError) as e:
        logger.warning(f"Moon phase unavailable for {target!r}: {e}")
        return UNKNOWN
    phase, emoji = PHASES[index]
    return MoonPhase(phase, emoji)
