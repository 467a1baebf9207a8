"""Label and room canonicalization for MovSense.

All matching is driven by ordered rule tables. The first matching rule
wins, so more specific entries must come before general ones.
"""

import re
from typing import List, Optional, Tuple

SIZE_ADJECTIVES = (
    "large", "small", "medium", "big", "little", "tall", "short", "wide",
    "narrow", "standard", "extra", "xl", "compact", "mini", "oversized",
)

_SIZE_ADJECTIVE_PATTERN = re.compile(r"\b(" + "|".join(SIZE_ADJECTIVES) + r")\b")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# (substrings, canonical room key). Order is significant.
ROOM_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("entry", "foyer", "mudroom"), "entryway"),
    (("living", "family", "great room", "lounge"), "living-room"),
    (("dining",), "dining-room"),
    (("kitchen",), "kitchen"),
    (("pantry",), "pantry"),
    (("bed", "nursery"), "bedroom"),
    (("bath", "powder", "restroom"), "bathroom"),
    (("office", "study"), "office"),
    (("laundry", "utility"), "laundry"),
    (("garage", "workshop"), "garage"),
    (("outdoor", "patio", "yard", "deck", "porch", "balcony", "exterior", "garden"), "outdoor"),
    (("hall",), "hallway"),
]

# Rooms a home can have several of. Their group keys keep the original name.
REPEATABLE_ROOMS = ("bedroom", "bathroom")

ROOM_DISPLAY_NAMES = {
    "entryway": "Entryway",
    "living-room": "Living Room",
    "dining-room": "Dining Room",
    "kitchen": "Kitchen",
    "pantry": "Pantry",
    "bedroom": "Bedroom",
    "bathroom": "Bathroom",
    "office": "Office",
    "laundry": "Laundry",
    "garage": "Garage",
    "outdoor": "Outdoor",
    "hallway": "Hallway",
    "other": "Other",
}

# Presentation order. Rooms not listed sort last.
ROOM_PRIORITY: List[Tuple[Tuple[str, ...], int]] = [
    (("entry", "foyer"), 0),
    (("living", "family"), 1),
    (("dining",), 2),
    (("kitchen",), 3),
    (("pantry",), 4),
    (("bedroom", "nursery"), 5),
    (("bath",), 6),
    (("office",), 7),
    (("laundry",), 8),
    (("garage",), 9),
    (("outdoor", "patio"), 10),
]
UNKNOWN_ROOM_PRIORITY = 99

BEDROOM_DESCRIPTORS = re.compile(r"\b(primary|master|guest|nursery|kids|loft|suite|main)\b")
_DIGIT = re.compile(r"\d")
_NUMBER = re.compile(r"(\d+)")


def normalize_label(label: Optional[str]) -> str:
    """Canonical label used only for merge-key matching."""
    text = (label or "").lower()
    text = _SIZE_ADJECTIVE_PATTERN.sub(" ", text)
    text = _NON_ALNUM.sub(" ", text)
    return " ".join(text.split())


def slugify(text: Optional[str]) -> str:
    return _NON_ALNUM.sub("-", (text or "").lower()).strip("-")


def _spaced(room: Optional[str]) -> str:
    """Lowercase room text with separators turned into spaces."""
    return " ".join(_NON_ALNUM.sub(" ", (room or "").lower()).split())


def canonical_room_key(room: Optional[str]) -> str:
    """Map a free-text room to a canonical room key.

    Unmatched rooms fall back to their slug, or "other" when empty.
    """
    spaced = _spaced(room)
    if not spaced:
        return "other"
    for substrings, key in ROOM_RULES:
        if any(s in spaced for s in substrings):
            return key
    return slugify(room) or "other"


def room_group_key(room: Optional[str]) -> str:
    """Key identifying one physical room.

    Repeatable rooms (bedrooms, bathrooms) keep their slugged original so
    that "bedroom_1" and "bedroom_2" stay apart; other rooms collapse to
    their canonical key.
    """
    canonical = canonical_room_key(room)
    if canonical in REPEATABLE_ROOMS:
        return f"{canonical}/{slugify(room) or canonical}"
    return canonical


def merge_key(room: Optional[str], label: Optional[str]) -> str:
    return f"{room_group_key(room)}:{normalize_label(label)}"


def has_bedroom_descriptor(room: Optional[str]) -> bool:
    """True when a bedroom name distinguishes itself (a number or a descriptor word)."""
    spaced = _spaced(room)
    return bool(_DIGIT.search(spaced) or BEDROOM_DESCRIPTORS.search(spaced))


def title_case_room(room: Optional[str]) -> str:
    """Display form of an original room string, e.g. "master_bedroom" -> "Master Bedroom"."""
    spaced = _spaced(room)
    return " ".join(word.capitalize() for word in spaced.split()) or "Other"


def display_room_name(room: Optional[str]) -> str:
    """Display name for a room that needs no numbering."""
    canonical = canonical_room_key(room)
    if canonical in REPEATABLE_ROOMS:
        return title_case_room(room)
    if canonical in ROOM_DISPLAY_NAMES:
        return ROOM_DISPLAY_NAMES[canonical]
    return title_case_room(room)


def room_number(name: str) -> Optional[int]:
    match = _NUMBER.search(name)
    return int(match.group(1)) if match else None


def room_priority(display_name: str) -> Tuple[int, int, str]:
    """Sort key for display room names.

    Bedrooms order by their numeric suffix; ties break alphabetically.
    """
    lowered = display_name.lower()
    priority = UNKNOWN_ROOM_PRIORITY
    for substrings, rank in ROOM_PRIORITY:
        if any(s in lowered for s in substrings):
            priority = rank
            break
    return (priority, room_number(lowered) or 0, lowered)
