"""Prompt builders for MovSense model calls.

Room-aware rules are selected by substring match on the room key.
"""

from typing import Optional

from movsense.models.property import PropertyContext

ROOM_VOCABULARY = [
    "living_room", "family_room", "dining_room", "kitchen",
    "bedroom_1, bedroom_2, bedroom_3, etc. (based on property bedrooms)",
    "bathroom_1, bathroom_2, etc. (based on property bathrooms)",
    "office", "laundry", "garage", "outdoor", "entryway", "hallway", "other",
]

PHOTO_DETECTION_SYSTEM_PROMPT = (
    "You are MovSense's AI inventory estimator. Extract ONLY movable items that "
    "professional movers handle. Return precise quantities, descriptive labels, room, "
    "size descriptors, confidence, and cubic feet estimates. Do not include built-ins "
    "or immovable fixtures."
)

PHOTO_DETECTION_USER_PROMPT = (
    "Analyze this real estate photo and return the inventory as a JSON object of the form "
    '{"items": [{"label": str, "qty": int, "confidence": number, "notes": str, '
    '"room": str, "size": str, "cubicFeet": number}]}. Focus on movable furniture, '
    "appliances, electronics, decor, outdoor furniture, and boxes. Include size "
    "descriptors (dimensions or ranges) and room context."
)


def is_bedroom(room_key: str) -> bool:
    return "bedroom" in room_key.lower()


def is_bathroom(room_key: str) -> bool:
    return "bathroom" in room_key.lower()


def _context_block(context: PropertyContext, style: str) -> str:
    lines = context.describe_lines(style)
    return "\n".join(lines) if lines else "- No listing details available"


def build_classification_prompt(photo_count: int, context: Optional[PropertyContext] = None) -> str:
    """Prompt asking the model to assign every photo index to one room key."""
    context = context or PropertyContext()
    categories = "\n".join(f"   - {entry}" for entry in ROOM_VOCABULARY)

    if context.bedrooms:
        bedroom_rule = (
            f"5. IMPORTANT: The property has {context.bedrooms} bedrooms. "
            f"Create exactly {context.bedrooms} bedroom categories (bedroom_1 ... bedroom_{context.bedrooms})"
        )
    else:
        bedroom_rule = "5. Create one bedroom category per distinct bedroom you can see"
    if context.bathrooms:
        bedroom_rule += (
            f"\n6. The property has {int(context.bathrooms)} bathrooms. "
            f"Create at most {max(int(context.bathrooms), 1)} bathroom categories"
        )

    return f"""You are a real estate photo classifier. Analyze these {photo_count} property photos and classify each by room type.

PROPERTY CONTEXT:
{_context_block(context, "classify")}

INSTRUCTIONS:
1. Look at each photo and determine which room it shows
2. Assign EVERY photo index to EXACTLY ONE of these room categories:
{categories}
3. If multiple photos show the same room from different angles, group them together
4. Number bedrooms and bathrooms sequentially
{bedroom_rule}

Return ONLY a JSON object mapping room names to arrays of photo indices (0-{photo_count - 1}):
{{
  "living_room": [0, 3],
  "kitchen": [1, 5],
  "bedroom_1": [2, 4]
}}

Return ONLY valid JSON, no other text."""


BEDROOM_RULES = """
CRITICAL BEDROOM RULES:
1. All photos show the SAME bedroom from different angles
2. Report EXACTLY ONE bed unless you clearly see visually distinct beds (e.g. bunk beds or two separate beds)
3. If the same bed appears in several photos, COUNT IT ONLY ONCE
4. If photos suggest different bed sizes (King vs Queen vs Twin), it is the same bed seen from another angle.
   Report the single MOST CONFIDENT size, never one item per size
5. A typical bedroom has: 1 bed, 1-2 nightstands, 1 dresser, maybe 1 chair
"""

BATHROOM_RULES = """
CRITICAL BATHROOM RULES:
1. DO NOT count permanently fixed items: vanities, toilets, sinks, bathtubs, showers, medicine cabinets, built-in shelving
2. ONLY count freestanding, movable items such as hampers, storage carts, freestanding shelves
"""


def build_room_detection_prompt(
    room_key: str,
    photo_count: int,
    context: Optional[PropertyContext] = None
) -> str:
    """Prompt for one room's photos, with bedroom/bathroom rules when relevant."""
    context = context or PropertyContext()
    room_title = room_key.replace("_", " ").upper()
    photos_line = (
        f"{photo_count} photos showing this room from different angles"
        if photo_count > 1 else "1 photo"
    )
    room_rules = ""
    if is_bedroom(room_key):
        room_rules += BEDROOM_RULES
    if is_bathroom(room_key):
        room_rules += BATHROOM_RULES

    return f"""You are a professional MOVING COMPANY inventory specialist analyzing a specific room.

PROPERTY CONTEXT:
{_context_block(context, "detect")}

ROOM: {room_title}
PHOTOS: {photos_line}

CRITICAL: These {photo_count} photo(s) show THE SAME ROOM. Count each physically distinct item EXACTLY ONCE
across all photos, not once per photo it appears in.
{room_rules}
DETECT ONLY MOVABLE FURNITURE & ITEMS:
- SEATING: Sofas, Chairs, Ottomans, Benches, Recliners
- TABLES: Dining Tables, Coffee Tables, End Tables, Desks, Console Tables
- BEDS: Beds, Mattresses, Box Springs
- STORAGE: Dressers, Nightstands, Bookshelves, Wardrobes, Chests
- APPLIANCES: Refrigerators, Stoves, Microwaves, Washers, Dryers (freestanding only)
- ELECTRONICS: TVs, Computers, Sound Systems
- DECOR: Floor Lamps, Table Lamps, Area Rugs, Plants, Mirrors (if not built-in)

DO NOT DETECT built-in cabinets or shelving, built-in appliances, chandeliers, ceiling fans,
light fixtures, or wall-mounted items that are not easily removable.

REQUIREMENTS:
1. BE SPECIFIC: "Large L-Shaped Sectional Sofa", "Queen Size Platform Bed"
2. INCLUDE A SIZE DESCRIPTOR: "60 inch", "8-foot", "Queen"
3. ESTIMATE CUBIC FEET per item for the moving truck

Return ONLY a valid JSON array:
[
  {{
    "label": "Queen Size Platform Bed",
    "qty": 1,
    "confidence": 0.92,
    "notes": "Modern platform bed with headboard",
    "room": "{room_key}",
    "size": "Queen (60x80 inches)",
    "cubicFeet": 65
  }}
]

Return ONLY valid JSON array, no other text."""
