"""Response parsing for MovSense model output.

Models wrap JSON in markdown fences or surround it with prose. These
helpers find the JSON payload and validate its top-level shape so that
the rest of the pipeline works on a strict schema.
"""

import json
import re
from typing import Any, Dict, List, Optional

import structlog

from movsense.config.errors import ErrorCode, ResponseParseError
from movsense.models.detection import RawDetection

logger = structlog.get_logger()

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def _candidate_spans(content: str, opener: str, closer: str) -> List[str]:
    """Candidate JSON texts: fenced block, outermost bracket span, whole text."""
    candidates = []
    fenced = _FENCED_BLOCK.search(content)
    if fenced:
        candidates.append(fenced.group(1))

    start = content.find(opener)
    end = content.rfind(closer)
    if start != -1 and end > start:
        candidates.append(content[start:end + 1])

    candidates.append(content.strip())
    return candidates


def extract_json(content: str, expect: type) -> Any:
    """Find and decode the first JSON value of the expected type.

    Args:
        content: Raw model text.
        expect: `dict` or `list`.

    Returns:
        The decoded value.

    Raises:
        ResponseParseError: If no candidate decodes to the expected type.
    """
    opener, closer = ("{", "}") if expect is dict else ("[", "]")
    for candidate in _candidate_spans(content or "", opener, closer):
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, expect):
            return value

    raise ResponseParseError(
        message=f"Model did not return a JSON {expect.__name__}",
        raw_content=content or "",
    )


def parse_room_mapping(content: str, photo_count: int) -> Dict[str, List[int]]:
    """Parse a classification response into room key -> photo indices.

    Indices outside [0, photo_count) and non-integer entries are dropped.
    Blank room keys and rooms left with no valid index are omitted.

    Raises:
        ResponseParseError: If the response is not a JSON object.
    """
    mapping = extract_json(content, dict)

    rooms: Dict[str, List[int]] = {}
    dropped = 0
    for room, indices in mapping.items():
        room = str(room).strip()
        if not room or not isinstance(indices, list):
            dropped += 1
            continue
        valid = []
        for index in indices:
            if isinstance(index, bool) or not isinstance(index, (int, float)):
                dropped += 1
                continue
            index = int(index)
            if 0 <= index < photo_count:
                valid.append(index)
            else:
                dropped += 1
        if valid:
            rooms.setdefault(room, []).extend(valid)

    if dropped:
        logger.warning("room_mapping_entries_dropped", dropped=dropped, photo_count=photo_count)
    return rooms


def parse_detection_items(content: str, default_room: Optional[str] = None) -> List[RawDetection]:
    """Parse a detection response into validated RawDetection items.

    Accepts a bare JSON array or an object with an `items` array.

    Raises:
        ResponseParseError: If neither shape can be found.
    """
    content = content or ""
    first_brace = content.find("{")
    first_bracket = content.find("[")
    object_first = first_brace != -1 and (first_bracket == -1 or first_brace < first_bracket)

    if object_first:
        wrapper = extract_json(content, dict)
        items = wrapper.get("items")
        if not isinstance(items, list):
            raise ResponseParseError(
                message="Model JSON object has no items array",
                raw_content=content,
                code=ErrorCode.UNEXPECTED_SHAPE,
            )
    else:
        items = extract_json(content, list)

    detections = []
    for item in items:
        detection = RawDetection.from_model_item(item, default_room=default_room)
        if detection is not None:
            detections.append(detection)
    return detections
