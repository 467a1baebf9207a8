"""Per-room furniture detection (Phase 2) for MovSense.

One model call per room. A room whose call fails or whose response cannot
be parsed contributes no detections; other rooms are unaffected.

Rooms are processed sequentially through `RoomFurnitureDetector.iter_rooms`,
an async generator that yields each room's result as soon as it completes.
"""

import asyncio
import time
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from movsense.config.settings import settings
from movsense.config.errors import ErrorCode, ModelInvocationError, ResponseParseError, ValidationError
from movsense.models.detection import RawDetection, RoomDetectionResult
from movsense.models.property import PropertyContext
from movsense.services.model_client import ModelClient, RetryPolicy
from movsense.services.prompts import build_room_detection_prompt, is_bedroom
from movsense.services.response_parser import parse_detection_items
from movsense.services.room_classifier import require_photos
from movsense.utils.pipeline_logger import log_room_start

logger = structlog.get_logger()

DETECT_MAX_TOKENS = 2000
DETECT_TEMPERATURE = 0.05
DETECT_DETAIL = "high"

BED_EXCLUSIONS = ("nightstand", "bedside")


def is_bed_label(label: str) -> bool:
    """True for bed items, excluding bedside furniture."""
    lowered = label.lower()
    return "bed" in lowered and not any(word in lowered for word in BED_EXCLUSIONS)


def collapse_duplicate_beds(detections: List[RawDetection], room_key: str = "") -> List[RawDetection]:
    """Keep only the highest-confidence bed in a bedroom.

    Models often report one bed per camera angle, sometimes with different
    sizes. Non-bed items and their order are untouched. Ties keep the
    first bed reported.
    """
    beds = [d for d in detections if is_bed_label(d.label)]
    if len(beds) <= 1:
        return detections

    best_bed = beds[0]
    for bed in beds[1:]:
        if bed.confidence > best_bed.confidence:
            best_bed = bed

    logger.warning(
        "duplicate_beds_collapsed",
        room=room_key,
        beds_detected=len(beds),
        kept=best_bed.label,
        kept_confidence=best_bed.confidence,
    )
    return [d for d in detections if not is_bed_label(d.label) or d is best_bed]


class RoomFurnitureDetector:
    """Detects movable items in one room's photos."""

    def __init__(
        self,
        client: Optional[ModelClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        model: Optional[str] = None
    ):
        self.client = client or ModelClient()
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings.room_max_attempts)
        self.model = model or settings.detect_model

    async def detect(
        self,
        room_key: str,
        photo_refs: Sequence[str],
        context: Optional[PropertyContext] = None
    ) -> RoomDetectionResult:
        """Detect furniture in a single room.

        Args:
            room_key: Room key from classification, e.g. "bedroom_1".
            photo_refs: The room's photo URLs.
            context: Optional listing hints.

        Returns:
            RoomDetectionResult. `failed` is set when the room degraded to empty.

        Raises:
            ValidationError: If room_key or photo_refs is missing.
        """
        if not room_key or not room_key.strip():
            raise ValidationError(
                "Room name is required",
                field="room_key",
                code=ErrorCode.MISSING_ROOM_NAME,
            )
        photos = require_photos(photo_refs)
        prompt = build_room_detection_prompt(room_key, len(photos), context)

        logger.info("room_detection_start", room=room_key, photos=len(photos))
        start_time = time.perf_counter()

        try:
            content = await self.client.complete(
                prompt,
                photos,
                model=self.model,
                detail=DETECT_DETAIL,
                max_tokens=DETECT_MAX_TOKENS,
                temperature=DETECT_TEMPERATURE,
                retry_policy=self.retry_policy,
            )
        except ModelInvocationError as e:
            logger.error(
                "room_detection_failed",
                room=room_key,
                error_code=e.code,
                status_code=e.status_code,
                attempts=e.attempts,
            )
            return RoomDetectionResult(room=room_key, failed=True, error=e.code)

        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)

        try:
            detections = parse_detection_items(content, default_room=room_key)
        except ResponseParseError as e:
            logger.warning(
                "room_detection_unparsable",
                room=room_key,
                error_code=e.code,
                content_preview=e.raw_content[:100],
            )
            return RoomDetectionResult(
                room=room_key,
                detection_time_ms=elapsed_ms,
                failed=True,
                error=e.code,
            )

        if is_bedroom(room_key):
            detections = collapse_duplicate_beds(detections, room_key)

        logger.info("room_detection_complete", room=room_key, items=len(detections), latency_ms=elapsed_ms)
        return RoomDetectionResult(room=room_key, detections=detections, detection_time_ms=elapsed_ms)

    async def iter_rooms(
        self,
        rooms: Dict[str, List[str]],
        context: Optional[PropertyContext] = None,
        delay_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ) -> AsyncIterator[RoomDetectionResult]:
        """Detect rooms one at a time, yielding each result when it completes.

        A fixed delay separates consecutive rooms. Rooms without photos are
        skipped.
        """
        delay = settings.room_delay_seconds if delay_seconds is None else delay_seconds
        pending = [(room, photos) for room, photos in rooms.items() if photos]

        for index, (room_key, photos) in enumerate(pending):
            log_room_start(room_key, len(photos), index + 1, len(pending))
            yield await self.detect(room_key, photos, context)
            if delay > 0 and index < len(pending) - 1:
                await sleep(delay)


async def detect_furniture_in_room(
    room_key: str,
    photo_refs: Sequence[str],
    context: Optional[PropertyContext] = None,
    client: Optional[ModelClient] = None
) -> RoomDetectionResult:
    """Convenience wrapper around RoomFurnitureDetector.detect."""
    return await RoomFurnitureDetector(client=client).detect(room_key, photo_refs, context)
