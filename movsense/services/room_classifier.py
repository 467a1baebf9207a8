"""Room classification (Phase 1) for MovSense.

Submits all photos in one model call and groups them by room key.
Classification failures never abort the pipeline: the fallback is a single
"all_rooms" group holding every photo.
"""

import time
from typing import List, Optional, Sequence

import structlog

from movsense.config.settings import settings
from movsense.config.errors import ErrorCode, ModelInvocationError, ResponseParseError, ValidationError
from movsense.models.detection import ClassificationMetadata, RoomClassification
from movsense.models.property import PropertyContext
from movsense.services.model_client import ModelClient, RetryPolicy
from movsense.services.prompts import build_classification_prompt
from movsense.services.response_parser import parse_room_mapping

logger = structlog.get_logger()

FALLBACK_ROOM = "all_rooms"
CLASSIFY_MAX_TOKENS = 1000
CLASSIFY_TEMPERATURE = 0.1
CLASSIFY_DETAIL = "low"


def require_photos(photo_refs: Optional[Sequence[str]]) -> List[str]:
    """Reject an empty photo list before any model call is made."""
    if not photo_refs:
        raise ValidationError(
            "At least one photo reference is required",
            field="photo_refs",
            code=ErrorCode.EMPTY_PHOTO_LIST,
        )
    return list(photo_refs)


class RoomClassifier:
    """Groups property photos into rooms with one model call."""

    def __init__(
        self,
        client: Optional[ModelClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        model: Optional[str] = None
    ):
        self.client = client or ModelClient()
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings.classify_max_attempts)
        self.model = model or settings.classify_model

    async def classify(
        self,
        photo_refs: Sequence[str],
        context: Optional[PropertyContext] = None
    ) -> RoomClassification:
        """Classify photos by room.

        Args:
            photo_refs: Photo URLs, in upload order.
            context: Optional listing hints.

        Returns:
            RoomClassification mapping room keys to photo URLs.

        Raises:
            ValidationError: If photo_refs is empty.
        """
        photos = require_photos(photo_refs)
        context = context or PropertyContext()
        prompt = build_classification_prompt(len(photos), context)

        logger.info("room_classification_start", total_photos=len(photos), bedrooms=context.bedrooms)
        start_time = time.perf_counter()

        try:
            content = await self.client.complete(
                prompt,
                photos,
                model=self.model,
                detail=CLASSIFY_DETAIL,
                max_tokens=CLASSIFY_MAX_TOKENS,
                temperature=CLASSIFY_TEMPERATURE,
                retry_policy=self.retry_policy,
            )
            mapping = parse_room_mapping(content, len(photos))
        except (ModelInvocationError, ResponseParseError) as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "room_classification_failed",
                error_code=e.code,
                error=e.message,
                attempts=getattr(e, "attempts", None),
                fallback=FALLBACK_ROOM,
            )
            return self._fallback(photos, elapsed_ms)

        elapsed_ms = (time.perf_counter() - start_time) * 1000

        if not mapping:
            logger.warning("room_classification_empty", fallback=FALLBACK_ROOM)
            return self._fallback(photos, elapsed_ms)

        rooms = {room: [photos[i] for i in indices] for room, indices in mapping.items()}

        logger.info(
            "room_classification_complete",
            total_rooms=len(rooms),
            rooms=list(rooms.keys()),
            latency_ms=round(elapsed_ms, 2),
        )
        return RoomClassification(
            rooms=rooms,
            metadata=ClassificationMetadata(
                detection_time_ms=round(elapsed_ms, 2),
                total_rooms=len(rooms),
                total_photos=len(photos),
            ),
        )

    def _fallback(self, photos: List[str], elapsed_ms: float) -> RoomClassification:
        return RoomClassification(
            rooms={FALLBACK_ROOM: list(photos)},
            metadata=ClassificationMetadata(
                detection_time_ms=round(elapsed_ms, 2),
                total_rooms=1,
                total_photos=len(photos),
                fallback=True,
            ),
        )


async def classify_rooms(
    photo_refs: Sequence[str],
    context: Optional[PropertyContext] = None,
    client: Optional[ModelClient] = None
) -> RoomClassification:
    """Convenience wrapper around RoomClassifier.classify."""
    return await RoomClassifier(client=client).classify(photo_refs, context)
