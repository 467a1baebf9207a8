"""Whole-photo furniture detection for MovSense.

The non-room-aware path: every photo is analyzed on its own. Photos are
capped, split into fixed-size batches, batches run strictly in order and
photos inside a batch run concurrently. A photo that times out or exhausts
its retries contributes no detections.
"""

import asyncio
from typing import List, Optional, Sequence

import structlog

from movsense.config.settings import settings
from movsense.config.errors import ModelInvocationError, ResponseParseError
from movsense.models.detection import RawDetection
from movsense.services.model_client import ModelClient, RetryPolicy
from movsense.services.prompts import PHOTO_DETECTION_SYSTEM_PROMPT, PHOTO_DETECTION_USER_PROMPT
from movsense.services.response_parser import parse_detection_items
from movsense.services.room_classifier import require_photos

logger = structlog.get_logger()

PHOTO_MAX_TOKENS = 1800
PHOTO_TEMPERATURE = 0.15
PHOTO_DETAIL = "high"


def merge_photo_detections(detections: Sequence[RawDetection]) -> List[RawDetection]:
    """Merge detections that share an exact (label, room) pair.

    Quantities add, confidence takes the maximum and cubic feet add when
    both sides have a value. Output keeps first-seen order.
    """
    merged: dict = {}
    for detection in detections:
        key = (detection.label, detection.room)
        existing = merged.get(key)
        if existing is None:
            merged[key] = detection.model_copy()
            continue

        cubic_feet = existing.cubic_feet
        if existing.cubic_feet is not None and detection.cubic_feet is not None:
            cubic_feet = existing.cubic_feet + detection.cubic_feet
        elif cubic_feet is None:
            cubic_feet = detection.cubic_feet

        merged[key] = existing.model_copy(update={
            "qty": existing.qty + detection.qty,
            "confidence": max(existing.confidence, detection.confidence),
            "cubic_feet": cubic_feet,
        })
    return list(merged.values())


class PhotoFurnitureDetector:
    """Detects furniture photo by photo without room context."""

    def __init__(
        self,
        client: Optional[ModelClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        model: Optional[str] = None,
        max_photos: Optional[int] = None,
        batch_size: Optional[int] = None,
        photo_timeout: Optional[float] = None
    ):
        self.client = client or ModelClient()
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings.photo_max_attempts)
        self.model = model or settings.photo_detect_model
        self.max_photos = max_photos or settings.max_photos
        self.batch_size = batch_size or settings.photo_batch_size
        self.photo_timeout = photo_timeout or settings.photo_timeout_seconds

    async def detect(self, photo_refs: Sequence[str]) -> List[RawDetection]:
        """Detect furniture across photos.

        Raises:
            ValidationError: If photo_refs is empty.
        """
        photos = require_photos(photo_refs)
        to_process = photos[:self.max_photos]
        if len(to_process) < len(photos):
            logger.warning("photo_limit_applied", requested=len(photos), processed=len(to_process))

        batches = [
            to_process[i:i + self.batch_size]
            for i in range(0, len(to_process), self.batch_size)
        ]

        all_detections: List[RawDetection] = []
        for batch_number, batch in enumerate(batches, start=1):
            results = await asyncio.gather(*(self._detect_photo(url) for url in batch))
            batch_count = 0
            for photo_detections in results:
                all_detections.extend(photo_detections)
                batch_count += len(photo_detections)
            logger.info(
                "photo_batch_complete",
                batch=batch_number,
                total_batches=len(batches),
                photos=len(batch),
                detections=batch_count,
            )

        merged = merge_photo_detections(all_detections)
        logger.info(
            "photo_detection_complete",
            photos=len(to_process),
            raw_detections=len(all_detections),
            unique_detections=len(merged),
        )
        return merged

    async def _detect_photo(self, photo_url: str) -> List[RawDetection]:
        """Analyze a single photo. Failures degrade to an empty list."""
        try:
            content = await self.client.complete(
                PHOTO_DETECTION_USER_PROMPT,
                [photo_url],
                model=self.model,
                detail=PHOTO_DETAIL,
                max_tokens=PHOTO_MAX_TOKENS,
                temperature=PHOTO_TEMPERATURE,
                system_prompt=PHOTO_DETECTION_SYSTEM_PROMPT,
                json_object=True,
                retry_policy=self.retry_policy,
                timeout=self.photo_timeout,
            )
            return parse_detection_items(content)
        except ModelInvocationError as e:
            logger.error(
                "photo_detection_failed",
                photo=photo_url[:120],
                error_code=e.code,
                status_code=e.status_code,
                attempts=e.attempts,
            )
        except ResponseParseError as e:
            logger.warning("photo_detection_unparsable", photo=photo_url[:120], error_code=e.code)
        return []


async def detect_furniture(
    photo_refs: Sequence[str],
    client: Optional[ModelClient] = None
) -> List[RawDetection]:
    """Convenience wrapper around PhotoFurnitureDetector.detect."""
    return await PhotoFurnitureDetector(client=client).detect(photo_refs)
