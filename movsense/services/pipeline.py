"""Detection pipeline orchestrator for MovSense.

Runs the phases of one detection job end to end:

1. Room classification (one model call, falls back to "all_rooms")
2. Per-room furniture detection, sequential with a delay between rooms
3. Reconciliation, volume/weight fill and advisory validation

The pipeline never raises on a detection failure. The worst case is an
empty or coarse inventory. Only caller input errors propagate.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

from movsense.models.detection import Detection, RawDetection, RoomDetectionResult
from movsense.models.property import PropertyContext
from movsense.models.validation import InventoryValidation
from movsense.services.inventory_validator import validate_inventory
from movsense.services.model_client import ModelClient
from movsense.services.photo_detector import PhotoFurnitureDetector
from movsense.services.reconciliation import ReconciliationEngine
from movsense.services.room_classifier import FALLBACK_ROOM, RoomClassifier, require_photos
from movsense.services.room_detector import RoomFurnitureDetector
from movsense.utils.pipeline_logger import (
    log_pipeline_start,
    log_pipeline_complete,
    log_room_result,
    log_validation,
)

logger = structlog.get_logger()

RoomCallback = Callable[[RoomDetectionResult, List[Detection]], Any]


class InventoryResult(BaseModel):
    """Final output of a detection job."""

    job_id: str = Field(alias="jobId")
    detections: List[Detection] = Field(default_factory=list)
    rooms: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Room key to photo references, empty for the whole-photo path"
    )
    validation: InventoryValidation = Field(default_factory=InventoryValidation)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @property
    def failed_rooms(self) -> List[str]:
        return list(self.metadata.get("failedRooms", []))

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "detections": [d.to_api_dict() for d in self.detections],
            "rooms": self.rooms,
            "validation": self.validation.model_dump(),
            "metadata": self.metadata,
        }


def _stamp_room(detections: List[RawDetection], room_key: str) -> List[RawDetection]:
    """Attribute a room's detections to the room they were requested for.

    The classification key is authoritative: two bedrooms whose items the
    model both labels "bedroom" must not merge. The fallback group carries
    no room information, so the model's own room names are kept there.
    """
    if room_key == FALLBACK_ROOM:
        return detections
    return [d.model_copy(update={"room": room_key}) for d in detections]


class InventoryPipeline:
    """Runs detection jobs against one model client."""

    def __init__(
        self,
        client: Optional[ModelClient] = None,
        classifier: Optional[RoomClassifier] = None,
        room_detector: Optional[RoomFurnitureDetector] = None,
        photo_detector: Optional[PhotoFurnitureDetector] = None,
        room_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.client = client or ModelClient()
        self.classifier = classifier or RoomClassifier(client=self.client)
        self.room_detector = room_detector or RoomFurnitureDetector(client=self.client)
        self.photo_detector = photo_detector or PhotoFurnitureDetector(client=self.client)
        self.room_delay_seconds = room_delay_seconds
        self._sleep = sleep

    async def run(
        self,
        photo_refs: Sequence[str],
        context: Optional[PropertyContext] = None,
        job_id: Optional[str] = None,
        on_room: Optional[RoomCallback] = None
    ) -> InventoryResult:
        """Run the room-aware detection pipeline.

        Args:
            photo_refs: Photo URLs, in upload order.
            context: Optional listing hints.
            job_id: Identifier used in logs. Generated when omitted.
            on_room: Called after each room with the room result and the
                reconciled inventory so far. May be a coroutine function.

        Returns:
            InventoryResult

        Raises:
            ValidationError: If photo_refs is empty.
        """
        photos = require_photos(photo_refs)
        context = context or PropertyContext()
        job_id = job_id or f"job-{uuid4().hex[:12]}"
        start_time = time.perf_counter()

        log_pipeline_start(job_id, len(photos), mode="per-room")

        classification = await self.classifier.classify(photos, context)
        rooms = classification.rooms

        engine = ReconciliationEngine()
        failed_rooms: List[str] = []
        detection_time_ms = 0.0

        async for result in self.room_detector.iter_rooms(
            rooms,
            context,
            delay_seconds=self.room_delay_seconds,
            sleep=self._sleep,
        ):
            engine.add(_stamp_room(result.detections, result.room))
            detection_time_ms += result.detection_time_ms
            if result.failed:
                failed_rooms.append(result.room)

            log_room_result(result.room, len(result.detections), result.detection_time_ms, result.failed)

            if on_room is not None:
                outcome = on_room(result, engine.results())
                if asyncio.iscoroutine(outcome):
                    await outcome

        detections = engine.results()
        validation = validate_inventory(detections, context)
        log_validation(validation.anomalies, validation.warnings, validation.stats)

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        metadata = {
            "totalRooms": classification.metadata.total_rooms,
            "totalPhotos": len(photos),
            "classificationTimeMs": classification.metadata.detection_time_ms,
            "classificationFallback": classification.metadata.fallback,
            "detectionTimeMs": round(detection_time_ms, 2),
            "failedRooms": failed_rooms,
            "totalDurationMs": duration_ms,
            "totalTokensUsed": self.client.total_tokens_used,
        }

        log_pipeline_complete(
            job_id,
            item_count=len(detections),
            room_count=len({d.room for d in detections}),
            duration_ms=duration_ms,
            failed_rooms=failed_rooms,
        )

        return InventoryResult(
            job_id=job_id,
            detections=detections,
            rooms=rooms,
            validation=validation,
            metadata=metadata,
        )

    async def run_whole_photo(
        self,
        photo_refs: Sequence[str],
        context: Optional[PropertyContext] = None,
        job_id: Optional[str] = None
    ) -> InventoryResult:
        """Run the non-room-aware path: every photo analyzed on its own.

        Raises:
            ValidationError: If photo_refs is empty.
        """
        photos = require_photos(photo_refs)
        context = context or PropertyContext()
        job_id = job_id or f"job-{uuid4().hex[:12]}"
        start_time = time.perf_counter()

        log_pipeline_start(job_id, len(photos), mode="whole-photo")

        raw = await self.photo_detector.detect(photos)
        detection_time_ms = round((time.perf_counter() - start_time) * 1000, 2)

        engine = ReconciliationEngine()
        engine.add(raw)
        detections = engine.results()

        validation = validate_inventory(detections, context)
        log_validation(validation.anomalies, validation.warnings, validation.stats)

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        metadata = {
            "totalRooms": len({d.room for d in detections}),
            "totalPhotos": len(photos),
            "processedPhotos": min(len(photos), self.photo_detector.max_photos),
            "classificationTimeMs": 0.0,
            "detectionTimeMs": detection_time_ms,
            "failedRooms": [],
            "totalDurationMs": duration_ms,
            "totalTokensUsed": self.client.total_tokens_used,
        }

        log_pipeline_complete(
            job_id,
            item_count=len(detections),
            room_count=metadata["totalRooms"],
            duration_ms=duration_ms,
            failed_rooms=[],
        )

        return InventoryResult(
            job_id=job_id,
            detections=detections,
            validation=validation,
            metadata=metadata,
        )
