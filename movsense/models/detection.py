"""Detection models for MovSense.

Pydantic models for raw model detections, reconciled inventory items and
the per-phase results of the detection pipeline.
"""

import math
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field, ValidationError as ModelValidationError
import structlog

logger = structlog.get_logger()

DEFAULT_QTY = 1
DEFAULT_CONFIDENCE = 0.5


def _coerce_qty(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_QTY
    if not math.isfinite(number):
        return DEFAULT_QTY
    qty = int(round(number))
    return qty if qty >= 1 else DEFAULT_QTY


def _coerce_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_CONFIDENCE
    if not math.isfinite(confidence):
        return DEFAULT_CONFIDENCE
    return min(max(confidence, 0.0), 1.0)


def _coerce_positive(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 and math.isfinite(number) else None


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class RawDetection(BaseModel):
    """One item candidate exactly as a model call reported it."""

    label: str = Field(description="Free-text item label")
    qty: int = Field(default=DEFAULT_QTY, ge=1, description="Item count")
    confidence: float = Field(
        default=DEFAULT_CONFIDENCE,
        ge=0.0,
        le=1.0,
        description="Model confidence (0-1)"
    )
    notes: Optional[str] = Field(default=None, description="Free-text notes")
    room: Optional[str] = Field(default=None, description="Room as returned by the model")
    size: Optional[str] = Field(default=None, description="Size descriptor, e.g. 'Queen' or '55-inch'")
    cubic_feet: Optional[float] = Field(
        default=None,
        alias="cubicFeet",
        ge=0.0,
        description="Model-estimated cubic feet"
    )
    weight: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Model-estimated weight in pounds"
    )

    class Config:
        populate_by_name = True

    @classmethod
    def from_model_item(cls, item: Any, default_room: Optional[str] = None) -> Optional["RawDetection"]:
        """Validate one item object parsed from model output.

        Malformed fields are defaulted. Items without a usable label are
        rejected by returning None.

        Args:
            item: One element of the parsed JSON array.
            default_room: Room to use when the item does not name one.

        Returns:
            RawDetection, or None if the item is unusable.
        """
        if not isinstance(item, dict):
            logger.warning("detection_item_rejected", reason="not_an_object", item_type=type(item).__name__)
            return None

        label = _clean_text(item.get("label") or item.get("name"))
        if not label:
            logger.warning("detection_item_rejected", reason="missing_label")
            return None

        try:
            return cls(
                label=label,
                qty=_coerce_qty(item.get("qty", item.get("quantity", DEFAULT_QTY))),
                confidence=_coerce_confidence(item.get("confidence", DEFAULT_CONFIDENCE)),
                notes=_clean_text(item.get("notes")),
                room=_clean_text(item.get("room")) or default_room,
                size=_clean_text(item.get("size") or item.get("sizeDescriptor")),
                cubic_feet=_coerce_positive(item.get("cubicFeet", item.get("cubic_feet"))),
                weight=_coerce_positive(item.get("weight")),
            )
        except ModelValidationError as e:
            logger.warning("detection_item_rejected", reason="invalid_fields", errors=e.error_count())
            return None

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dict for API responses."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Detection(BaseModel):
    """A reconciled inventory item.

    `room` holds the display room name. `cubic_feet` and `weight` are
    always filled once the volumetric estimator has run.
    """

    label: str = Field(description="Item label, preserved verbatim")
    qty: int = Field(ge=1, description="Deduplicated total count")
    confidence: float = Field(ge=0.0, le=1.0, description="Highest merged confidence")
    notes: Optional[str] = Field(default=None, description="Merged notes")
    room: str = Field(description="Display room name")
    size: Optional[str] = Field(default=None, description="Size descriptor")
    cubic_feet: float = Field(alias="cubicFeet", ge=0.0, description="Cubic feet per item")
    weight: float = Field(ge=0.0, description="Weight per item in pounds")

    class Config:
        populate_by_name = True

    @property
    def total_cubic_feet(self) -> float:
        return self.cubic_feet * self.qty

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dict for API responses."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ClassificationMetadata(BaseModel):
    """Metadata reported with a room classification."""

    detection_time_ms: float = Field(default=0.0, alias="detectionTimeMs")
    total_rooms: int = Field(default=0, alias="totalRooms")
    total_photos: int = Field(default=0, alias="totalPhotos")
    fallback: bool = Field(
        default=False,
        description="True when classification failed and all photos were grouped together"
    )

    class Config:
        populate_by_name = True


class RoomClassification(BaseModel):
    """Phase 1 output: room key to ordered photo references."""

    rooms: Dict[str, List[str]] = Field(default_factory=dict)
    metadata: ClassificationMetadata = Field(default_factory=ClassificationMetadata)

    class Config:
        populate_by_name = True

    def to_api_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class RoomDetectionResult(BaseModel):
    """Phase 2 output for a single room."""

    room: str = Field(description="Room key the detections belong to")
    detections: List[RawDetection] = Field(default_factory=list)
    detection_time_ms: float = Field(default=0.0, alias="detectionTimeMs")
    failed: bool = Field(
        default=False,
        description="True when the room degraded to empty after a model or parse failure"
    )
    error: Optional[str] = Field(default=None, description="Error code when failed")

    class Config:
        populate_by_name = True

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "room": self.room,
            "detections": [d.to_api_dict() for d in self.detections],
            "detectionTimeMs": self.detection_time_ms,
            "failed": self.failed,
            "error": self.error,
        }
