"""MovSense data models."""

from movsense.models.property import PropertyContext
from movsense.models.detection import (
    RawDetection,
    Detection,
    RoomClassification,
    ClassificationMetadata,
    RoomDetectionResult,
)
from movsense.models.estimate import (
    MappingItem,
    MappingTable,
    EstimateParams,
    EstimateResult,
    load_mapping_table,
)
from movsense.models.validation import InventoryValidation

__all__ = [
    "PropertyContext",
    "RawDetection",
    "Detection",
    "RoomClassification",
    "ClassificationMetadata",
    "RoomDetectionResult",
    "MappingItem",
    "MappingTable",
    "EstimateParams",
    "EstimateResult",
    "load_mapping_table",
    "InventoryValidation",
]
