"""MovSense services.

Model access, the detection phases, reconciliation and estimation.
"""

from movsense.services.model_client import ModelClient, RetryPolicy
from movsense.services.room_classifier import RoomClassifier, classify_rooms
from movsense.services.room_detector import RoomFurnitureDetector, detect_furniture_in_room
from movsense.services.photo_detector import PhotoFurnitureDetector, detect_furniture
from movsense.services.reconciliation import ReconciliationEngine, reconcile, fill_physical_estimates
from movsense.services.volume_estimator import estimate_cubic_feet, estimate_weight
from movsense.services.estimate_calculator import calculate_estimate
from movsense.services.inventory_validator import validate_inventory
from movsense.services.pipeline import InventoryPipeline, InventoryResult

__all__ = [
    "ModelClient",
    "RetryPolicy",
    "RoomClassifier",
    "classify_rooms",
    "RoomFurnitureDetector",
    "detect_furniture_in_room",
    "PhotoFurnitureDetector",
    "detect_furniture",
    "ReconciliationEngine",
    "reconcile",
    "fill_physical_estimates",
    "estimate_cubic_feet",
    "estimate_weight",
    "calculate_estimate",
    "validate_inventory",
    "InventoryPipeline",
    "InventoryResult",
]
