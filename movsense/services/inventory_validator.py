"""Inventory validation (Phase 3) for MovSense.

Sanity checks on a reconciled inventory against the listing. Findings are
advisory: the inventory itself is never changed.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

import structlog

from movsense.models.detection import Detection
from movsense.models.property import PropertyContext
from movsense.models.validation import InventoryValidation

logger = structlog.get_logger()

BED_EXCLUSIONS = ("sofa", "couch", "nightstand", "bedside")

MIN_VOLUME_RATIO = 0.15  # lightly furnished
MAX_VOLUME_RATIO = 0.50  # heavily furnished
VOLUME_ANOMALY_FACTOR = 1.5

MAX_APPLIANCES_PER_ROOM = 2
APPLIANCE_CHECKS = (("refrigerator", "refrigerators"), ("stove", "stoves"))


def count_beds(detections: Iterable[Detection]) -> int:
    total = 0
    for detection in detections:
        label = detection.label.lower()
        if "bed" in label and not any(word in label for word in BED_EXCLUSIONS):
            total += detection.qty
    return total


def validate_inventory(
    detections: List[Detection],
    context: Optional[PropertyContext] = None
) -> InventoryValidation:
    """Check a reconciled inventory for likely detection mistakes.

    Args:
        detections: Reconciled inventory.
        context: Listing hints. Checks needing a missing hint are skipped.

    Returns:
        InventoryValidation with anomalies, warnings and summary stats.
    """
    context = context or PropertyContext()
    validation = InventoryValidation()

    beds = count_beds(detections)
    validation.stats["bedsDetected"] = beds
    validation.stats["expectedBedrooms"] = context.bedrooms

    if context.bedrooms:
        if beds > context.bedrooms + 1:
            validation.anomalies.append(
                f"Detected {beds} beds, but property has {context.bedrooms} bedrooms. This seems high."
            )
        elif beds < context.bedrooms - 1:
            validation.warnings.append(
                f"Detected {beds} beds, but property has {context.bedrooms} bedrooms. "
                "Some bedrooms may be unfurnished."
            )

    total_cubic_feet = sum(d.total_cubic_feet for d in detections)
    validation.stats["totalCubicFeet"] = round(total_cubic_feet, 1)

    if context.sqft:
        expected_min = context.sqft * MIN_VOLUME_RATIO
        expected_max = context.sqft * MAX_VOLUME_RATIO
        validation.stats["expectedVolumeRange"] = f"{round(expected_min)}-{round(expected_max)} cu ft"

        if total_cubic_feet > expected_max * VOLUME_ANOMALY_FACTOR:
            validation.anomalies.append(
                f"Total volume ({round(total_cubic_feet)} cu ft) seems very high for a "
                f"{context.sqft} sq ft property. Please review counts."
            )

    room_counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for detection in detections:
        room_counts[detection.room or "unknown"][detection.label.lower()] += detection.qty

    for room, items in room_counts.items():
        for label, count in items.items():
            for keyword, plural in APPLIANCE_CHECKS:
                if keyword in label and count > MAX_APPLIANCES_PER_ROOM:
                    validation.anomalies.append(
                        f"{count} {plural} detected in {room} - possible duplicate"
                    )

    validation.stats["totalItems"] = sum(d.qty for d in detections)
    validation.stats["roomCount"] = len(room_counts)

    if validation.has_anomalies:
        logger.warning(
            "inventory_anomalies_detected",
            anomalies=len(validation.anomalies),
            warnings=len(validation.warnings),
        )
    else:
        logger.info("inventory_validated", warnings=len(validation.warnings))

    return validation
