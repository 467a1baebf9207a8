"""Estimate calculator for MovSense.

Turns a reconciled inventory into labor hours, a suggested crew size and
a total price using a per-label calibration table. Pure and stateless:
results are recomputed on every parameter change and never persisted.
"""

import math
from typing import Iterable, Optional

import structlog

from movsense.models.detection import Detection
from movsense.models.estimate import EstimateParams, EstimateResult, MappingTable

logger = structlog.get_logger()

STAIRS_MULTIPLIER = 1.3
ELEVATOR_MULTIPLIER = 1.1

BASE_CREW = 2
MEDIUM_MOVE_CUBIC_FEET = 500
LARGE_MOVE_CUBIC_FEET = 1000
MAX_CREW = 6


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def suggest_crew(total_cubic_feet: float, stairs: bool = False, elevator: bool = False) -> int:
    """Advisory crew size from move volume and access difficulty."""
    crew = BASE_CREW
    if total_cubic_feet > LARGE_MOVE_CUBIC_FEET:
        crew = 4
    elif total_cubic_feet > MEDIUM_MOVE_CUBIC_FEET:
        crew = 3

    if stairs:
        crew = min(crew + 1, MAX_CREW)
    if elevator:
        crew = min(crew + 1, MAX_CREW)
    return crew


def calculate_estimate(
    detections: Iterable[Detection],
    mapping: MappingTable,
    params: Optional[EstimateParams] = None
) -> EstimateResult:
    """Calculate hours, crew suggestion and total price.

    Only labels present in the mapping table contribute minutes and cubic
    feet. Multipliers apply in a fixed order: stairs, elevator, then the
    safety margin. The total is priced with the caller's crew size, not
    the suggestion.

    Args:
        detections: Reconciled inventory.
        mapping: Label to calibration entry.
        params: Crew and logistics parameters.

    Returns:
        EstimateResult
    """
    params = params or EstimateParams()

    total_minutes = 0.0
    total_cubic_feet = 0.0
    unmapped = 0

    for detection in detections:
        item = mapping.get(detection.label)
        if item is None:
            unmapped += 1
            continue
        total_minutes += item.minutes * detection.qty
        total_cubic_feet += item.cubic_feet * detection.qty

    total_minutes += params.travel_mins

    if params.stairs:
        total_minutes *= STAIRS_MULTIPLIER
    if params.elevator:
        total_minutes *= ELEVATOR_MULTIPLIER

    total_minutes *= 1 + params.safety_pct / 100

    hours = total_minutes / 60
    total = hours * params.rate * params.crew

    result = EstimateResult(
        hours=_round_half_up(hours, 1),
        crew_suggestion=suggest_crew(total_cubic_feet, params.stairs, params.elevator),
        total=int(_round_half_up(total)),
        total_cubic_feet=round(total_cubic_feet, 1),
    )

    logger.info(
        "estimate_calculated",
        hours=result.hours,
        crew=params.crew,
        crew_suggestion=result.crew_suggestion,
        total=result.total,
        unmapped_items=unmapped,
    )
    return result
