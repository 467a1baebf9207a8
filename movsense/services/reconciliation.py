"""Deduplication and reconciliation of detections for MovSense.

Detections from every room (or every photo) are folded into one
accumulator keyed by room group and normalized label. Merged items keep
the first label verbatim, add quantities, keep the highest confidence and
join distinct notes. Cubic feet and weight are per-item values and are
never summed.

Reconciliation is idempotent: feeding an already reconciled list back in
returns the same list.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Union

import structlog

from movsense.models.detection import Detection, RawDetection
from movsense.services.canonicalize import (
    canonical_room_key,
    display_room_name,
    has_bedroom_descriptor,
    merge_key,
    room_group_key,
    room_number,
    room_priority,
)
from movsense.services.volume_estimator import estimate_cubic_feet, estimate_weight

logger = structlog.get_logger()

NOTES_SEPARATOR = "; "

DetectionLike = Union[RawDetection, Detection, Dict[str, Any]]


@dataclass
class _Entry:
    detection: RawDetection
    group_key: str
    original_room: Optional[str]


def _as_raw(item: DetectionLike) -> Optional[RawDetection]:
    if isinstance(item, RawDetection):
        return item
    if isinstance(item, Detection):
        return RawDetection(**item.model_dump())
    return RawDetection.from_model_item(item)


def _merge_notes(existing: Optional[str], incoming: Optional[str]) -> Optional[str]:
    if not incoming:
        return existing
    if not existing:
        return incoming
    if incoming in existing.split(NOTES_SEPARATOR):
        return existing
    return f"{existing}{NOTES_SEPARATOR}{incoming}"


def with_physical_estimates(detection: RawDetection) -> Detection:
    """Promote a merged detection, estimating cubic feet and weight when absent."""
    cubic_feet = detection.cubic_feet
    if cubic_feet is None:
        cubic_feet = estimate_cubic_feet(detection.label, detection.size)
    weight = detection.weight
    if weight is None:
        weight = estimate_weight(cubic_feet, detection.label, detection.size)

    return Detection(
        label=detection.label,
        qty=detection.qty,
        confidence=detection.confidence,
        notes=detection.notes,
        room=detection.room or "Other",
        size=detection.size,
        cubic_feet=cubic_feet,
        weight=weight,
    )


def fill_physical_estimates(detections: Iterable[DetectionLike]) -> List[Detection]:
    """Fill missing cubic feet and weight across a list, keeping its order."""
    filled = []
    for item in detections:
        detection = _as_raw(item)
        if detection is not None:
            filled.append(with_physical_estimates(detection))
    return filled


class ReconciliationEngine:
    """Accumulates detections and produces the canonical inventory.

    The engine is the only writer of its state. Call `add` as results
    arrive and `results` for the current ordered snapshot.
    """

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}
        self._merged_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, detections: Iterable[DetectionLike]) -> int:
        """Fold detections into the accumulator.

        Returns:
            Number of detections merged into an existing entry.
        """
        merged = 0
        for item in detections:
            detection = _as_raw(item)
            if detection is None:
                continue

            key = merge_key(detection.room, detection.label)
            entry = self._entries.get(key)
            if entry is None:
                # RawDetection already defaults qty and confidence
                self._entries[key] = _Entry(
                    detection=detection.model_copy(),
                    group_key=room_group_key(detection.room),
                    original_room=detection.room,
                )
                continue

            current = entry.detection
            entry.detection = current.model_copy(update={
                "qty": current.qty + detection.qty,
                "confidence": max(current.confidence, detection.confidence),
                "notes": _merge_notes(current.notes, detection.notes),
                "size": current.size or detection.size,
                "cubic_feet": current.cubic_feet if current.cubic_feet is not None else detection.cubic_feet,
                "weight": current.weight if current.weight is not None else detection.weight,
            })
            merged += 1

        self._merged_count += merged
        return merged

    def room_names(self) -> Dict[str, str]:
        """Display name for every room group seen so far.

        Undescribed bedrooms are numbered "Bedroom 1", "Bedroom 2", ... in
        first-seen order when there is more than one, skipping numbers
        already claimed by explicitly numbered bedrooms. A single
        undescribed bedroom is just "Bedroom".
        """
        names: Dict[str, str] = {}
        candidates: List[str] = []
        taken: Set[int] = set()

        for entry in self._entries.values():
            group = entry.group_key
            if group in names or group in candidates:
                continue
            room = entry.original_room
            if canonical_room_key(room) == "bedroom" and not has_bedroom_descriptor(room):
                candidates.append(group)
                continue
            names[group] = display_room_name(room)
            if canonical_room_key(room) == "bedroom":
                number = room_number(names[group])
                if number is not None:
                    taken.add(number)

        if len(candidates) == 1:
            names[candidates[0]] = "Bedroom"
        elif candidates:
            number = 0
            for group in candidates:
                number += 1
                while number in taken:
                    number += 1
                names[group] = f"Bedroom {number}"

        return names

    def results(self) -> List[Detection]:
        """Reconciled, estimated and ordered inventory."""
        names = self.room_names()
        detections = [
            with_physical_estimates(entry.detection.model_copy(update={"room": names[entry.group_key]}))
            for entry in self._entries.values()
        ]
        detections.sort(key=lambda d: (room_priority(d.room), d.label.lower(), d.label))

        logger.info(
            "reconciliation_complete",
            unique_items=len(detections),
            merged=self._merged_count,
            rooms=len(set(names.values())),
        )
        return detections


def reconcile(detections: Iterable[DetectionLike]) -> List[Detection]:
    """Merge duplicates and return the canonical, ordered inventory."""
    engine = ReconciliationEngine()
    engine.add(detections)
    return engine.results()
