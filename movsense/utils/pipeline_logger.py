"""Pipeline progress logger for MovSense.

Prints highly visible banner blocks for pipeline and room progress so a
detection job can be followed in a console, and mirrors every banner with
a structlog event for log aggregation.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog

logger = structlog.get_logger()

BANNER_WIDTH = 80
PIPELINE_BANNER_CHAR = "█"
ROOM_BANNER_CHAR = "═"
VALIDATION_BANNER_CHAR = "░"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _format_json(data: Dict[str, Any], indent: int = 2) -> str:
    try:
        return json.dumps(data, indent=indent, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(data)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_pipeline_start(job_id: str, photo_count: int, mode: str = "per-room") -> None:
    """Log pipeline start with prominent banner."""
    print("\n")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PIPELINE_BANNER_CHAR, "MOVSENSE DETECTION STARTED"))
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Job ID      : {job_id}")
    print(f"║ Timestamp   : {_timestamp()}")
    print(f"║ Photos      : {photo_count}")
    print(f"║ Mode        : {mode}")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info("pipeline_start_logged", job_id=job_id, photo_count=photo_count, mode=mode)


def log_pipeline_complete(
    job_id: str,
    item_count: int,
    room_count: int,
    duration_ms: int,
    failed_rooms: List[str]
) -> None:
    """Log pipeline completion with summary."""
    title = "✓ DETECTION COMPLETED" if not failed_rooms else "✓ DETECTION COMPLETED WITH GAPS"

    print("\n")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PIPELINE_BANNER_CHAR, title))
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Job ID       : {job_id}")
    print(f"║ Timestamp    : {_timestamp()}")
    print(f"║ Duration     : {duration_ms:,} ms ({duration_ms / 1000:.2f}s)")
    print(f"║ Items        : {item_count}")
    print(f"║ Rooms        : {room_count}")
    print(f"║ Failed Rooms : {', '.join(failed_rooms) if failed_rooms else 'None'}")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "pipeline_complete_logged",
        job_id=job_id,
        item_count=item_count,
        room_count=room_count,
        duration_ms=duration_ms,
        failed_rooms=failed_rooms,
    )


def log_room_start(room: str, photo_count: int, position: int, total: int) -> None:
    print(ROOM_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(ROOM_BANNER_CHAR, f"▶ ROOM {position}/{total}: {room.upper()}"))
    print(f"║ Photos : {photo_count}")

    logger.info("room_start_logged", room=room, photo_count=photo_count, position=position, total=total)


def log_room_result(room: str, item_count: int, detection_time_ms: float, failed: bool = False) -> None:
    status = "FAILED (no items)" if failed else "DONE"
    print(f"║ Status : {status}")
    print(f"║ Items  : {item_count}")
    print(f"║ Time   : {detection_time_ms:,.0f} ms")
    print(ROOM_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "room_result_logged",
        room=room,
        item_count=item_count,
        detection_time_ms=detection_time_ms,
        failed=failed,
    )


def log_validation(anomalies: List[str], warnings: List[str], stats: Dict[str, Any]) -> None:
    """Log validation findings. Silent on the console when there is nothing to report."""
    if anomalies or warnings:
        print("\n")
        print(VALIDATION_BANNER_CHAR * BANNER_WIDTH)
        print(_create_banner(VALIDATION_BANNER_CHAR, "⚠ INVENTORY REVIEW"))
        print(VALIDATION_BANNER_CHAR * BANNER_WIDTH)
        for anomaly in anomalies:
            print(f"║ ANOMALY : {anomaly}")
        for warning in warnings:
            print(f"║ WARNING : {warning}")
        print("║ Stats:")
        for line in _format_json(stats).split("\n"):
            print(f"║   {line}")
        print(VALIDATION_BANNER_CHAR * BANNER_WIDTH)
        print("\n")

    logger.info(
        "validation_logged",
        anomalies=len(anomalies),
        warnings=len(warnings),
        stats=stats,
    )
