"""Utility modules for MovSense."""

from movsense.utils.pipeline_logger import (
    log_pipeline_start,
    log_pipeline_complete,
    log_room_start,
    log_room_result,
    log_validation,
)

__all__ = [
    "log_pipeline_start",
    "log_pipeline_complete",
    "log_room_start",
    "log_room_result",
    "log_validation",
]
