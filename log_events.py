"""
Event helper functions for structured JSON logging.

This module provides consistent event emission and stage timing utilities
for the resolution pipeline.
"""

import logging
import time
from typing import Optional

from transcript_errors import TranscriptError

logger = logging.getLogger('transcript_resolver')


def evt(event: str, **fields) -> None:
    """
    Emit a structured event with consistent field naming.

    Args:
        event: The event type/name
        **fields: Additional fields to include in the event

    Example:
        evt("catalog_parsed", video_id="abc123", track_count=3)
    """
    event_data = {"event": event}
    event_data.update(fields)
    logger.info("", extra=event_data)


class StageTimer:
    """
    Context manager for automatic stage timing with structured logging.

    Emits stage_start on entry and stage_result on exit, with duration and
    the domain error code when the stage raised.

    Example:
        with StageTimer("innertube", video_id=video_id):
            data = fetch_player_response()
    """

    def __init__(self, stage: str, **context_fields):
        self.stage = stage
        self.context_fields = context_fields
        self.start_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.monotonic()
        evt("stage_start", stage=self.stage, **self.context_fields)
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        duration_ms = 0
        if self.start_time is not None:
            duration_ms = int((time.monotonic() - self.start_time) * 1000)

        event_fields = {
            "stage": self.stage,
            "outcome": "success" if exc_type is None else "error",
            "dur_ms": duration_ms,
            **self.context_fields,
        }
        if exc_type is not None:
            event_fields["error_type"] = classify_error_type(exc_value)
            event_fields["detail"] = f"{exc_type.__name__}: {exc_value}"

        evt("stage_result", **event_fields)

        # Let the exception propagate
        return False


def time_stage(stage: str, **context_fields) -> StageTimer:
    """
    Create a StageTimer context manager for the given stage.

    Example:
        with time_stage("timedtext_parse", video_id="abc123"):
            parse_timedtext(payload)
    """
    return StageTimer(stage, **context_fields)


def classify_error_type(exception: BaseException) -> str:
    """
    Classify an exception into an error type for structured logging.

    Domain errors report their own code; anything else falls into a
    heuristic bucket.
    """
    if isinstance(exception, TranscriptError):
        return exception.error_code

    exception_str = str(exception).lower()

    if any(term in exception_str for term in ["connection", "timeout", "timed out", "network", "dns", "ssl", "proxy"]):
        return "network_error"

    if "json" in exception_str or "decode" in exception_str or "parse" in exception_str:
        return "parse_error"

    return "service_error"
