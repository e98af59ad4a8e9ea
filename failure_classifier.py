"""
Maps upstream failure signals onto the domain error hierarchy.

Two independent policies:
- HTTP status codes, checked on every upstream response before its body is read.
- The InnerTube ``playabilityStatus`` block, checked after the JSON decodes.

The reason-text predicates below match free text from an undocumented API.
They are pinned to observed upstream samples in the tests and will break
silently if YouTube rewords its messages.
"""

from typing import Any, Mapping, Optional

from logging_setup import get_logger
from transcript_errors import (
    InvalidVideoIdError,
    IpBlockedError,
    RequestBlockedError,
    TooManyRequestsError,
    TranscriptFetchError,
    VideoUnavailableError,
)

logger = get_logger(__name__)

PLAYABILITY_OK = "OK"
PLAYABILITY_LOGIN_REQUIRED = "LOGIN_REQUIRED"
PLAYABILITY_ERROR = "ERROR"


# --- Brittle upstream predicates ---

def is_bot_check_reason(reason: Optional[str]) -> bool:
    """'Sign in to confirm you're not a bot' (upstream wording, may change)."""
    return bool(reason) and "not a bot" in reason


def is_age_restricted_reason(reason: Optional[str]) -> bool:
    """'This video may be inappropriate for some users.' (upstream wording, may change)."""
    return bool(reason) and "inappropriate" in reason


def is_unavailable_reason(reason: Optional[str]) -> bool:
    """'Video unavailable' / 'This video is unavailable' (upstream wording, may change)."""
    return bool(reason) and "unavailable" in reason


def looks_like_url(video_id: str) -> bool:
    return video_id.startswith(("http://", "https://"))


# --- Policies ---

def check_http_status(status_code: int, video_id: Optional[str]) -> None:
    """Raise the domain error for a failing HTTP status; return for success."""
    if status_code == 429:
        raise TooManyRequestsError(video_id)
    if status_code == 403:
        raise IpBlockedError(video_id, status_code=status_code)
    if 400 <= status_code < 500:
        if status_code == 404:
            raise VideoUnavailableError(video_id)
        raise RequestBlockedError(video_id, status_code=status_code)
    if status_code >= 500:
        raise TranscriptFetchError(f"YouTube server error (HTTP {status_code})", video_id=video_id)


def check_playability(playability_status: Optional[Mapping[str, Any]], video_id: str) -> None:
    """
    Raise the domain error described by an InnerTube playability block.

    A missing block is treated as playable; the caption lookup that follows
    decides whether anything can be fetched.
    """
    if not isinstance(playability_status, Mapping):
        return

    status = playability_status.get("status")
    if status == PLAYABILITY_OK:
        return

    reason = playability_status.get("reason")
    if not isinstance(reason, str):
        reason = None

    logger.debug(f"Video {video_id} not playable: status={status} reason={reason}")

    if status == PLAYABILITY_LOGIN_REQUIRED:
        if is_bot_check_reason(reason):
            raise RequestBlockedError(video_id)
        if is_age_restricted_reason(reason):
            raise VideoUnavailableError(video_id)

    if status == PLAYABILITY_ERROR and is_unavailable_reason(reason):
        if looks_like_url(video_id):
            raise InvalidVideoIdError(video_id)
        raise VideoUnavailableError(video_id)

    raise TranscriptFetchError(
        f"Video is not playable: {reason or 'Unknown reason'}",
        video_id=video_id,
    )
