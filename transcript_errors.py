"""
Exception hierarchy for transcript resolution.

Every failure in the pipeline surfaces as exactly one subclass of
TranscriptError. Callers can branch on the class or on ``error_code``.
"""

from typing import Optional, Sequence, Dict, Any

PROXY_HINT = "Consider routing requests through a proxy or a different network"


class TranscriptError(Exception):
    """Base error for all transcript failures"""

    error_code = "transcript_error"

    def __init__(self, message: str, video_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.video_id = video_id

    def __str__(self) -> str:
        if self.video_id:
            return f"{self.message} (video_id: {self.video_id})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Fields for structured logging"""
        return {
            "error_code": self.error_code,
            "error_type": type(self).__name__,
            "video_id": self.video_id,
            "detail": self.message,
        }


class InvalidVideoIdError(TranscriptError):
    """The identifier is not a usable video id"""

    error_code = "invalid_video_id"

    def __init__(self, video_id: str):
        message = "Invalid video id format"
        if video_id.startswith(("http://", "https://")):
            message += ". Pass the bare video id (e.g. 'dQw4w9WgXcQ'), not the URL"
        super().__init__(message, video_id=video_id)


class VideoUnavailableError(TranscriptError):
    """Video is missing, removed, private or age-gated"""

    error_code = "video_unavailable"

    def __init__(self, video_id: str):
        super().__init__("The video is no longer available", video_id=video_id)


class TranscriptsDisabledError(TranscriptError):
    error_code = "transcripts_disabled"

    def __init__(self, video_id: str):
        super().__init__("Subtitles are disabled for this video", video_id=video_id)


class NoTranscriptFoundError(TranscriptError):
    """No track matches the requested languages"""

    error_code = "no_transcript"
    kind_label = "transcript"

    def __init__(self, video_id: str, requested_languages: Sequence[str], available_languages: Sequence[str]):
        self.requested_languages = list(requested_languages)
        self.available_languages = list(available_languages)
        message = (
            f"No {self.kind_label} found for languages: {', '.join(self.requested_languages) or '-'}. "
            f"Available languages: {', '.join(self.available_languages) or 'none'}"
        )
        super().__init__(message, video_id=video_id)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["requested_languages"] = self.requested_languages
        data["available_languages"] = self.available_languages
        return data


class NoManualTranscriptFoundError(NoTranscriptFoundError):
    error_code = "no_manual_transcript"
    kind_label = "manually created transcript"


class NoGeneratedTranscriptFoundError(NoTranscriptFoundError):
    error_code = "no_generated_transcript"
    kind_label = "auto-generated transcript"


class TranslationUnavailableError(TranscriptError):
    error_code = "translation_unavailable"

    def __init__(self, video_id: str, target_language: str):
        self.target_language = target_language
        super().__init__(
            f'Translation to "{target_language}" is not available for this transcript',
            video_id=video_id,
        )


class TooManyRequestsError(TranscriptError):
    """Upstream answered 429"""

    error_code = "rate_limited"

    def __init__(self, video_id: Optional[str]):
        super().__init__(
            f"YouTube is receiving too many requests from this IP. {PROXY_HINT}",
            video_id=video_id,
        )


class RequestBlockedError(TranscriptError):
    """Request refused by upstream (bot detection or other 4xx)"""

    error_code = "request_blocked"
    base_message = "The request was blocked by YouTube, likely by bot detection"

    def __init__(self, video_id: Optional[str], status_code: Optional[int] = None):
        self.status_code = status_code
        message = f"{self.base_message}. {PROXY_HINT}"
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        super().__init__(message, video_id=video_id)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class IpBlockedError(RequestBlockedError):
    error_code = "ip_blocked"
    base_message = "Your IP address has been blocked by YouTube"


class PoTokenRequiredError(TranscriptError):
    """The caption URL demands a proof-of-origin token"""

    error_code = "po_token_required"

    def __init__(self, video_id: Optional[str]):
        super().__init__(
            "YouTube requires a PoToken (proof of origin token) to access this transcript",
            video_id=video_id,
        )


class _CausedError(TranscriptError):
    def __init__(self, message: str, video_id: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message, video_id=video_id)
        self.cause = cause

    def __str__(self) -> str:
        text = super().__str__()
        if self.cause is not None:
            return f"{text} - caused by: {self.cause!r}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.cause is not None:
            data["cause"] = repr(self.cause)
        return data


class TranscriptFetchError(_CausedError):
    """Transport failure or unclassified upstream failure"""

    error_code = "fetch_failed"


class TranscriptParseError(_CausedError):
    """Upstream payload could not be parsed"""

    error_code = "parse_failed"
