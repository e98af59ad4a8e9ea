"""
Language-preference selection over a caption catalog.

Manual tracks beat generated ones across the whole preference list: a manual
track in any requested language wins over a generated track in a
higher-priority language. Within a language, catalog order breaks ties.
"""

from typing import Iterable, List, Optional, Sequence, Union

from caption_models import CaptionTrack
from transcript_errors import (
    NoGeneratedTranscriptFoundError,
    NoManualTranscriptFoundError,
    NoTranscriptFoundError,
)

Languages = Union[str, Sequence[str]]


def _normalize_languages(languages: Languages) -> List[str]:
    if isinstance(languages, str):
        return [languages]
    return list(languages)


def _first_match(tracks: Sequence[CaptionTrack], languages: Iterable[str], generated: bool) -> Optional[CaptionTrack]:
    for language_code in languages:
        for track in tracks:
            if track.language_code == language_code and track.is_generated == generated:
                return track
    return None


def find_transcript(video_id: str, tracks: Sequence[CaptionTrack], languages: Languages) -> CaptionTrack:
    """Manual tracks first, then generated, each pass in preference order."""
    languages = _normalize_languages(languages)
    for generated in (False, True):
        track = _first_match(tracks, languages, generated)
        if track is not None:
            return track

    raise NoTranscriptFoundError(
        video_id,
        requested_languages=languages,
        available_languages=[t.language_code for t in tracks],
    )


def find_manually_created_transcript(video_id: str, tracks: Sequence[CaptionTrack], languages: Languages) -> CaptionTrack:
    languages = _normalize_languages(languages)
    track = _first_match(tracks, languages, generated=False)
    if track is not None:
        return track

    raise NoManualTranscriptFoundError(
        video_id,
        requested_languages=languages,
        available_languages=[t.language_code for t in tracks if not t.is_generated],
    )


def find_generated_transcript(video_id: str, tracks: Sequence[CaptionTrack], languages: Languages) -> CaptionTrack:
    languages = _normalize_languages(languages)
    track = _first_match(tracks, languages, generated=True)
    if track is not None:
        return track

    raise NoGeneratedTranscriptFoundError(
        video_id,
        requested_languages=languages,
        available_languages=[t.language_code for t in tracks if t.is_generated],
    )
