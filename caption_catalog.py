"""
Caption catalog parsing from the InnerTube player response.

The tracklist renderer has shown up in several shapes upstream, so locating
it is an ordered list of strategies where the first hit wins. Malformed
track entries are dropped; an empty result means captions are disabled.
"""

from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from caption_models import CaptionTrack, TranslationLanguage
from logging_setup import get_logger
from transcript_errors import TranscriptError, TranscriptParseError, TranscriptsDisabledError
import track_selector

logger = get_logger(__name__)

TRACKLIST_RENDERER_KEY = "playerCaptionsTracklistRenderer"

# kind tag of automatic speech recognition tracks (upstream value, may change)
GENERATED_KIND = "asr"

# srv3 switches the payload to a format the timed-text parser does not read
CACHE_FORMAT_SEGMENT = "fmt=srv3"

_MAX_SEARCH_DEPTH = 12


# --- Renderer location strategies ---

def _renderer_under_captions(data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    captions = data.get("captions")
    if isinstance(captions, Mapping):
        renderer = captions.get(TRACKLIST_RENDERER_KEY)
        if isinstance(renderer, Mapping):
            return dict(renderer)
    return None


def _renderer_at_top_level(data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    renderer = data.get(TRACKLIST_RENDERER_KEY)
    if isinstance(renderer, Mapping):
        return dict(renderer)
    return None


def _data_is_renderer(data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    if "captionTracks" in data:
        return dict(data)
    return None


def _renderer_nested_anywhere(data: Mapping[str, Any], depth: int = 0) -> Optional[Dict[str, Any]]:
    if depth > _MAX_SEARCH_DEPTH:
        return None
    renderer = data.get(TRACKLIST_RENDERER_KEY)
    if isinstance(renderer, Mapping):
        return dict(renderer)
    for value in data.values():
        if isinstance(value, Mapping):
            found = _renderer_nested_anywhere(value, depth + 1)
            if found is not None:
                return found
    return None


RENDERER_STRATEGIES: Sequence[Callable[[Mapping[str, Any]], Optional[Dict[str, Any]]]] = (
    _renderer_under_captions,
    _renderer_at_top_level,
    _data_is_renderer,
    _renderer_nested_anywhere,
)


def find_tracklist_renderer(data: Any) -> Optional[Dict[str, Any]]:
    """Return the caption tracklist renderer from a player response, or None."""
    if not isinstance(data, Mapping):
        return None
    for strategy in RENDERER_STRATEGIES:
        renderer = strategy(data)
        if renderer is not None:
            return renderer
    return None


# --- Entry helpers ---

def _text_from_runs(node: Any) -> Optional[str]:
    """Read a display string from a ``{"runs": [{"text": ...}]}`` or ``{"simpleText": ...}`` node."""
    if not isinstance(node, Mapping):
        return None
    runs = node.get("runs")
    if isinstance(runs, list) and runs:
        first = runs[0]
        if isinstance(first, Mapping) and isinstance(first.get("text"), str):
            return first["text"]
    simple = node.get("simpleText")
    if isinstance(simple, str):
        return simple
    return None


def strip_cache_format(url: str) -> str:
    """Drop the ``fmt=srv3`` query segment from a caption URL."""
    base, sep, query = url.partition("?")
    if not sep:
        return url
    segments = [s for s in query.split("&") if s != CACHE_FORMAT_SEGMENT]
    return f"{base}?{'&'.join(segments)}" if segments else base


def parse_translation_languages(renderer: Mapping[str, Any]) -> List[TranslationLanguage]:
    """Translation targets shared by every translatable track in the renderer."""
    entries = renderer.get("translationLanguages")
    if not isinstance(entries, list):
        return []

    languages = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        code = entry.get("languageCode")
        name = _text_from_runs(entry.get("languageName"))
        if not isinstance(code, str) or not code or name is None:
            continue
        languages.append(TranslationLanguage(language_code=code, language_name=name))
    return languages


def _parse_track(entry: Any, video_id: str, translation_languages: Sequence[TranslationLanguage]) -> Optional[CaptionTrack]:
    if not isinstance(entry, Mapping):
        return None

    base_url = entry.get("baseUrl")
    language_code = entry.get("languageCode")
    if not isinstance(base_url, str) or not base_url:
        return None
    if not isinstance(language_code, str) or not language_code:
        return None

    targets = tuple(translation_languages) if entry.get("isTranslatable") is True else ()

    return CaptionTrack(
        video_id=video_id,
        language=_text_from_runs(entry.get("name")) or language_code,
        language_code=language_code,
        is_generated=entry.get("kind") == GENERATED_KIND,
        is_translatable=bool(targets),
        translation_languages=targets,
        url=strip_cache_format(base_url),
    )


def parse_caption_catalog(renderer: Optional[Mapping[str, Any]], video_id: str) -> 'CaptionCatalog':
    """
    Build the catalog from a tracklist renderer.

    Raises:
        TranscriptsDisabledError: no renderer, no tracks, or no usable track
        TranscriptParseError: the renderer has an unexpected structure
    """
    if not isinstance(renderer, Mapping):
        raise TranscriptsDisabledError(video_id)

    caption_tracks = renderer.get("captionTracks")
    if not isinstance(caption_tracks, list) or not caption_tracks:
        raise TranscriptsDisabledError(video_id)

    try:
        translation_languages = parse_translation_languages(renderer)
        tracks = []
        for entry in caption_tracks:
            track = _parse_track(entry, video_id, translation_languages)
            if track is None:
                logger.debug(f"Skipping malformed caption track entry for {video_id}")
                continue
            tracks.append(track)
    except TranscriptError:
        raise
    except (TypeError, ValueError, AttributeError) as e:
        raise TranscriptParseError("Failed to parse caption track list", video_id=video_id, cause=e) from e

    if not tracks:
        raise TranscriptsDisabledError(video_id)

    return CaptionCatalog(video_id, tracks)


class CaptionCatalog:
    """All caption tracks of one video, in upstream order. Never empty."""

    def __init__(self, video_id: str, tracks: Sequence[CaptionTrack]):
        if not tracks:
            raise TranscriptsDisabledError(video_id)
        self.video_id = video_id
        self._tracks = tuple(tracks)

    @property
    def tracks(self):
        return self._tracks

    @property
    def manually_created(self) -> List[CaptionTrack]:
        return [t for t in self._tracks if not t.is_generated]

    @property
    def generated(self) -> List[CaptionTrack]:
        return [t for t in self._tracks if t.is_generated]

    def __iter__(self) -> Iterator[CaptionTrack]:
        return iter(self._tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    def languages(self) -> List[str]:
        return [t.language_code for t in self._tracks]

    def find_transcript(self, languages) -> CaptionTrack:
        return track_selector.find_transcript(self.video_id, self._tracks, languages)

    def find_manually_created_transcript(self, languages) -> CaptionTrack:
        return track_selector.find_manually_created_transcript(self.video_id, self._tracks, languages)

    def find_generated_transcript(self, languages) -> CaptionTrack:
        return track_selector.find_generated_transcript(self.video_id, self._tracks, languages)

    def __str__(self) -> str:
        def describe(tracks):
            return "\n".join(f" - {t}" for t in tracks) or "None"

        translation_languages = next(
            (t.translation_languages for t in self._tracks if t.translation_languages), ()
        )
        translations = "\n".join(
            f' - {lang.language_code} ("{lang.language_name}")' for lang in translation_languages
        ) or "None"
        return (
            f"For this video ({self.video_id}) transcripts are available in the following languages:\n\n"
            f"(MANUALLY CREATED)\n{describe(self.manually_created)}\n\n"
            f"(GENERATED)\n{describe(self.generated)}\n\n"
            f"(TRANSLATION LANGUAGES)\n{translations}"
        )

    def __repr__(self) -> str:
        return f"CaptionCatalog(video_id={self.video_id!r}, tracks={len(self._tracks)})"
