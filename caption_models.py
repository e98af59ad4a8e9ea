"""
Immutable data model for caption tracks and fetched transcripts.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, List, Dict, Any, Iterator


@dataclass(frozen=True)
class TranslationLanguage:
    """A language a translatable track can be translated into"""

    language_code: str
    language_name: str


@dataclass(frozen=True, eq=False)
class CaptionTrack:
    """
    One fetchable caption stream for a video.

    Identity is (video_id, language_code, translation_language_code): a
    translated track is distinct from its base track even though both keep
    the base language code.
    """

    video_id: str
    language: str
    language_code: str
    is_generated: bool
    is_translatable: bool = False
    translation_languages: Tuple[TranslationLanguage, ...] = ()
    url: Optional[str] = None
    translation_language_code: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.translation_languages, tuple):
            object.__setattr__(self, "translation_languages", tuple(self.translation_languages))
        if self.translation_languages and not self.is_translatable:
            raise ValueError("translation_languages given for a track that is not translatable")

    @property
    def fetch_url(self) -> Optional[str]:
        return self.url

    @property
    def is_translated(self) -> bool:
        return self.translation_language_code is not None

    def translate(self, language_code: str) -> 'CaptionTrack':
        """Derive the track translated into ``language_code``."""
        # Local import: translation builds CaptionTrack instances
        from translation import translate_track
        return translate_track(self, language_code)

    def _identity(self) -> Tuple[str, str, Optional[str]]:
        return (self.video_id, self.language_code, self.translation_language_code)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CaptionTrack):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __str__(self) -> str:
        kind = "generated" if self.is_generated else "manual"
        suffix = f" -> {self.translation_language_code}" if self.is_translated else ""
        translatable = " [TRANSLATABLE]" if self.is_translatable else ""
        return f'{self.language_code} ("{self.language}") {kind}{suffix}{translatable}'


@dataclass(frozen=True)
class TranscriptSnippet:
    """One timed caption cue"""

    text: str
    start: float
    duration: float = 0.0

    @property
    def end(self) -> float:
        return self.start + self.duration

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "start": self.start, "duration": self.duration}


@dataclass(frozen=True)
class FetchedTranscript:
    """Parsed snippets plus the metadata of the track they came from"""

    video_id: str
    language: str
    language_code: str
    is_generated: bool
    is_translated: bool
    snippets: Tuple[TranscriptSnippet, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.snippets, tuple):
            object.__setattr__(self, "snippets", tuple(self.snippets))

    def __iter__(self) -> Iterator[TranscriptSnippet]:
        return iter(self.snippets)

    def __len__(self) -> int:
        return len(self.snippets)

    def __getitem__(self, index):
        return self.snippets[index]

    def to_raw_data(self) -> List[Dict[str, Any]]:
        return [snippet.to_dict() for snippet in self.snippets]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "videoId": self.video_id,
            "language": self.language,
            "languageCode": self.language_code,
            "isGenerated": self.is_generated,
            "isTranslated": self.is_translated,
            "transcripts": self.to_raw_data(),
        }
