"""
Derivation of translated caption tracks.
"""

from urllib.parse import urlencode, urlsplit, urlunsplit

from caption_models import CaptionTrack
from transcript_errors import TranslationUnavailableError

TRANSLATION_PARAM = "tlang"


def build_translation_url(url: str, language_code: str) -> str:
    """
    Set ``tlang`` on the URL, replacing an existing value in place.

    Other query segments are kept byte-for-byte; signed caption URLs must not
    be re-encoded.
    """
    parts = urlsplit(url)
    new_segment = urlencode({TRANSLATION_PARAM: language_code})

    replaced = False
    segments = []
    for segment in parts.query.split("&") if parts.query else []:
        key = segment.split("=", 1)[0]
        if key == TRANSLATION_PARAM:
            if replaced:
                continue
            segment = new_segment
            replaced = True
        segments.append(segment)
    if not replaced:
        segments.append(new_segment)

    return urlunsplit(parts._replace(query="&".join(segments)))


def translate_track(track: CaptionTrack, language_code: str) -> CaptionTrack:
    """
    Derive the translated variant of ``track``.

    The result keeps the base track's language_code (upstream keeps it too)
    and cannot itself be translated again.
    """
    if not track.is_translatable:
        raise TranslationUnavailableError(track.video_id, language_code)

    target = next(
        (lang for lang in track.translation_languages if lang.language_code == language_code),
        None,
    )
    if target is None:
        raise TranslationUnavailableError(track.video_id, language_code)

    url = build_translation_url(track.url, language_code) if track.url else None

    return CaptionTrack(
        video_id=track.video_id,
        language=target.language_name,
        language_code=track.language_code,
        is_generated=track.is_generated,
        is_translatable=False,
        translation_languages=(),
        url=url,
        translation_language_code=language_code,
    )
