"""
Timed-text payload parsing.

The payload is YouTube's ``<transcript><text start=".." dur="..">..</text>``
markup. It is read as loose markup rather than strict XML: upstream has
served unescaped ampersands and stray tags that a strict parser rejects.
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup

from caption_models import TranscriptSnippet
from logging_setup import get_logger
from transcript_errors import PoTokenRequiredError, TranscriptParseError

logger = get_logger(__name__)

CUE_TAG = "text"

# Query marker on caption URLs that require a proof-of-origin token (upstream value, may change)
PO_TOKEN_MARKER = "exp=xpe"

_NAMED_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&apos;": "'",
    "&nbsp;": " ",
}
_NAMED_ENTITY_RE = re.compile("|".join(re.escape(k) for k in _NAMED_ENTITIES))
_DECIMAL_ENTITY_RE = re.compile(r"&#(\d+);")
_HEX_ENTITY_RE = re.compile(r"&#[xX]([0-9A-Fa-f]+);")
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def _codepoint(match: re.Match, base: int) -> str:
    try:
        return chr(int(match.group(1), base))
    except (ValueError, OverflowError):
        return match.group(0)


def decode_entities(text: str) -> str:
    """
    Decode the fixed entity set plus decimal and hex escapes.

    Single pass per entity kind, so already-decoded text is left unchanged.
    """
    text = _NAMED_ENTITY_RE.sub(lambda m: _NAMED_ENTITIES[m.group(0)], text)
    text = _DECIMAL_ENTITY_RE.sub(lambda m: _codepoint(m, 10), text)
    return _HEX_ENTITY_RE.sub(lambda m: _codepoint(m, 16), text)


def strip_formatting(text: str) -> str:
    """Remove markup tags and collapse whitespace."""
    text = _TAG_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _parse_seconds(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if value != value:  # NaN
        return None
    return max(value, 0.0)


def check_po_token(url: str, video_id: Optional[str]) -> None:
    """Refuse caption URLs that need a PoToken before any request is made."""
    if f"&{PO_TOKEN_MARKER}" in url or f"?{PO_TOKEN_MARKER}" in url:
        raise PoTokenRequiredError(video_id)


def parse_timedtext(payload: str, preserve_formatting: bool = False, video_id: Optional[str] = None) -> List[TranscriptSnippet]:
    """
    Parse a timed-text payload into ordered snippets.

    Cues without a start time, with an unparseable start time, or with no
    text are dropped. Missing or unparseable durations become 0.0.

    Raises:
        TranscriptParseError: no cue elements, or every cue was dropped
    """
    try:
        soup = BeautifulSoup(payload or "", "html.parser")
    except Exception as e:
        raise TranscriptParseError("Failed to parse transcript payload", video_id=video_id, cause=e) from e

    elements = soup.find_all(CUE_TAG)
    if not elements:
        raise TranscriptParseError("No transcript text elements found in response", video_id=video_id)

    snippets = []
    skipped = 0
    for element in elements:
        start = _parse_seconds(element.get("start"))
        raw_text = element.get_text()
        if start is None or not raw_text:
            skipped += 1
            continue

        duration = _parse_seconds(element.get("dur", element.get("duration")))

        text = decode_entities(raw_text)
        if not preserve_formatting:
            text = strip_formatting(text)
        if not text:
            skipped += 1
            continue

        snippets.append(TranscriptSnippet(text=text, start=start, duration=duration or 0.0))

    if skipped:
        logger.debug(f"Dropped {skipped} of {len(elements)} timed-text cues")

    if not snippets:
        raise TranscriptParseError("No valid transcript snippets could be parsed", video_id=video_id)

    return snippets
