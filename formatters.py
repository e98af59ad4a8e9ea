"""
Output formatters for fetched transcripts.

Every formatter renders a FetchedTranscript to a string and advertises the
file extension and MIME type of what it produces. ``get_formatter`` maps the
CLI format names onto formatter instances.
"""

import json
from typing import Dict, Iterable, List, Type

from caption_models import FetchedTranscript, TranscriptSnippet


class Formatter:
    """Base formatter"""

    file_extension = "txt"
    mime_type = "text/plain"

    # Separator between transcripts when several are rendered together
    transcript_separator = "\n\n\n"

    def format(self, transcript: FetchedTranscript) -> str:
        raise NotImplementedError

    def format_many(self, transcripts: Iterable[FetchedTranscript]) -> str:
        return self.transcript_separator.join(self.format(t) for t in transcripts)


def _split_ms(seconds: float):
    total_ms = int(round(max(seconds, 0.0) * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return hours, minutes, secs, millis


class TextFormatter(Formatter):
    """Snippet texts, one per line"""

    def format(self, transcript: FetchedTranscript) -> str:
        return "\n".join(snippet.text for snippet in transcript)


class TextFormatterWithTimestamps(Formatter):
    """``[start] text`` per line, start in seconds"""

    def format(self, transcript: FetchedTranscript) -> str:
        return "\n".join(f"[{snippet.start!r}] {snippet.text}" for snippet in transcript)


class JsonFormatter(Formatter):
    """Array of ``{"text", "start", "duration"}`` objects"""

    file_extension = "json"
    mime_type = "application/json"

    def __init__(self, pretty: bool = False):
        self.pretty = pretty

    def _dumps(self, data) -> str:
        if self.pretty:
            return json.dumps(data, indent=2, ensure_ascii=False)
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)

    def _payload(self, transcript: FetchedTranscript):
        return transcript.to_raw_data()

    def format(self, transcript: FetchedTranscript) -> str:
        return self._dumps(self._payload(transcript))

    def format_many(self, transcripts: Iterable[FetchedTranscript]) -> str:
        return self._dumps([self._payload(t) for t in transcripts])


class JsonFormatterWithMetadata(JsonFormatter):
    """Transcript metadata plus its snippets"""

    def _payload(self, transcript: FetchedTranscript):
        return transcript.to_dict()


class _CueFormatter(Formatter):
    """Shared layout for cue based subtitle formats"""

    millisecond_separator = "."

    def _timestamp(self, seconds: float) -> str:
        hours, minutes, secs, millis = _split_ms(seconds)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}{self.millisecond_separator}{millis:03d}"

    def _timing(self, snippet: TranscriptSnippet) -> str:
        return f"{self._timestamp(snippet.start)} --> {self._timestamp(snippet.end)}"

    def _cue(self, index: int, snippet: TranscriptSnippet) -> str:
        raise NotImplementedError

    def _header(self) -> str:
        return ""

    def format(self, transcript: FetchedTranscript) -> str:
        cues = [self._cue(i, snippet) for i, snippet in enumerate(transcript, start=1)]
        return self._header() + "\n".join(cues)


class VttFormatter(_CueFormatter):
    """WebVTT subtitles"""

    file_extension = "vtt"
    mime_type = "text/vtt"

    def _header(self) -> str:
        return "WEBVTT\n\n"

    def _cue(self, index: int, snippet: TranscriptSnippet) -> str:
        return f"{self._timing(snippet)}\n{snippet.text}\n"


class SrtFormatter(_CueFormatter):
    """SubRip subtitles"""

    file_extension = "srt"
    mime_type = "application/x-subrip"
    millisecond_separator = ","

    def _cue(self, index: int, snippet: TranscriptSnippet) -> str:
        return f"{index}\n{self._timing(snippet)}\n{snippet.text}\n"


class CsvFormatter(Formatter):
    """
    Comma separated ``start,duration,text`` rows.

    Fields holding the delimiter, a quote, or a line break are quoted with
    embedded quotes doubled.
    """

    file_extension = "csv"
    mime_type = "text/csv"
    header = ("start", "duration", "text")

    def __init__(self, include_header: bool = True, delimiter: str = ","):
        if len(delimiter) != 1:
            raise ValueError("CSV delimiter must be a single character")
        self.include_header = include_header
        self.delimiter = delimiter

    def _escape(self, value: str) -> str:
        if any(ch in value for ch in (self.delimiter, '"', "\n", "\r")):
            return '"' + value.replace('"', '""') + '"'
        return value

    def _row(self, fields: Iterable[str]) -> str:
        return self.delimiter.join(self._escape(f) for f in fields)

    def format(self, transcript: FetchedTranscript) -> str:
        rows: List[str] = []
        if self.include_header:
            rows.append(self._row(self.header))
        for snippet in transcript:
            rows.append(self._row((repr(snippet.start), repr(snippet.duration), snippet.text)))
        return "\n".join(rows)


FORMATTERS: Dict[str, Type[Formatter]] = {
    "text": TextFormatter,
    "text-ts": TextFormatterWithTimestamps,
    "json": JsonFormatter,
    "json-meta": JsonFormatterWithMetadata,
    "vtt": VttFormatter,
    "srt": SrtFormatter,
    "csv": CsvFormatter,
}


def get_formatter(name: str, **kwargs) -> Formatter:
    """
    Instantiate the formatter registered under ``name``.

    Raises:
        ValueError: unknown format name
    """
    try:
        formatter_cls = FORMATTERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown format: {name!r}. Available formats: {', '.join(FORMATTERS)}"
        ) from None
    return formatter_cls(**kwargs)
