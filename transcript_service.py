"""
Transcript resolution pipeline.

watch page -> InnerTube API key -> InnerTube player response -> playability
check -> caption catalog -> track selection (optionally translated) ->
timed-text fetch -> snippets.

Each call does its own full round trip; nothing is cached between calls.
"""

import json
import re
import uuid
from typing import List, Optional, Sequence, Union

import requests

from caption_catalog import CaptionCatalog, find_tracklist_renderer, parse_caption_catalog
from caption_models import CaptionTrack, FetchedTranscript, TranscriptSnippet
from failure_classifier import check_http_status, check_playability, looks_like_url
from log_events import evt, time_stage
from logging_setup import get_logger, set_request_ctx, mask_url_for_logging
from page_extractor import extract_innertube_api_key
from proxy_config import ProxyConfig
from proxy_http import HttpResponse, TranscriptHttpClient
from timedtext_parser import check_po_token, parse_timedtext
from transcript_config import (
    INNERTUBE_API_URL,
    INNERTUBE_CONTEXT,
    WATCH_URL,
    TranscriptConfig,
    get_transcript_config,
)
from transcript_errors import (
    InvalidVideoIdError,
    TranscriptError,
    TranscriptFetchError,
    TranscriptParseError,
)

logger = get_logger(__name__)

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")

TRANSCRIPT_TYPE_ANY = "any"
TRANSCRIPT_TYPE_MANUAL = "manual"
TRANSCRIPT_TYPE_GENERATED = "generated"
TRANSCRIPT_TYPES = (TRANSCRIPT_TYPE_ANY, TRANSCRIPT_TYPE_MANUAL, TRANSCRIPT_TYPE_GENERATED)


def validate_video_id(video_id: str) -> None:
    """Reject empty, URL-shaped, or malformed ids before touching the network."""
    if not isinstance(video_id, str) or not video_id:
        raise InvalidVideoIdError(str(video_id or ""))
    if looks_like_url(video_id) or not VIDEO_ID_RE.match(video_id):
        raise InvalidVideoIdError(video_id)


class TranscriptService:
    """
    Resolves caption catalogs and fetches transcripts for videos.

    Holds only a transport and immutable settings, so one instance can serve
    concurrent calls for different videos.
    """

    def __init__(self, proxy_config: Optional[ProxyConfig] = None,
                 config: Optional[TranscriptConfig] = None,
                 http_client: Optional[TranscriptHttpClient] = None):
        self.config = config or get_transcript_config()
        self._owns_client = http_client is None
        self.http_client = http_client or TranscriptHttpClient(
            proxy_config=proxy_config,
            headers=self.config.default_headers(),
            timeout=self.config.timeout,
            connect_retries=self.config.connect_retries,
        )

    # --- Public API ---

    def list(self, video_id: str) -> CaptionCatalog:
        """
        List every caption track available for a video.

        Raises:
            InvalidVideoIdError, VideoUnavailableError, TranscriptsDisabledError,
            TooManyRequestsError, RequestBlockedError, IpBlockedError,
            TranscriptFetchError, TranscriptParseError
        """
        validate_video_id(video_id)
        set_request_ctx(request_id=uuid.uuid4().hex[:12], video_id=video_id)
        evt("catalog_requested", video_id=video_id)

        try:
            return self._list(video_id)
        except TranscriptError:
            raise
        except Exception as e:
            logger.error(f"Unexpected failure listing captions for {video_id}: {type(e).__name__}: {e}")
            raise TranscriptFetchError("Unexpected failure while listing transcripts", video_id=video_id, cause=e) from e

    def _list(self, video_id: str) -> CaptionCatalog:
        with time_stage("watch_page", video_id=video_id):
            html = self._get(WATCH_URL.format(video_id=video_id), video_id).body
            api_key = extract_innertube_api_key(html, video_id)

        with time_stage("innertube", video_id=video_id):
            player_response = self._fetch_player_response(video_id, api_key)
            check_playability(player_response.get("playabilityStatus"), video_id)

        with time_stage("catalog_parse", video_id=video_id):
            renderer = find_tracklist_renderer(player_response)
            catalog = parse_caption_catalog(renderer, video_id)

        evt("catalog_parsed", video_id=video_id, track_count=len(catalog),
            languages=",".join(catalog.languages()))
        return catalog

    def fetch_track(self, track: CaptionTrack, preserve_formatting: Optional[bool] = None) -> FetchedTranscript:
        """Fetch and parse the timed-text payload of one track."""
        if preserve_formatting is None:
            preserve_formatting = self.config.preserve_formatting
        video_id = track.video_id

        if not track.url:
            raise TranscriptFetchError("Cannot fetch transcript: track has no URL", video_id=video_id)

        check_po_token(track.url, video_id)

        try:
            snippets = self._fetch_snippets(track, preserve_formatting)
        except TranscriptError:
            raise
        except Exception as e:
            logger.error(f"Unexpected failure fetching transcript for {video_id}: {type(e).__name__}: {e}")
            raise TranscriptFetchError("Unexpected failure while fetching transcript", video_id=video_id, cause=e) from e

        evt("transcript_fetched", video_id=video_id, language_code=track.language_code,
            is_generated=track.is_generated, snippet_count=len(snippets))

        return FetchedTranscript(
            video_id=video_id,
            language=track.language,
            language_code=track.language_code,
            is_generated=track.is_generated,
            is_translated=track.is_translated,
            snippets=tuple(snippets),
        )

    def _fetch_snippets(self, track: CaptionTrack, preserve_formatting: bool) -> List[TranscriptSnippet]:
        video_id = track.video_id
        with time_stage("timedtext_fetch", video_id=video_id, language_code=track.language_code,
                        translated=track.is_translated):
            payload = self._get(track.url, video_id).body

        with time_stage("timedtext_parse", video_id=video_id):
            return parse_timedtext(payload, preserve_formatting=preserve_formatting, video_id=video_id)

    def select_track(self, catalog: CaptionCatalog, languages: Union[str, Sequence[str]],
                     transcript_type: str = TRANSCRIPT_TYPE_ANY,
                     translate_to: Optional[str] = None) -> CaptionTrack:
        """Pick a track from the catalog and optionally derive its translation."""
        if transcript_type == TRANSCRIPT_TYPE_MANUAL:
            track = catalog.find_manually_created_transcript(languages)
        elif transcript_type == TRANSCRIPT_TYPE_GENERATED:
            track = catalog.find_generated_transcript(languages)
        elif transcript_type == TRANSCRIPT_TYPE_ANY:
            track = catalog.find_transcript(languages)
        else:
            raise ValueError(f"Unknown transcript type: {transcript_type!r}")

        if translate_to:
            track = track.translate(translate_to)
        return track

    def fetch(self, video_id: str, languages: Optional[Union[str, Sequence[str]]] = None,
              preserve_formatting: Optional[bool] = None,
              translate_to: Optional[str] = None,
              transcript_type: str = TRANSCRIPT_TYPE_ANY) -> FetchedTranscript:
        """
        Resolve and fetch the best transcript for a video.

        Args:
            video_id: bare video id
            languages: language codes in descending priority (config default when None)
            preserve_formatting: keep markup tags in snippet text
            translate_to: translate the selected track into this language
            transcript_type: "any", "manual" or "generated"
        """
        if languages is None:
            languages = self.config.languages
        catalog = self.list(video_id)
        track = self.select_track(catalog, languages, transcript_type=transcript_type, translate_to=translate_to)
        evt("track_selected", video_id=video_id, language_code=track.language_code,
            is_generated=track.is_generated, translation=track.translation_language_code)
        return self.fetch_track(track, preserve_formatting=preserve_formatting)

    def find_transcript(self, video_id: str, languages: Union[str, Sequence[str]]) -> CaptionTrack:
        return self.list(video_id).find_transcript(languages)

    def find_manually_created_transcript(self, video_id: str, languages: Union[str, Sequence[str]]) -> CaptionTrack:
        return self.list(video_id).find_manually_created_transcript(languages)

    def find_generated_transcript(self, video_id: str, languages: Union[str, Sequence[str]]) -> CaptionTrack:
        return self.list(video_id).find_generated_transcript(languages)

    def close(self) -> None:
        if self._owns_client:
            self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # --- Upstream calls ---

    def _send(self, method: str, url: str, video_id: str, **kwargs) -> HttpResponse:
        """Perform one request, wrapping transport failures and classifying the status."""
        try:
            response = self.http_client.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {mask_url_for_logging(url)} failed: {type(e).__name__}")
            raise TranscriptFetchError("Request to YouTube failed", video_id=video_id, cause=e) from e

        check_http_status(response.status_code, video_id)
        return response

    def _get(self, url: str, video_id: str) -> HttpResponse:
        return self._send("GET", url, video_id)

    def _fetch_player_response(self, video_id: str, api_key: str) -> dict:
        response = self._send(
            "POST",
            INNERTUBE_API_URL.format(api_key=api_key),
            video_id,
            headers={"Content-Type": "application/json"},
            body=json.dumps({"context": INNERTUBE_CONTEXT, "videoId": video_id}),
        )
        try:
            data = json.loads(response.body)
        except ValueError as e:
            raise TranscriptParseError(
                "Failed to parse InnerTube API response as JSON", video_id=video_id, cause=e
            ) from e
        if not isinstance(data, dict):
            raise TranscriptParseError("InnerTube API response is not a JSON object", video_id=video_id)
        return data


def fetch_transcript(video_id: str, languages: Optional[Sequence[str]] = None,
                     preserve_formatting: bool = False,
                     proxy_config: Optional[ProxyConfig] = None) -> FetchedTranscript:
    """One-shot convenience wrapper around TranscriptService.fetch."""
    with TranscriptService(proxy_config=proxy_config) as service:
        return service.fetch(video_id, languages=languages, preserve_formatting=preserve_formatting)


__all__ = [
    "TranscriptService",
    "TranscriptError",
    "fetch_transcript",
    "validate_video_id",
    "TRANSCRIPT_TYPES",
]
