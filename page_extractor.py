"""
Extraction of the InnerTube API key from the watch page HTML.
"""

from transcript_config import INNERTUBE_API_KEY_PATTERN
from transcript_errors import IpBlockedError, TranscriptFetchError
from logging_setup import get_logger

logger = get_logger(__name__)

# Marker of the reCAPTCHA interstitial served to flagged IPs (upstream markup, may change)
RECAPTCHA_MARKER = 'class="g-recaptcha"'


def is_recaptcha_page(html: str) -> bool:
    """Detect the bot-challenge page served instead of the watch page."""
    return RECAPTCHA_MARKER in html


def extract_innertube_api_key(html: str, video_id: str) -> str:
    """
    Pull the InnerTube API key out of the watch page.

    Raises:
        IpBlockedError: the page is a reCAPTCHA challenge
        TranscriptFetchError: no key and no recognisable reason
    """
    match = INNERTUBE_API_KEY_PATTERN.search(html)
    if match and match.group(1):
        return match.group(1)

    if is_recaptcha_page(html):
        logger.warning(f"reCAPTCHA challenge served for {video_id}")
        raise IpBlockedError(video_id)

    raise TranscriptFetchError(
        "Could not extract InnerTube API key from the YouTube page",
        video_id=video_id,
    )
