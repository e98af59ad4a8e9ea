"""
Command line entry point: fetch or list YouTube transcripts.

    transcript-resolver dQw4w9WgXcQ
    transcript-resolver -v dQw4w9WgXcQ -l de,en -f json
    transcript-resolver -v dQw4w9WgXcQ --list
    transcript-resolver dQw4w9WgXcQ -f srt -o output.srt
"""

import argparse
import dataclasses
import os
import sys
from typing import List, Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from formatters import FORMATTERS, get_formatter
from logging_setup import configure_logging, get_logger
from proxy_config import GenericProxyConfig, ProxyConfig, WebshareProxyConfig, proxy_config_from_env
from transcript_config import TranscriptConfig
from transcript_errors import TooManyRequestsError, TranscriptError, TranscriptFetchError
from transcript_service import (
    TRANSCRIPT_TYPE_ANY,
    TRANSCRIPT_TYPE_GENERATED,
    TRANSCRIPT_TYPE_MANUAL,
    TranscriptService,
)

logger = get_logger(__name__)

RETRY_BACKOFF_MIN = 1.0
RETRY_BACKOFF_MAX = 10.0

# Formats whose CLI output is pretty-printed
_PRETTY_FORMATS = ("json", "json-meta")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transcript-resolver",
        description="Fetch transcripts and caption listings for YouTube videos.",
    )
    parser.add_argument("video_ids", nargs="*", metavar="VIDEO_ID", help="YouTube video id(s), e.g. dQw4w9WgXcQ")
    parser.add_argument("-v", "--video-id", dest="video_id_opt", help="YouTube video id")
    parser.add_argument(
        "-l", "--languages", nargs="+", default=None,
        help="Language codes in descending priority, space or comma separated (default: en)",
    )
    parser.add_argument("-f", "--format", default="text", choices=list(FORMATTERS), help="Output format")
    parser.add_argument("-o", "--output", help="Write output to this file instead of stdout")
    parser.add_argument("--list", action="store_true", help="List the available transcripts")

    kind = parser.add_mutually_exclusive_group()
    kind.add_argument("--manual-only", action="store_true", help="Only use manually created transcripts")
    kind.add_argument("--generated-only", action="store_true", help="Only use auto-generated transcripts")

    parser.add_argument("--translate", metavar="LANGUAGE_CODE", help="Translate the transcript into this language")
    parser.add_argument("--preserve-formatting", action="store_true", help="Keep HTML formatting tags in the text")

    proxy = parser.add_argument_group("proxy")
    proxy.add_argument("--http-proxy", help="Proxy URL for http requests")
    proxy.add_argument("--https-proxy", help="Proxy URL for https requests")
    proxy.add_argument("--webshare-proxy-username", help="Webshare proxy username")
    proxy.add_argument("--webshare-proxy-password", help="Webshare proxy password")
    proxy.add_argument("--webshare-proxy-location", help="Webshare proxy country code, e.g. US")

    parser.add_argument("--timeout", type=int, help="Request timeout in seconds")
    parser.add_argument("--retries", type=int, default=0,
                        help="Retry a video this many times on rate limiting or fetch failures")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level")
    return parser


def _split_languages(values: Optional[List[str]]) -> Optional[List[str]]:
    if not values:
        return None
    languages = [code.strip() for value in values for code in value.split(",") if code.strip()]
    return languages or None


def _video_ids(args, parser: argparse.ArgumentParser) -> List[str]:
    video_ids = list(args.video_ids)
    if args.video_id_opt:
        video_ids.insert(0, args.video_id_opt)
    if not video_ids:
        parser.error("a video id is required (positional or -v/--video-id)")
    return video_ids


def _proxy_config(args, parser: argparse.ArgumentParser) -> Optional[ProxyConfig]:
    if args.webshare_proxy_username or args.webshare_proxy_password:
        if not (args.webshare_proxy_username and args.webshare_proxy_password):
            parser.error("--webshare-proxy-username and --webshare-proxy-password must be given together")
        return WebshareProxyConfig(
            args.webshare_proxy_username,
            args.webshare_proxy_password,
            location=args.webshare_proxy_location,
        )
    if args.http_proxy or args.https_proxy:
        return GenericProxyConfig(http_url=args.http_proxy, https_url=args.https_proxy)
    return proxy_config_from_env()


def _transcript_type(args) -> str:
    if args.manual_only:
        return TRANSCRIPT_TYPE_MANUAL
    if args.generated_only:
        return TRANSCRIPT_TYPE_GENERATED
    return TRANSCRIPT_TYPE_ANY


def _with_retries(retries: int, func, *args, **kwargs):
    """Run func, retrying the whole call on transient upstream failures."""
    retryer = Retrying(
        stop=stop_after_attempt(max(retries, 0) + 1),
        wait=wait_exponential_jitter(initial=RETRY_BACKOFF_MIN, max=RETRY_BACKOFF_MAX),
        retry=retry_if_exception_type((TooManyRequestsError, TranscriptFetchError)),
        before_sleep=lambda s: logger.info(
            f"Attempt {s.attempt_number} failed ({type(s.outcome.exception()).__name__}), "
            f"retrying in {s.next_action.sleep:.2f}s..."
        ),
        reraise=True,
    )
    return retryer(func, *args, **kwargs)


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Transcript saved to: {output}")
    else:
        print(text)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        video_ids = _video_ids(args, parser)
        proxy_config = _proxy_config(args, parser)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 2

    config = TranscriptConfig.from_env()
    if args.timeout is not None:
        config = dataclasses.replace(config, timeout=args.timeout)

    log_level = args.log_level or (config.log_level if "LOG_LEVEL" in os.environ else "WARNING")
    configure_logging(log_level=log_level, use_json=config.use_json_logging)

    languages = _split_languages(args.languages) or config.languages
    failures = 0

    with TranscriptService(proxy_config=proxy_config, config=config) as service:
        if args.list:
            listings = []
            for video_id in video_ids:
                try:
                    listings.append(str(_with_retries(args.retries, service.list, video_id)))
                except TranscriptError as e:
                    failures += 1
                    print(f"Error: {e}", file=sys.stderr)
            if listings:
                _emit("\n\n".join(listings), args.output)
            return 1 if failures else 0

        transcripts = []
        for video_id in video_ids:
            try:
                transcripts.append(_with_retries(
                    args.retries,
                    service.fetch,
                    video_id,
                    languages=languages,
                    preserve_formatting=args.preserve_formatting,
                    translate_to=args.translate,
                    transcript_type=_transcript_type(args),
                ))
            except TranscriptError as e:
                failures += 1
                print(f"Error: {e}", file=sys.stderr)

    if transcripts:
        options = {"pretty": True} if args.format in _PRETTY_FORMATS else {}
        formatter = get_formatter(args.format, **options)
        if len(transcripts) == 1:
            _emit(formatter.format(transcripts[0]), args.output)
        else:
            _emit(formatter.format_many(transcripts), args.output)

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
