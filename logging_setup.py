"""
Core logging infrastructure for the transcript resolver.

Provides single-line JSON logging with thread-local request context,
rate limiting, URL masking and third-party library noise suppression.
"""

import json
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Set
from collections import defaultdict
from urllib.parse import urlencode, urlparse, urlunparse, parse_qs


# Thread-local storage for request context
_local = threading.local()

_SENSITIVE_PARAMS = {'key', 'token', 'auth', 'session', 'sig', 'signature', 'lsig', 'pot'}


def set_request_ctx(request_id: str = None, video_id: str = None):
    """
    Set thread-local context for request correlation.

    Args:
        request_id: Identifier of the current resolution request
        video_id: Video being resolved
    """
    if not hasattr(_local, 'context'):
        _local.context = {}

    if request_id is not None:
        _local.context['request_id'] = request_id
    if video_id is not None:
        _local.context['video_id'] = video_id


def clear_request_ctx():
    """Clear thread-local context."""
    if hasattr(_local, 'context'):
        _local.context.clear()


def get_request_ctx() -> Dict[str, str]:
    """Get current thread-local context."""
    if not hasattr(_local, 'context'):
        return {}
    return _local.context.copy()


def mask_url_for_logging(url: str) -> str:
    """Mask sensitive query parameters (API keys, signatures) in URLs."""
    try:
        parsed = urlparse(url)
        if not parsed.query:
            return url
        params = parse_qs(parsed.query, keep_blank_values=True)
        masked_params = {
            key: ['***'] * len(values) if key.lower() in _SENSITIVE_PARAMS else values
            for key, values in params.items()
        }
        return urlunparse(parsed._replace(query=urlencode(masked_params, doseq=True)))
    except ValueError:
        return f"{url.split('?')[0]}?***" if '?' in url else url


class JsonFormatter(logging.Formatter):
    """
    JSON formatter with standardized field order and context injection.

    Produces single-line JSON with stable schema:
    ts, lvl, request_id, video_id, stage, event, outcome, dur_ms, detail
    """

    _ORDERED_FIELDS = ('stage', 'event', 'outcome', 'dur_ms', 'detail')
    _STANDARD_FIELDS = {
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
        'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
        'thread', 'threadName', 'processName', 'process', 'exc_info',
        'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
        'ts', 'lvl', 'request_id', 'video_id',
    } | set(_ORDERED_FIELDS)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as single-line JSON."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        timestamp = dt.strftime('%Y-%m-%dT%H:%M:%S') + f'.{int(dt.microsecond / 1000):03d}Z'

        log_data: Dict[str, Any] = {
            'ts': timestamp,
            'lvl': record.levelname,
        }

        # Explicit video_id on the record wins over thread context
        context = get_request_ctx()
        if 'request_id' in context:
            log_data['request_id'] = context['request_id']
        video_id = getattr(record, 'video_id', None) or context.get('video_id')
        if video_id:
            log_data['video_id'] = video_id

        for field in self._ORDERED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        for attr_name, attr_value in record.__dict__.items():
            if attr_name.startswith('_') or attr_name in self._STANDARD_FIELDS:
                continue
            if attr_value is not None:
                log_data[attr_name] = attr_value

        message = record.getMessage()
        if 'detail' not in log_data and message:
            log_data['detail'] = message

        if record.exc_info:
            log_data['exc'] = self.formatException(record.exc_info)

        return json.dumps(log_data, separators=(',', ':'), ensure_ascii=False, default=str)


class RateLimitFilter(logging.Filter):
    """
    Rate limiting filter to prevent log spam.

    Limits messages to 5 per key per 60-second sliding window.
    Emits a suppression marker the first time a key exceeds its limit.
    """

    def __init__(self, per_key: int = 5, window_sec: int = 60):
        super().__init__()
        self.per_key = per_key
        self.window_sec = window_sec
        self.counts: Dict[str, list] = defaultdict(list)
        self.suppressed: Set[str] = set()
        self._lock = threading.Lock()

    def _get_message_key(self, record: logging.LogRecord) -> str:
        event = getattr(record, 'event', None)
        message = event or record.getMessage()[:100]
        return f"{record.levelname}:{message}"

    def _cleanup_old_entries(self, key: str, now: float):
        cutoff = now - self.window_sec
        self.counts[key] = [ts for ts in self.counts[key] if ts > cutoff]

    def filter(self, record: logging.LogRecord) -> bool:
        """Return True if the record should be emitted."""
        key = self._get_message_key(record)
        now = time.time()

        with self._lock:
            self._cleanup_old_entries(key, now)

            if len(self.counts[key]) < self.per_key:
                self.counts[key].append(now)
                self.suppressed.discard(key)
                return True

            if key not in self.suppressed:
                self.suppressed.add(key)
                record.msg = f"{record.getMessage()} [suppressed]"
                record.args = ()
                return True

            return False


def configure_logging(log_level: str = "INFO", use_json: bool = True) -> logging.Logger:
    """
    Configure application logging with JSON formatting and noise suppression.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        use_json: Whether to use JSON formatting (True) or basic formatting (False)

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # stderr keeps stdout clean for transcript output
    handler = logging.StreamHandler()

    if use_json:
        formatter = JsonFormatter()
        handler.addFilter(RateLimitFilter())
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    _suppress_library_noise()

    return root_logger


def _suppress_library_noise():
    """Suppress verbose logging from third-party libraries."""
    library_levels = {
        'urllib3': logging.WARNING,
        'requests': logging.WARNING,
        'charset_normalizer': logging.WARNING,
        'bs4': logging.WARNING,
    }

    for library, level in library_levels.items():
        logging.getLogger(library).setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (defaults to calling module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
