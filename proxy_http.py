"""
HTTP transport for upstream requests with proxy support.

Thin wrapper around a requests Session: default browser-like headers, proxy
routing, a fixed timeout, and connection-level retries only. Status codes
are returned untouched so the caller can classify them; request exceptions
propagate.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from logging_setup import get_logger, mask_url_for_logging
from proxy_config import ProxyConfig
from transcript_config import DEFAULT_ACCEPT_LANGUAGE, DEFAULT_USER_AGENT

logger = get_logger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return 200 <= self.status_code < 300


class TranscriptHttpClient:
    """HTTP client with proxy support and default headers"""

    def __init__(self, proxy_config: Optional[ProxyConfig] = None,
                 headers: Optional[Dict[str, str]] = None,
                 timeout: float = 30,
                 connect_retries: int = 2,
                 session: Optional[requests.Session] = None):
        self.proxy_config = proxy_config
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()

        if self._owns_session:
            # Retry connection setup only; 429 and 5xx must reach the classifier
            retry_strategy = Retry(
                total=connect_retries,
                connect=connect_retries,
                read=0,
                status=0,
                redirect=5,
                backoff_factor=0.5,
                raise_on_status=False,
                allowed_methods=["GET", "POST"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

        self.default_headers = {
            "User-Agent": DEFAULT_USER_AGENT,
            "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
        }
        self.default_headers.update(headers or {})

    def _merged_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        merged = dict(self.default_headers)
        if self.proxy_config is not None:
            merged.update(self.proxy_config.headers())
        merged.update(headers or {})
        return merged

    def request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None,
                body: Optional[str] = None) -> HttpResponse:
        """Make a single request; raises requests.RequestException on transport failure."""
        proxies = self.proxy_config.to_requests_dict() if self.proxy_config else None
        start_time = time.monotonic()

        response = self.session.request(
            method,
            url,
            headers=self._merged_headers(headers),
            data=body.encode("utf-8") if body is not None else None,
            proxies=proxies,
            timeout=self.timeout,
        )

        latency_ms = int((time.monotonic() - start_time) * 1000)
        logger.debug(
            f"{method} {mask_url_for_logging(url)} -> {response.status_code} "
            f"latency_ms={latency_ms} proxied={bool(proxies)}"
        )

        return HttpResponse(
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )

    def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return self.request("GET", url, headers=headers)

    def post(self, url: str, headers: Optional[Dict[str, str]] = None, body: Optional[str] = None) -> HttpResponse:
        return self.request("POST", url, headers=headers, body=body)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
