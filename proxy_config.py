"""
Proxy configuration for upstream requests.

A ProxyConfig supplies per-scheme proxy URLs for requests and optional
static headers merged into every request.
"""

import os
from typing import Dict, Optional
from urllib.parse import quote

from logging_setup import get_logger

logger = get_logger(__name__)


class ProxyConfig:
    """Base proxy configuration"""

    def http_url(self) -> Optional[str]:
        raise NotImplementedError

    def https_url(self) -> Optional[str]:
        raise NotImplementedError

    def headers(self) -> Dict[str, str]:
        return {}

    def to_requests_dict(self) -> Dict[str, str]:
        """Proxy mapping in the shape requests expects"""
        proxies = {}
        if self.http_url():
            proxies["http"] = self.http_url()
        if self.https_url():
            proxies["https"] = self.https_url()
        return proxies


class GenericProxyConfig(ProxyConfig):
    """Explicit HTTP and/or HTTPS proxy endpoints"""

    def __init__(self, http_url: Optional[str] = None, https_url: Optional[str] = None,
                 headers: Optional[Dict[str, str]] = None):
        if not http_url and not https_url:
            raise ValueError("At least one of http_url or https_url must be provided")
        self._http_url = http_url
        self._https_url = https_url
        self._headers = dict(headers or {})

    def http_url(self) -> Optional[str]:
        # Fall back to the other scheme so both kinds of request are routed
        return self._http_url or self._https_url

    def https_url(self) -> Optional[str]:
        return self._https_url or self._http_url

    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def __repr__(self) -> str:
        return f"GenericProxyConfig(http_url={_mask(self._http_url)!r}, https_url={_mask(self._https_url)!r})"


class WebshareProxyConfig(ProxyConfig):
    """Webshare rotating residential proxies"""

    DEFAULT_HOST = "p.webshare.io"
    DEFAULT_PORT = 80

    def __init__(self, username: str, password: str, location: Optional[str] = None,
                 host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        if not username or not password:
            raise ValueError("Webshare proxy requires a username and a password")
        self.username = username
        self.password = password
        self.location = location
        self.host = host
        self.port = port

    def build_proxy_url(self) -> str:
        """Build proxy URL with runtime password encoding"""
        location_suffix = f"-country-{self.location}" if self.location else ""
        return f"http://{self.username}:{quote(self.password, safe='')}@{self.host}{location_suffix}:{self.port}"

    def http_url(self) -> Optional[str]:
        return self.build_proxy_url()

    def https_url(self) -> Optional[str]:
        return self.build_proxy_url()

    def __repr__(self) -> str:
        return (f"WebshareProxyConfig(username={self.username!r}, host={self.host!r}, "
                f"port={self.port}, location={self.location!r})")


def _mask(url: Optional[str]) -> Optional[str]:
    """Hide credentials in a proxy URL"""
    if not url or "@" not in url:
        return url
    scheme, _, rest = url.rpartition("//")
    return f"{scheme}//***@{rest.split('@', 1)[1]}"


def proxy_config_from_env() -> Optional[ProxyConfig]:
    """
    Build a proxy configuration from environment variables.

    Webshare credentials take precedence over generic proxy URLs.
    """
    username = os.getenv("WEBSHARE_PROXY_USERNAME")
    password = os.getenv("WEBSHARE_PROXY_PASSWORD")
    if username and password:
        logger.info("Using Webshare proxy configuration from environment")
        return WebshareProxyConfig(username, password, location=os.getenv("WEBSHARE_PROXY_LOCATION") or None)
    if username or password:
        logger.warning("Incomplete Webshare proxy credentials in environment, ignoring")

    http_url = os.getenv("TRANSCRIPT_HTTP_PROXY")
    https_url = os.getenv("TRANSCRIPT_HTTPS_PROXY")
    if http_url or https_url:
        logger.info("Using generic proxy configuration from environment")
        return GenericProxyConfig(http_url=http_url or None, https_url=https_url or None)

    return None
