"""
Client Settings

Explicit, validated configuration for the cluster client. A ClientConfig is
immutable: changing a setting produces a new instance, so every request can
work on a consistent snapshot.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from elasticsearch_cluster_lib.decoder import Decoder, DefaultDecoder
from elasticsearch_cluster_lib.exceptions import ConfigurationError
from elasticsearch_cluster_lib.models import DeprecationCallback
from elasticsearch_cluster_lib.retry import Retrier, StopRetrier

DEFAULT_URL = "http://127.0.0.1:9200"
DEFAULT_SCHEME = "http"

DEFAULT_HEALTHCHECK_ENABLED = True
DEFAULT_HEALTHCHECK_TIMEOUT_STARTUP = 5.0
DEFAULT_HEALTHCHECK_TIMEOUT = 1.0
DEFAULT_HEALTHCHECK_INTERVAL = 60.0

DEFAULT_SNIFFER_ENABLED = True
DEFAULT_SNIFFER_INTERVAL = 15 * 60.0
DEFAULT_SNIFFER_TIMEOUT_STARTUP = 5.0
DEFAULT_SNIFFER_TIMEOUT = 2.0

DEFAULT_SEND_GET_BODY_AS = "GET"
DEFAULT_GZIP_ENABLED = False

SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class ClientConfig:
    """
    Configuration of a ClusterClient.

    Durations are in seconds.

    Attributes:
        urls: Seed node URLs
        scheme: Scheme used for sniffed node addresses (http or https)
        healthcheck_enabled: Run startup and periodic health checks
        healthcheck_timeout_startup: Probe timeout while connecting
        healthcheck_timeout: Probe timeout for periodic checks
        healthcheck_interval: Time between two periodic checks
        sniffer_enabled: Discover cluster nodes on startup and periodically
        sniffer_timeout_startup: Timeout of the startup sniff
        sniffer_timeout: Timeout of periodic sniffs
        sniffer_interval: Time between two sniffs
        basic_auth_username: HTTP Basic Auth user
        basic_auth_password: HTTP Basic Auth password
        gzip_enabled: Gzip request bodies
        send_get_body_as: Method used for GET requests carrying a body
        retrier: Retry policy
        retry_status_codes: Status codes routed through the retry policy
        headers: Default headers added to every request
        required_plugins: Plugins that must be installed on the cluster
        decoder: Response body decoder
        error_log: Logger for critical events
        info_log: Logger for request timings and membership changes
        trace_log: Logger for HTTP request/response dumps
        deprecation_log: Callback for responses carrying deprecation warnings
        request_timeout: Seconds the owned HTTP client waits on a single
            request; None leaves deadlines to the caller
    """
    urls: Tuple[str, ...] = (DEFAULT_URL,)
    scheme: str = DEFAULT_SCHEME
    healthcheck_enabled: bool = DEFAULT_HEALTHCHECK_ENABLED
    healthcheck_timeout_startup: float = DEFAULT_HEALTHCHECK_TIMEOUT_STARTUP
    healthcheck_timeout: float = DEFAULT_HEALTHCHECK_TIMEOUT
    healthcheck_interval: float = DEFAULT_HEALTHCHECK_INTERVAL
    sniffer_enabled: bool = DEFAULT_SNIFFER_ENABLED
    sniffer_timeout_startup: float = DEFAULT_SNIFFER_TIMEOUT_STARTUP
    sniffer_timeout: float = DEFAULT_SNIFFER_TIMEOUT
    sniffer_interval: float = DEFAULT_SNIFFER_INTERVAL
    basic_auth_username: Optional[str] = None
    basic_auth_password: Optional[str] = None
    gzip_enabled: bool = DEFAULT_GZIP_ENABLED
    send_get_body_as: str = DEFAULT_SEND_GET_BODY_AS
    retrier: Retrier = field(default_factory=StopRetrier)
    retry_status_codes: Tuple[int, ...] = ()
    headers: Dict[str, str] = field(default_factory=dict)
    required_plugins: Tuple[str, ...] = ()
    decoder: Decoder = field(default_factory=DefaultDecoder)
    error_log: Optional[logging.Logger] = None
    info_log: Optional[logging.Logger] = None
    trace_log: Optional[logging.Logger] = None
    deprecation_log: Optional[DeprecationCallback] = None
    request_timeout: Optional[float] = None

    def __post_init__(self):
        """Normalize collection fields and validate."""
        urls = self.urls
        if isinstance(urls, str):
            urls = (urls,)
        object.__setattr__(self, "urls", tuple(urls) or (DEFAULT_URL,))
        object.__setattr__(self, "retry_status_codes", tuple(self.retry_status_codes or ()))
        object.__setattr__(self, "required_plugins", tuple(self.required_plugins or ()))
        object.__setattr__(self, "headers", dict(self.headers or {}))
        object.__setattr__(self, "send_get_body_as", (self.send_get_body_as or "GET").upper())
        if self.retrier is None:
            object.__setattr__(self, "retrier", StopRetrier())
        if self.decoder is None:
            object.__setattr__(self, "decoder", DefaultDecoder())
        self.validate()

    def validate(self):
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If any value is invalid
        """
        if self.scheme not in SUPPORTED_SCHEMES:
            raise ConfigurationError(
                f"Invalid scheme '{self.scheme}'. Supported: {', '.join(SUPPORTED_SCHEMES)}"
            )

        for url in self.urls:
            _parse_url(url)

        for name in (
            "healthcheck_timeout_startup", "healthcheck_timeout", "healthcheck_interval",
            "sniffer_timeout_startup", "sniffer_timeout", "sniffer_interval", "request_timeout",
        ):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")

        for code in self.retry_status_codes:
            if not 100 <= int(code) <= 599:
                raise ConfigurationError(f"Invalid retry status code: {code}")

    def replace(self, **changes: Any) -> "ClientConfig":
        """Return a copy with the given fields changed."""
        try:
            return dataclasses.replace(self, **changes)
        except TypeError as e:
            raise ConfigurationError(str(e)) from e

    @property
    def has_basic_auth(self) -> bool:
        return bool(self.basic_auth_username or self.basic_auth_password)

    def basic_auth(self) -> Optional[httpx.BasicAuth]:
        if not self.has_basic_auth:
            return None
        return httpx.BasicAuth(self.basic_auth_username or "", self.basic_auth_password or "")

    @classmethod
    def simple(cls, **kwargs: Any) -> "ClientConfig":
        """
        Configuration for short-lived clients.

        Health checks and sniffing are disabled unless explicitly requested.
        """
        kwargs.setdefault("healthcheck_enabled", False)
        kwargs.setdefault("sniffer_enabled", False)
        return cls(**kwargs)

    def canonicalized(self) -> "ClientConfig":
        """
        Return a copy with canonical seed URLs.

        Credentials embedded in a URL are moved to basic auth, unless basic
        auth is already configured.
        """
        urls, username, password = canonicalize_urls(self.urls)
        changes: Dict[str, Any] = {"urls": tuple(urls)}
        if not self.has_basic_auth and (username or password):
            changes["basic_auth_username"] = username
            changes["basic_auth_password"] = password
        return self.replace(**changes)


def _parse_url(url: str) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigurationError(f"Invalid URL '{url}': {e}") from e

    if parsed.scheme not in SUPPORTED_SCHEMES or not parsed.host:
        raise ConfigurationError(f"Invalid URL '{url}': expected http(s)://host[:port]")
    return parsed


def canonicalize_urls(urls: Sequence[str]) -> Tuple[List[str], Optional[str], Optional[str]]:
    """
    Normalize node URLs.

    Query strings, fragments, trailing slashes and credentials are removed.
    The first credentials found are returned alongside the URLs.

    Returns:
        (canonical URLs, username, password)
    """
    canonical: List[str] = []
    username: Optional[str] = None
    password: Optional[str] = None

    for url in urls:
        parsed = _parse_url(url)
        if username is None and (parsed.username or parsed.password):
            username = parsed.username
            password = parsed.password

        host = f"[{parsed.host}]" if ":" in parsed.host else parsed.host
        path = parsed.path.rstrip("/")
        port = f":{parsed.port}" if parsed.port else ""
        canonical.append(f"{parsed.scheme}://{host}{port}{path}")

    return canonical, username, password
