"""
Data Models for Elasticsearch Cluster Library

Endpoint bookkeeping, per-call request options and response containers.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import httpx

from elasticsearch_cluster_lib.decoder import Decoder, DefaultDecoder


class Endpoint:
    """
    One Elasticsearch node: its base URL plus liveness bookkeeping.

    The URL and node id never change after creation; reconciliation keeps or
    replaces whole Endpoint objects instead. Liveness state is guarded by a
    per-endpoint lock so health updates do not serialize on the pool.
    """

    def __init__(self, node_id: str, url: str):
        """
        Initialize endpoint.

        Args:
            node_id: Cluster node identifier (the URL itself for seed nodes)
            url: Base URL, e.g. 'http://127.0.0.1:9200'
        """
        self._node_id = node_id
        self._url = url
        self._lock = threading.Lock()
        self._dead = False
        self._failures = 0
        self._dead_since: Optional[float] = None

    @property
    def node_id(self) -> str:
        return self._node_id

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_dead(self) -> bool:
        with self._lock:
            return self._dead

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    @property
    def dead_since(self) -> Optional[float]:
        with self._lock:
            return self._dead_since

    def mark_as_dead(self):
        """Mark the endpoint dead and record the failure."""
        with self._lock:
            self._dead = True
            if self._dead_since is None:
                self._dead_since = time.time()
            self._failures += 1

    def mark_as_alive(self):
        """Flip the endpoint back to alive, keeping its failure history."""
        with self._lock:
            self._dead = False

    def mark_as_healthy(self):
        """Mark alive after a full round-trip and clear the failure history."""
        with self._lock:
            self._dead = False
            self._dead_since = None
            self._failures = 0

    def __str__(self) -> str:
        with self._lock:
            return (
                f"{self._url} [dead={str(self._dead).lower()},"
                f"failures={self._failures},deadSince={self._dead_since}]"
            )

    def __repr__(self) -> str:
        return f"Endpoint(node_id='{self._node_id}', url='{self._url}')"


@dataclass
class RequestOptions:
    """
    Options for a single logical request.

    Attributes:
        method: HTTP method
        path: Path below the node URL, e.g. '/_search'
        params: Query string parameters
        body: Request body; str/bytes sent verbatim, anything else JSON-encoded
        content_type: Content-Type override (defaults to application/json)
        ignore_errors: Status codes treated as success (e.g. 404 for exists checks)
        retrier: Per-call retry policy overriding the client's
        retry_status_codes: Per-call override of the retryable status codes
        headers: Per-call HTTP headers
        max_response_size: Maximum body size in bytes (0 means unlimited)
        stream: Hand back the open response instead of reading the body
    """
    method: str = "GET"
    path: str = "/"
    params: Optional[Dict[str, Any]] = None
    body: Any = None
    content_type: str = ""
    ignore_errors: Sequence[int] = ()
    retrier: Any = None
    retry_status_codes: Optional[Sequence[int]] = None
    headers: Optional[Union[Dict[str, str], httpx.Headers]] = None
    max_response_size: int = 0
    stream: bool = False

    def __post_init__(self):
        """Validate request options."""
        if not self.method:
            raise ValueError("method must not be empty")

        if self.max_response_size < 0:
            raise ValueError(f"max_response_size must be non-negative, got {self.max_response_size}")

        if not self.path.startswith("/"):
            self.path = "/" + self.path

        self.method = self.method.upper()

    def encoded_params(self) -> List[tuple]:
        """Query parameters as (name, value) pairs, booleans lower-cased."""
        if not self.params:
            return []

        pairs = []
        for name, value in self.params.items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, (list, tuple)):
                value = ",".join(str(v) for v in value)
            pairs.append((name, str(value)))
        return pairs


@dataclass
class Response:
    """
    Response of a successful (or partially successful) request.

    Attributes:
        status_code: HTTP status code
        headers: Response headers
        body: Raw body (empty when streaming)
        deprecation_warnings: Values of the 'Warning' response headers
        stream: Open httpx.Response when the request was streamed; the caller
            must close it
    """
    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b""
    deprecation_warnings: List[str] = field(default_factory=list)
    stream: Optional[httpx.Response] = None
    decoder: Decoder = field(default_factory=DefaultDecoder, repr=False)

    def json(self) -> Any:
        """Decode the body with the configured decoder; None for an empty body."""
        if not self.body:
            return None
        return self.decoder.decode(self.body)

    async def aclose(self):
        """Close the underlying stream, if any."""
        if self.stream is not None:
            await self.stream.aclose()


@dataclass
class ErrorDetails:
    """
    Error details as returned by Elasticsearch.

    Attributes:
        type: Exception type, e.g. 'index_not_found_exception'
        reason: Human readable reason
        index: Index the error relates to
        resource_type: Type of the missing/conflicting resource
        resource_id: Id of the missing/conflicting resource
        caused_by: Nested cause as sent by Elasticsearch
        root_cause: Root causes
        failed_shards: Per-shard failures
        script_stack: Script stack for script exceptions
        extra: Any remaining fields
    """
    type: str = ""
    reason: str = ""
    index: str = ""
    resource_type: str = ""
    resource_id: str = ""
    caused_by: Optional[Dict[str, Any]] = None
    root_cause: List["ErrorDetails"] = field(default_factory=list)
    failed_shards: List[Dict[str, Any]] = field(default_factory=list)
    script_stack: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN = (
        "type", "reason", "index", "resource.type", "resource.id",
        "caused_by", "root_cause", "failed_shards", "script_stack",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorDetails":
        """Create ErrorDetails from the 'error' object of a response."""
        root_cause = [
            cls.from_dict(cause) for cause in data.get("root_cause") or []
            if isinstance(cause, dict)
        ]
        return cls(
            type=data.get("type", "") or "",
            reason=data.get("reason", "") or "",
            index=data.get("index", "") or "",
            resource_type=data.get("resource.type", "") or "",
            resource_id=data.get("resource.id", "") or "",
            caused_by=data.get("caused_by"),
            root_cause=root_cause,
            failed_shards=list(data.get("failed_shards") or []),
            script_stack=list(data.get("script_stack") or []),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {"type": self.type, "reason": self.reason}
        if self.index:
            result["index"] = self.index
        if self.resource_type:
            result["resource.type"] = self.resource_type
        if self.resource_id:
            result["resource.id"] = self.resource_id
        if self.caused_by:
            result["caused_by"] = self.caused_by
        if self.root_cause:
            result["root_cause"] = [c.to_dict() for c in self.root_cause]
        if self.failed_shards:
            result["failed_shards"] = self.failed_shards
        if self.script_stack:
            result["script_stack"] = self.script_stack
        result.update(self.extra)
        return result


DeprecationCallback = Callable[[httpx.Request, httpx.Response], None]
