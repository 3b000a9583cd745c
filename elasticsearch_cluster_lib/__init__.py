"""
Elasticsearch Cluster Library

A resilient asyncio client for Elasticsearch clusters.

Features:
- Round-robin endpoint pool with dead-node bookkeeping
- Periodic health checks and cluster sniffing in background tasks
- Pluggable retry policies with backoff strategies
- Structured error taxonomy with Elasticsearch error details
- Configuration from code, environment (.env), connection URLs or XML

Quick Start:
    >>> from elasticsearch_cluster_lib import create_client
    >>>
    >>> # Connect (startup health check + sniffing)
    >>> client = await create_client(["http://127.0.0.1:9200"])
    >>>
    >>> # Execute a request
    >>> response = await client.perform_request(method="GET", path="/_cluster/health")
    >>> print(response.json()["status"])
    >>>
    >>> await client.close()

Example:
    >>> from elasticsearch_cluster_lib import create_simple_client
    >>>
    >>> async with await create_simple_client(["http://127.0.0.1:9200"]) as client:
    ...     info, status = await client.ping()
    ...     print(info["version"]["number"])
"""

from elasticsearch_cluster_lib.version import __version__

__all__ = [
    # Main client
    "ClusterClient",
    # Configuration
    "ClientConfig",
    "ConfigLoader",
    # Models
    "Endpoint",
    "RequestOptions",
    "Response",
    "ErrorDetails",
    # Retry policies
    "Retrier",
    "RetryDecision",
    "StopRetrier",
    "BackoffRetrier",
    "ZeroBackoff",
    "StopBackoff",
    "ConstantBackoff",
    "SimpleBackoff",
    "ExponentialBackoff",
    # Decoders
    "DefaultDecoder",
    "NumberDecoder",
    # Exceptions
    "ClusterLibraryError",
    "ConfigurationError",
    "NoNodeAvailableError",
    "TransportError",
    "RetryExhaustedError",
    "FatalRetryError",
    "ResponseError",
    "ResponseSizeError",
    "MissingPluginError",
    # Convenience functions
    "create_client",
    "create_simple_client",
]

from typing import Sequence

from elasticsearch_cluster_lib.client import ClusterClient
from elasticsearch_cluster_lib.config import ClientConfig, ConfigLoader
from elasticsearch_cluster_lib.decoder import DefaultDecoder, NumberDecoder
from elasticsearch_cluster_lib.exceptions import (
    ClusterLibraryError,
    ConfigurationError,
    NoNodeAvailableError,
    TransportError,
    RetryExhaustedError,
    FatalRetryError,
    ResponseError,
    ResponseSizeError,
    MissingPluginError,
)
from elasticsearch_cluster_lib.models import Endpoint, RequestOptions, Response, ErrorDetails
from elasticsearch_cluster_lib.retry import (
    Retrier,
    RetryDecision,
    StopRetrier,
    BackoffRetrier,
    ZeroBackoff,
    StopBackoff,
    ConstantBackoff,
    SimpleBackoff,
    ExponentialBackoff,
)


async def create_client(urls: Sequence[str], **kwargs) -> ClusterClient:
    """
    Connect a new ClusterClient.

    Convenience function for creating a long-lived client with health
    checks and sniffing enabled by default.

    Args:
        urls: Seed node URLs
        **kwargs: Additional ClientConfig fields

    Returns:
        Running ClusterClient instance

    Example:
        >>> client = await create_client(["http://es1:9200", "http://es2:9200"],
        ...                              sniffer_enabled=False)
    """
    return await ClusterClient.connect(ClientConfig(urls=tuple(urls), **kwargs))


async def create_simple_client(urls: Sequence[str], **kwargs) -> ClusterClient:
    """
    Create a ClusterClient without health checks, sniffing or background tasks.

    Args:
        urls: Seed node URLs
        **kwargs: Additional ClientConfig fields

    Returns:
        ClusterClient instance

    Example:
        >>> client = await create_simple_client(["http://127.0.0.1:9200"])
    """
    return await ClusterClient.connect_simple(ClientConfig.simple(urls=tuple(urls), **kwargs))
