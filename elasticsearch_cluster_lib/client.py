"""
Cluster Client

High-level entry point: builds the endpoint pool, runs the startup checks,
owns the background health checker and sniffer and executes requests.
"""

import dataclasses
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

import httpx

from elasticsearch_cluster_lib.config.loader import ConfigLoader
from elasticsearch_cluster_lib.config.settings import ClientConfig
from elasticsearch_cluster_lib.exceptions import MissingPluginError, ResponseError, TransportError
from elasticsearch_cluster_lib.executor import RequestExecutor
from elasticsearch_cluster_lib.healthcheck import HealthChecker, probe_headers
from elasticsearch_cluster_lib.logging_utils import ClientLogger
from elasticsearch_cluster_lib.models import RequestOptions, Response
from elasticsearch_cluster_lib.pool import EndpointPool
from elasticsearch_cluster_lib.sniffer import Sniffer

logger = logging.getLogger(__name__)


class ClusterClient:
    """
    Resilient client for an Elasticsearch cluster.

    Use ``connect()`` for a long-lived client with health checks and
    sniffing, or ``connect_simple()`` for short-lived scripts.

    Example:
        >>> async with await ClusterClient.connect(urls=("http://127.0.0.1:9200",)) as client:
        ...     response = await client.perform_request(method="GET", path="/_cluster/health")
        ...     print(response.json()["status"])
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize cluster client without contacting the cluster.

        Args:
            config: Client configuration (defaults to ClientConfig())
            http_client: HTTP client to use; one is created (and closed with
                the client) when omitted
        """
        config = config or ClientConfig()
        self._config = config
        self._config_lock = threading.Lock()
        self._running = False

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=config.request_timeout)

        self.log = ClientLogger(config.error_log, config.info_log, config.trace_log)
        self.pool = EndpointPool.from_urls(
            config.urls,
            sniffer_enabled=config.sniffer_enabled,
            log=self.log,
        )
        self.health_checker = HealthChecker(self.pool, self.http_client, self.settings, self.log)
        self.sniffer = Sniffer(self.pool, self.http_client, self.settings, self.log)
        self.executor = RequestExecutor(
            self.pool,
            self.http_client,
            self.settings,
            self.health_checker,
            self.log,
        )

    @classmethod
    async def connect(
        cls,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        **overrides: Any,
    ) -> "ClusterClient":
        """
        Create a client and bring it into service.

        Runs the startup health check, the startup sniff, a health check
        sweep, verifies required plugins and starts the background tasks.

        Args:
            config: Client configuration
            http_client: HTTP client to use
            **overrides: ClientConfig fields overriding config

        Returns:
            Running ClusterClient

        Raises:
            NoNodeAvailableError: If no node answered in time
            ResponseError: If the cluster rejected the credentials (401)
            MissingPluginError: If a required plugin is not installed
            ConfigurationError: If the configuration is invalid
        """
        config = config or ClientConfig()
        if overrides:
            config = config.replace(**overrides)

        client = cls(config.canonicalized(), http_client=http_client)
        try:
            await client._bootstrap()
        except BaseException:
            await client.close()
            raise
        return client

    @classmethod
    async def connect_simple(
        cls,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        **overrides: Any,
    ) -> "ClusterClient":
        """
        Create a client without health checks, sniffing or background tasks.

        Suited for short-lived scripts; requests go to the seed URLs only.
        """
        config = config or ClientConfig.simple()
        overrides.setdefault("healthcheck_enabled", False)
        overrides.setdefault("sniffer_enabled", False)
        config = config.replace(**overrides)

        client = cls(config.canonicalized(), http_client=http_client)
        try:
            client.pool.ensure_active()
            await client._check_required_plugins()
        except BaseException:
            await client.close()
            raise
        return client

    @classmethod
    async def from_url(
        cls,
        url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        **overrides: Any,
    ) -> "ClusterClient":
        """
        Connect using a connection URL.

        Example:
            >>> client = await ClusterClient.from_url("http://127.0.0.1:9200?sniff=false")
        """
        config = ConfigLoader().from_url(url, **overrides)
        return await cls.connect(config, http_client=http_client)

    async def _bootstrap(self):
        config = self.settings()

        if config.healthcheck_enabled:
            await self.health_checker.startup_check(config.urls, config.healthcheck_timeout_startup)

        if config.sniffer_enabled:
            await self.sniffer.sniff(config.sniffer_timeout_startup)

        if config.healthcheck_enabled:
            await self.health_checker.check(config.healthcheck_timeout_startup, force=True)

        self.pool.ensure_active()
        await self._check_required_plugins()
        self.start()

        logger.info(f"ClusterClient connected to {len(self.pool)} node(s)")

    async def _check_required_plugins(self):
        required = self.settings().required_plugins
        if not required:
            return

        installed = await self.plugins()
        for plugin in required:
            if plugin not in installed:
                raise MissingPluginError(plugin)

    def settings(self) -> ClientConfig:
        """Current configuration snapshot."""
        with self._config_lock:
            return self._config

    def update_config(self, **changes: Any) -> ClientConfig:
        """
        Change configuration fields.

        In-flight requests keep the snapshot they started with; background
        tasks pick the change up on their next run.

        Returns:
            The new configuration
        """
        with self._config_lock:
            self._config = self._config.replace(**changes)
            config = self._config

        self.pool.sniffer_enabled = config.sniffer_enabled
        self.log.error_log = config.error_log or self.log.error_log
        self.log.info_log = config.info_log or self.log.info_log
        self.log.trace_log = config.trace_log or self.log.trace_log
        return config

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        """Start the background health checker and sniffer (if enabled)."""
        if self._running:
            return

        config = self.settings()
        if config.healthcheck_enabled:
            self.health_checker.start()
        if config.sniffer_enabled:
            self.sniffer.start()
        self._running = True
        logger.debug("Background tasks started")

    async def stop(self):
        """Stop background tasks and wait until they have exited."""
        if not self._running:
            return

        await self.health_checker.stop()
        await self.sniffer.stop()
        self._running = False
        logger.debug("Background tasks stopped")

    async def close(self):
        """Stop background tasks and release the HTTP client."""
        await self.stop()
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "ClusterClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def perform_request(self, options: Optional[RequestOptions] = None, **kwargs: Any) -> Response:
        """
        Execute a request against the cluster.

        Args:
            options: Request options; keyword arguments override its fields
            **kwargs: RequestOptions fields (method, path, params, body, ...)

        Returns:
            Response

        Example:
            >>> response = await client.perform_request(method="GET", path="/_cat/indices",
            ...                                         params={"format": "json"})
        """
        if options is None:
            options = RequestOptions(**kwargs)
        elif kwargs:
            options = dataclasses.replace(options, **kwargs)
        return await self.executor.perform_request(options)

    async def ping(self, url: Optional[str] = None) -> Tuple[Optional[Dict[str, Any]], int]:
        """
        Fetch the cluster's root document.

        Without url the request goes through the pool like any other request;
        with url that exact node is asked, bypassing the pool.

        Returns:
            (decoded info document, status code)
        """
        if url is None:
            response = await self.perform_request(method="GET", path="/")
            return response.json(), response.status_code

        config = self.settings()
        try:
            response = await self.http_client.get(
                url,
                headers=probe_headers(config),
                auth=config.basic_auth(),
            )
        except httpx.TransportError as e:
            raise TransportError(url, e) from e

        if not 200 <= response.status_code <= 299:
            raise ResponseError.from_body(response.status_code, response.content)

        info = config.decoder.decode(response.content) if response.content else None
        return info, response.status_code

    async def elasticsearch_version(self, url: Optional[str] = None) -> str:
        """Version number reported by the cluster, e.g. '8.13.0'."""
        info, _ = await self.ping(url)
        return ((info or {}).get("version") or {}).get("number", "")

    async def nodes_info(self, *metrics: str) -> Dict[str, Any]:
        """
        Call the Nodes Info API.

        Args:
            *metrics: Metrics to return, e.g. 'http', 'plugins' (all if omitted)
        """
        path = "/_nodes"
        if metrics:
            path += "/" + ",".join(metrics)
        response = await self.perform_request(method="GET", path=path)
        return response.json() or {}

    async def plugins(self) -> List[str]:
        """Names of all plugins installed on any node of the cluster."""
        info = await self.nodes_info("plugins")
        names: List[str] = []
        for node in (info.get("nodes") or {}).values():
            for plugin in (node or {}).get("plugins") or []:
                name = plugin.get("name")
                if name and name not in names:
                    names.append(name)
        return names

    def __str__(self) -> str:
        return str(self.pool)
