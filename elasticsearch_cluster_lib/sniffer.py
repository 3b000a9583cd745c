"""
Topology Discoverer (Sniffer)

Asks the cluster for its current list of HTTP-enabled nodes and reconciles
the endpoint pool with it.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from elasticsearch_cluster_lib.config.settings import ClientConfig
from elasticsearch_cluster_lib.exceptions import NoNodeAvailableError
from elasticsearch_cluster_lib.healthcheck import probe_headers
from elasticsearch_cluster_lib.logging_utils import ClientLogger
from elasticsearch_cluster_lib.models import Endpoint
from elasticsearch_cluster_lib.pool import EndpointPool
from elasticsearch_cluster_lib.tasks import PeriodicTask

logger = logging.getLogger(__name__)

NODES_INFO_PATH = "/_nodes/http"


def extract_hostname(scheme: str, address: str) -> str:
    """
    Turn a node's http.publish_address into a URL.

    Addresses come as 'host:port' or 'hostname/ip:port'; in the latter case
    the hostname is used.

    Example:
        >>> extract_hostname("http", "es1.local/10.0.0.5:9200")
        'http://es1.local:9200'
    """
    host_part, _, port = address.rpartition(":")
    if "/" in address:
        host = address.split("/", 1)[0]
    else:
        host = host_part
    return f"{scheme}://{host}:{port}"


class Sniffer:
    """
    Discovers cluster nodes via the Nodes Info API.

    Runs once at startup (optionally) and then on its own periodic task,
    with the same lifecycle as the health checker.
    """

    def __init__(
        self,
        pool: EndpointPool,
        http_client: httpx.AsyncClient,
        settings: Callable[[], ClientConfig],
        log: Optional[ClientLogger] = None,
    ):
        self.pool = pool
        self.http_client = http_client
        self.settings = settings
        self.log = log or ClientLogger()
        self._task: Optional[PeriodicTask] = None

    def _candidate_urls(self, config: ClientConfig) -> List[str]:
        """Seed URLs first, then any pooled URL not already listed."""
        urls = list(config.urls)
        for url in self.pool.urls:
            if url not in urls:
                urls.append(url)
        return urls

    async def discover(self, timeout: float) -> List[Endpoint]:
        """
        Query the cluster for its HTTP nodes.

        Args:
            timeout: Seconds a single nodes-info request may take

        Returns:
            Endpoints for every node that publishes an HTTP address

        Raises:
            NoNodeAvailableError: If no URL returned any node
        """
        config = self.settings()
        last_error: Optional[BaseException] = None

        for url in self._candidate_urls(config):
            try:
                endpoints = await asyncio.wait_for(self._sniff_node(url, config), timeout=timeout)
            except asyncio.TimeoutError as e:
                last_error = e
                logger.debug(f"Sniffing {url} timed out after {timeout}s")
                continue
            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                logger.debug(f"Sniffing {url} failed: {e!r}")
                continue

            if endpoints:
                return endpoints

        if last_error is not None:
            raise NoNodeAvailableError(f"sniffing failed: {last_error!r}") from last_error
        raise NoNodeAvailableError("sniffing found no nodes")

    async def _sniff_node(self, url: str, config: ClientConfig) -> List[Endpoint]:
        response = await self.http_client.get(
            url + NODES_INFO_PATH,
            headers=probe_headers(config),
            auth=config.basic_auth(),
        )
        if not 200 <= response.status_code <= 299:
            logger.debug(f"Sniffing {url} returned status {response.status_code}")
            return []

        return self.parse_nodes(response.json(), config.scheme)

    @staticmethod
    def parse_nodes(payload: Dict[str, Any], scheme: str) -> List[Endpoint]:
        """
        Build endpoints from a Nodes Info response.

        Nodes without an HTTP publish address (e.g. HTTP disabled) are skipped.
        """
        if not isinstance(payload, dict):
            raise ValueError("nodes info response must be a JSON object")

        nodes = payload.get("nodes")
        if not isinstance(nodes, dict):
            return []

        endpoints = []
        for node_id, node in nodes.items():
            http = node.get("http") if isinstance(node, dict) else None
            address = http.get("publish_address") if isinstance(http, dict) else None
            if not isinstance(address, str) or not address:
                continue
            endpoints.append(Endpoint(node_id, extract_hostname(scheme, address)))
        return endpoints

    async def sniff(self, timeout: float):
        """Discover nodes and reconcile them into the pool."""
        endpoints = await self.discover(timeout)
        self.pool.reconcile(endpoints)
        logger.debug(f"Sniffed {len(endpoints)} node(s)")

    @property
    def is_running(self) -> bool:
        return self._task is not None and self._task.is_running

    def start(self):
        """Start periodic sniffing."""
        config = self.settings()
        if self.is_running:
            return

        async def tick():
            try:
                await self.sniff(self.settings().sniffer_timeout)
            except NoNodeAvailableError as e:
                self.log.error("elastic: %s", e)

        self._task = PeriodicTask("sniffer", config.sniffer_interval, tick)
        self._task.start()

    async def stop(self):
        """Stop periodic sniffing and wait for the task to exit."""
        if self._task is not None:
            await self._task.stop()
            self._task = None

