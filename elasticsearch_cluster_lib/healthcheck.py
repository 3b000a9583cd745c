"""
Health Checker

Probes every endpoint with a lightweight HEAD request, independently of
real traffic, and marks endpoints alive or dead accordingly.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

import httpx

from elasticsearch_cluster_lib.config.settings import ClientConfig
from elasticsearch_cluster_lib.exceptions import NoNodeAvailableError, ResponseError
from elasticsearch_cluster_lib.logging_utils import ClientLogger
from elasticsearch_cluster_lib.models import Endpoint
from elasticsearch_cluster_lib.pool import EndpointPool
from elasticsearch_cluster_lib.tasks import PeriodicTask
from elasticsearch_cluster_lib.version import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

# Pause between two rounds of the startup check
STARTUP_RETRY_INTERVAL = 1.0


def probe_headers(config: ClientConfig) -> httpx.Headers:
    """Default headers plus the client User-Agent, unless one is configured."""
    headers = httpx.Headers(config.headers)
    if "user-agent" not in headers:
        headers["User-Agent"] = DEFAULT_USER_AGENT
    return headers


class HealthChecker:
    """
    Periodically verifies that endpoints answer a HEAD request.

    Reads its settings from a config provider on every run, so configuration
    updates apply to the next sweep.
    """

    def __init__(
        self,
        pool: EndpointPool,
        http_client: httpx.AsyncClient,
        settings: Callable[[], ClientConfig],
        log: Optional[ClientLogger] = None,
    ):
        """
        Initialize health checker.

        Args:
            pool: Pool whose endpoints are probed
            http_client: Shared HTTP client
            settings: Returns the current client configuration snapshot
            log: Client logger
        """
        self.pool = pool
        self.http_client = http_client
        self.settings = settings
        self.log = log or ClientLogger()
        self._task: Optional[PeriodicTask] = None

    async def _probe(self, url: str, config: ClientConfig) -> int:
        """Send HEAD to url and return the status code."""
        response = await self.http_client.request(
            "HEAD",
            url,
            headers=probe_headers(config),
            auth=config.basic_auth(),
        )
        return response.status_code

    async def check(self, timeout: float, force: bool = False):
        """
        Probe all endpoints concurrently and update their liveness.

        A no-op when health checks are disabled, unless force is set.

        Args:
            timeout: Seconds each probe may take
            force: Run even if health checks are disabled
        """
        config = self.settings()
        if not config.healthcheck_enabled and not force:
            return

        endpoints = self.pool.snapshot()
        if not endpoints:
            return

        await asyncio.gather(*(self._check_endpoint(e, timeout, config) for e in endpoints))

    async def _check_endpoint(self, endpoint: Endpoint, timeout: float, config: ClientConfig):
        try:
            status = await asyncio.wait_for(self._probe(endpoint.url, config), timeout=timeout)
        except asyncio.TimeoutError:
            self.log.error("elastic: %s is dead", endpoint.url)
            endpoint.mark_as_dead()
            return
        except httpx.HTTPError as e:
            logger.debug(f"Health check of {endpoint.url} failed: {e!r}")
            self.log.error("elastic: %s is dead", endpoint.url)
            endpoint.mark_as_dead()
            return

        if 200 <= status <= 299:
            endpoint.mark_as_alive()
        else:
            endpoint.mark_as_dead()
            self.log.error("elastic: %s is dead [status=%d]", endpoint.url, status)

    async def startup_check(self, urls: Sequence[str], timeout: float):
        """
        Wait until any of the given URLs answers successfully.

        Rounds over all URLs are repeated about once per second until one
        succeeds or timeout elapses. Cancellation propagates unchanged.

        Raises:
            ResponseError: If the cluster answered 401 Unauthorized
            NoNodeAvailableError: If no URL answered within timeout
        """
        config = self.settings()
        last_error: Optional[BaseException] = None
        deadline = time.monotonic() + timeout

        while True:
            for url in urls:
                remaining = max(deadline - time.monotonic(), 0.001)
                try:
                    status = await asyncio.wait_for(
                        self._probe(url, config), timeout=min(timeout, remaining)
                    )
                except asyncio.TimeoutError as e:
                    last_error = e
                    continue
                except httpx.HTTPError as e:
                    last_error = e
                    continue

                if 200 <= status <= 299:
                    return
                if status == 401:
                    last_error = ResponseError(status)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(STARTUP_RETRY_INTERVAL, remaining))

        if isinstance(last_error, ResponseError):
            raise last_error
        if last_error is not None:
            raise NoNodeAvailableError(f"health check timeout: {last_error!r}") from last_error
        raise NoNodeAvailableError("health check timeout")

    @property
    def is_running(self) -> bool:
        return self._task is not None and self._task.is_running

    def start(self):
        """Start periodic health checks."""
        config = self.settings()
        if self.is_running:
            return

        async def tick():
            await self.check(self.settings().healthcheck_timeout)

        self._task = PeriodicTask("healthchecker", config.healthcheck_interval, tick)
        self._task.start()

    async def stop(self):
        """Stop periodic health checks and wait for the task to exit."""
        if self._task is not None:
            await self._task.stop()
            self._task = None
