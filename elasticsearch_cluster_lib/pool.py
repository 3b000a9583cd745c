"""
Endpoint Pool

Holds the known Elasticsearch nodes and hands out a usable one in
round-robin order, skipping dead nodes.
"""

import logging
import threading
from typing import Iterable, List, Optional

from elasticsearch_cluster_lib.exceptions import NoNodeAvailableError
from elasticsearch_cluster_lib.logging_utils import ClientLogger
from elasticsearch_cluster_lib.models import Endpoint

logger = logging.getLogger(__name__)


class EndpointPool:
    """
    Ordered collection of endpoints with a shared rotation cursor.

    The entry list and cursor are guarded by one lock; liveness flags live
    on the endpoints themselves. Background tasks and the executor talk to
    the pool only through these methods.
    """

    def __init__(
        self,
        endpoints: Optional[Iterable[Endpoint]] = None,
        sniffer_enabled: bool = False,
        log: Optional[ClientLogger] = None,
    ):
        """
        Initialize endpoint pool.

        Args:
            endpoints: Initial endpoints
            sniffer_enabled: When True, dead nodes are left for the sniffer and
                health checker to revive instead of being resurrected here
            log: Client logger for cluster events
        """
        self._lock = threading.Lock()
        self._endpoints: List[Endpoint] = list(endpoints or [])
        self._cursor = -1
        self.sniffer_enabled = sniffer_enabled
        self.log = log or ClientLogger()

    @classmethod
    def from_urls(cls, urls: Iterable[str], **kwargs) -> "EndpointPool":
        """Create a pool of seed endpoints whose node id is their URL."""
        return cls([Endpoint(url, url) for url in urls], **kwargs)

    def next(self) -> Endpoint:
        """
        Return the next endpoint that is not dead.

        Raises:
            NoNodeAvailableError: If every endpoint is dead or the pool is empty.
                When sniffing is disabled all endpoints are resurrected first,
                so the following call can succeed.
        """
        with self._lock:
            count = len(self._endpoints)
            for _ in range(count):
                self._cursor += 1
                if self._cursor >= count:
                    self._cursor = 0
                endpoint = self._endpoints[self._cursor]
                if not endpoint.is_dead:
                    return endpoint

            # Nothing would ever bring these back without the sniffer.
            if count and not self.sniffer_enabled:
                self.log.error(
                    "elastic: all %d nodes marked as dead; resurrecting them to prevent deadlock",
                    count,
                )
                for endpoint in self._endpoints:
                    endpoint.mark_as_alive()

        raise NoNodeAvailableError("no available connection")

    def reconcile(self, discovered: Iterable[Endpoint]):
        """
        Replace the pool contents with freshly discovered endpoints.

        Existing entries matching both node id and URL are kept together with
        their liveness state; everything else is replaced or dropped.
        """
        with self._lock:
            current = self._endpoints
            updated: List[Endpoint] = []

            for endpoint in discovered:
                match = next(
                    (old for old in current
                     if old.node_id == endpoint.node_id and old.url == endpoint.url),
                    None,
                )
                if match is not None:
                    updated.append(match)
                else:
                    self.log.info("elastic: %s joined the cluster", endpoint.url)
                    updated.append(endpoint)

            kept = {id(e) for e in updated}
            for old in current:
                if id(old) not in kept:
                    self.log.info("elastic: %s left the cluster", old.url)

            self._endpoints = updated
            self._cursor = -1

        logger.debug(f"Pool reconciled to {len(updated)} endpoint(s)")

    def mark_dead(self, endpoint: Endpoint):
        self.log.error("elastic: %s is dead", endpoint.url)
        endpoint.mark_as_dead()

    def mark_alive(self, endpoint: Endpoint):
        endpoint.mark_as_alive()

    def mark_healthy(self, endpoint: Endpoint):
        endpoint.mark_as_healthy()

    def has_active(self) -> bool:
        """True if at least one endpoint is not dead."""
        with self._lock:
            return any(not e.is_dead for e in self._endpoints)

    def ensure_active(self):
        """
        Raise NoNodeAvailableError unless some endpoint is usable.
        """
        if not self.has_active():
            raise NoNodeAvailableError("no active connection found")

    def snapshot(self) -> List[Endpoint]:
        """Copy of the current entries, safe to iterate without the lock."""
        with self._lock:
            return list(self._endpoints)

    @property
    def urls(self) -> List[str]:
        with self._lock:
            return [e.url for e in self._endpoints]

    def __len__(self) -> int:
        with self._lock:
            return len(self._endpoints)

    def __str__(self) -> str:
        return ", ".join(str(e) for e in self.snapshot())
