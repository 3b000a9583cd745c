"""
Pytest configuration and fixtures for elasticsearch_cluster_lib tests.

Nodes are simulated with httpx.MockTransport: every test talks to a
FakeCluster that routes requests by host:port to per-node handlers.
"""

import os
import sys
from typing import Callable, Dict, List, Optional, Set

import httpx
import pytest

# Add the parent directory to the Python path so we can import the modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from elasticsearch_cluster_lib import healthcheck
from elasticsearch_cluster_lib.config.settings import ClientConfig

NODE_A = "http://es-a:9200"
NODE_B = "http://es-b:9200"
NODE_C = "http://es-c:9200"


def root_document(name: str = "node") -> Dict:
    """Body of GET / on a node."""
    return {
        "name": name,
        "cluster_name": "test-cluster",
        "version": {"number": "8.13.0"},
        "tagline": "You Know, for Search",
    }


def nodes_http_document(addresses: Dict[str, str]) -> Dict:
    """Body of GET /_nodes/http for the given node id -> publish address map."""
    return {
        "cluster_name": "test-cluster",
        "nodes": {
            node_id: {"name": node_id, "http": {"publish_address": address}}
            for node_id, address in addresses.items()
        },
    }


def default_node_handler(request: httpx.Request) -> httpx.Response:
    """A healthy node: answers HEAD/GET / and returns {} for everything else."""
    if request.url.path == "/":
        return httpx.Response(200, json=root_document(request.url.host))
    return httpx.Response(200, json={})


class FakeCluster:
    """Programmable set of fake Elasticsearch nodes."""

    def __init__(self):
        self.nodes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.down: Set[str] = set()
        self.requests: List[httpx.Request] = []

    def add_node(self, url: str, handler: Optional[Callable] = None) -> "FakeCluster":
        self.nodes[httpx.URL(url).netloc.decode("ascii")] = handler or default_node_handler
        return self

    def take_down(self, url: str):
        self.down.add(httpx.URL(url).netloc.decode("ascii"))

    def bring_up(self, url: str):
        self.down.discard(httpx.URL(url).netloc.decode("ascii"))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        netloc = request.url.netloc.decode("ascii")
        if netloc in self.down or netloc not in self.nodes:
            raise httpx.ConnectError(f"connection refused: {netloc}", request=request)
        return self.nodes[netloc](request)

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    def requests_to(self, url: str, method: Optional[str] = None, path: Optional[str] = None):
        netloc = httpx.URL(url).netloc.decode("ascii")
        return [
            r for r in self.requests
            if r.url.netloc.decode("ascii") == netloc
            and (method is None or r.method == method)
            and (path is None or r.url.path == path)
        ]


@pytest.fixture
def cluster():
    """Three healthy nodes A, B and C."""
    return FakeCluster().add_node(NODE_A).add_node(NODE_B).add_node(NODE_C)


@pytest.fixture
def simple_config():
    """Configuration for all three nodes without background activity."""
    return ClientConfig.simple(urls=(NODE_A, NODE_B, NODE_C))


@pytest.fixture(autouse=True)
def fast_startup_retry(monkeypatch):
    """Shorten the pause between startup health check rounds."""
    monkeypatch.setattr(healthcheck, "STARTUP_RETRY_INTERVAL", 0.01)
    yield
