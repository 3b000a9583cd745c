"""
Basic Usage Example

Demonstrates connecting to a cluster and executing requests.
"""

import asyncio

from elasticsearch_cluster_lib import ClusterClient, create_client
from elasticsearch_cluster_lib.logging_utils import setup_logging


async def main():
    """Run basic cluster examples."""
    setup_logging("INFO")

    # Connect: startup health check, sniffing and background tasks
    print("Connecting to cluster...")
    client = await create_client(["http://127.0.0.1:9200"])

    try:
        version = await client.elasticsearch_version()
        print(f"Connected to Elasticsearch {version}")

        print("\nKnown nodes:")
        for endpoint in client.pool.snapshot():
            print(f"  {endpoint}")

        # Cluster health
        print("\n" + "="*60)
        print("Cluster health")
        print("="*60)

        response = await client.perform_request(method="GET", path="/_cluster/health")
        health = response.json()
        print(f"  Status: {health['status']}")
        print(f"  Nodes:  {health['number_of_nodes']}")

        # Index and fetch a document
        print("\n" + "="*60)
        print("Index and fetch a document")
        print("="*60)

        await client.perform_request(
            method="PUT",
            path="/example/_doc/1",
            params={"refresh": True},
            body={"title": "Hello", "tags": ["a", "b"]},
        )

        response = await client.perform_request(method="GET", path="/example/_doc/1")
        print(f"  _source: {response.json()['_source']}")

        # Search with a body (sent as POST when send_get_body_as='POST')
        response = await client.perform_request(
            method="GET",
            path="/example/_search",
            body={"query": {"match": {"title": "hello"}}},
        )
        print(f"  Hits: {response.json()['hits']['total']}")

        # Check existence without raising on 404
        response = await client.perform_request(
            method="HEAD",
            path="/missing-index",
            ignore_errors=[404],
        )
        print(f"  missing-index exists: {response.status_code == 200}")

    finally:
        await client.close()

    # Short-lived client without background tasks
    print("\n" + "="*60)
    print("Simple client")
    print("="*60)

    async with await ClusterClient.connect_simple(urls=("http://127.0.0.1:9200",)) as simple:
        info, status = await simple.ping()
        print(f"  ping: {status} ({info['cluster_name']})")


if __name__ == "__main__":
    asyncio.run(main())
