"""
Error Handling Example

Demonstrates proper error handling with the library.
"""

import asyncio

from elasticsearch_cluster_lib import ClusterClient, ExponentialBackoff, BackoffRetrier
from elasticsearch_cluster_lib.exceptions import (
    ClusterLibraryError,
    NoNodeAvailableError,
    ResponseError,
    RetryExhaustedError,
    is_conflict,
    is_not_found,
)


async def main():
    """Demonstrate error handling."""

    # Example 1: Nobody listening
    print("="*60)
    print("Example 1: Unreachable Cluster")
    print("="*60)

    try:
        await ClusterClient.connect(
            urls=("http://127.0.0.1:9299",),
            sniffer_enabled=False,
            healthcheck_timeout_startup=2.0,
        )
    except NoNodeAvailableError as e:
        print(f"✓ Caught NoNodeAvailableError: {e}")

    client = await ClusterClient.connect(
        urls=("http://127.0.0.1:9200",),
        sniffer_enabled=False,
        retrier=BackoffRetrier(ExponentialBackoff(100, 2000)),
        retry_status_codes=(429, 503),
    )

    try:
        # Example 2: Application errors carry Elasticsearch's error details
        print("\n" + "="*60)
        print("Example 2: Index Not Found")
        print("="*60)

        try:
            await client.perform_request(method="GET", path="/no-such-index/_search")
        except ResponseError as e:
            print(f"✓ Caught ResponseError: {e}")
            print(f"  Status: {e.status}")
            if e.details:
                print(f"  Type:   {e.details.type}")
                print(f"  Reason: {e.details.reason}")
            print(f"  is_not_found: {is_not_found(e)}")

        # Example 3: Version conflicts
        print("\n" + "="*60)
        print("Example 3: Version Conflict")
        print("="*60)

        await client.perform_request(method="PUT", path="/example/_doc/1", body={"n": 1})
        try:
            await client.perform_request(
                method="PUT",
                path="/example/_create/1",
                body={"n": 2},
            )
        except ResponseError as e:
            print(f"✓ Conflict detected: {is_conflict(e)}")

        # Example 4: Catch all library errors
        print("\n" + "="*60)
        print("Example 4: Catch All Library Errors")
        print("="*60)

        async def safe_request(path: str):
            """Execute a request with comprehensive error handling."""
            try:
                response = await client.perform_request(method="GET", path=path)
                return f"✓ {response.status_code}"
            except ResponseError as e:
                return f"✗ Rejected: {e}"
            except RetryExhaustedError as e:
                return f"✗ Gave up after {e.attempts} attempts: {e}"
            except NoNodeAvailableError as e:
                return f"✗ Cluster unreachable: {e}"
            except ClusterLibraryError as e:
                return f"✗ Library error: {e}"

        for path in ("/", "/_cluster/health", "/no-such-index"):
            result = await safe_request(path)
            print(f"  GET {path}: {result}")

        # Example 5: Deadlines are set by the caller
        print("\n" + "="*60)
        print("Example 5: Caller Deadline")
        print("="*60)

        try:
            await asyncio.wait_for(
                client.perform_request(method="GET", path="/_cluster/health",
                                       params={"wait_for_status": "green", "timeout": "30s"}),
                timeout=0.5,
            )
        except asyncio.TimeoutError:
            print("✓ Request cancelled by caller; node liveness unchanged")
            print(f"  {client}")

    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
