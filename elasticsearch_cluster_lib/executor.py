"""
Request Executor

Executes one logical request to completion: picks an endpoint, sends the
HTTP request, interprets the outcome, consults the retry policy and keeps
endpoint liveness up to date.
"""

import asyncio
import gzip
import json
import logging
import time
from typing import Any, Callable, Optional, Tuple

import httpx

from elasticsearch_cluster_lib.config.settings import ClientConfig
from elasticsearch_cluster_lib.exceptions import (
    ConfigurationError,
    NoNodeAvailableError,
    ResponseError,
    ResponseSizeError,
    RetryExhaustedError,
    TransportError,
)
from elasticsearch_cluster_lib.healthcheck import HealthChecker
from elasticsearch_cluster_lib.logging_utils import ClientLogger
from elasticsearch_cluster_lib.models import Endpoint, RequestOptions, Response
from elasticsearch_cluster_lib.pool import EndpointPool
from elasticsearch_cluster_lib.version import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


def encode_body(body: Any, gzip_enabled: bool) -> Tuple[Optional[bytes], bool]:
    """
    Serialize a request body.

    Returns:
        (encoded body or None, whether it was gzip-compressed)
    """
    if body is None:
        return None, False

    if isinstance(body, bytes):
        data = body
    elif isinstance(body, str):
        data = body.encode("utf-8")
    else:
        data = json.dumps(body).encode("utf-8")

    if gzip_enabled:
        return gzip.compress(data), True
    return data, False


class RequestExecutor:
    """
    Runs requests against the endpoint pool, retrying across endpoints.

    Each call works on one configuration snapshot taken when it starts.
    """

    def __init__(
        self,
        pool: EndpointPool,
        http_client: httpx.AsyncClient,
        settings: Callable[[], ClientConfig],
        health_checker: HealthChecker,
        log: Optional[ClientLogger] = None,
    ):
        """
        Initialize request executor.

        Args:
            pool: Endpoint pool to select nodes from
            http_client: Shared HTTP client
            settings: Returns the current client configuration snapshot
            health_checker: Used for a forced sweep when no node is available
            log: Client logger
        """
        self.pool = pool
        self.http_client = http_client
        self.settings = settings
        self.health_checker = health_checker
        self.log = log or ClientLogger()

    async def perform_request(self, options: RequestOptions) -> Response:
        """
        Execute a request, retrying per the retry policy.

        Args:
            options: Request options

        Returns:
            Response for a successful (2xx or ignored status) request

        Raises:
            NoNodeAvailableError: No endpoint could be selected
            RetryExhaustedError: Transport failures and the policy gave up
            TransportError: The HTTP client timed out on its own
            ResponseError: Elasticsearch rejected the request
            ResponseSizeError: The body exceeded max_response_size
        """
        start = time.monotonic()
        config = self.settings()

        retrier = options.retrier or config.retrier
        retry_status_codes = (
            options.retry_status_codes
            if options.retry_status_codes is not None
            else config.retry_status_codes
        )

        method = options.method
        if method == "GET" and options.body is not None and config.send_get_body_as != "GET":
            method = config.send_get_body_as

        content, gzipped = encode_body(options.body, config.gzip_enabled)
        auth = config.basic_auth()

        attempts = 0
        retried = False

        while True:
            try:
                endpoint = self.pool.next()
            except NoNodeAvailableError as e:
                attempts += 1
                if not retried:
                    # Every node looks dead: give the health checker a chance first.
                    await self.health_checker.check(config.healthcheck_timeout)
                    if config.healthcheck_enabled:
                        retried = True
                        continue
                decision = retrier.decide(attempts, None, None, e)
                if decision.error is not None:
                    raise decision.error
                if not decision.retry:
                    raise
                retried = True
                logger.debug(f"No node available, retrying in {decision.wait:.3f}s (attempt {attempts})")
                await asyncio.sleep(decision.wait)
                continue

            request = self._build_request(endpoint, method, options, config, content, gzipped)
            self.log.dump_request(request, content or b"")

            try:
                response = await self.http_client.send(request, auth=auth, stream=True)
            except (httpx.ReadTimeout, httpx.WriteTimeout) as e:
                # The node accepted the request but exceeded request_timeout.
                raise TransportError(str(request.url), e) from e
            except httpx.TransportError as e:
                attempts += 1
                error = TransportError(str(request.url), e)
                decision = retrier.decide(attempts, request, None, error)
                if decision.error is not None:
                    self.pool.mark_dead(endpoint)
                    raise decision.error
                if not decision.retry:
                    self.pool.mark_dead(endpoint)
                    raise RetryExhaustedError(attempts, error) from error
                retried = True
                logger.debug(f"{request.method} {endpoint.url} failed: {e!r}; retrying in {decision.wait:.3f}s")
                await asyncio.sleep(decision.wait)
                continue

            if response.status_code in retry_status_codes:
                attempts += 1
                decision = retrier.decide(attempts, request, response, None)
                if decision.error is not None:
                    await response.aclose()
                    self.pool.mark_dead(endpoint)
                    raise decision.error
                if decision.retry:
                    await response.aclose()
                    retried = True
                    logger.debug(
                        f"{request.method} {endpoint.url} returned {response.status_code}; "
                        f"retrying in {decision.wait:.3f}s"
                    )
                    await asyncio.sleep(decision.wait)
                    continue
                self.pool.mark_dead(endpoint)
                raise await self._response_error(response, config)

            result = await self._finish(request, response, options, config)
            endpoint.mark_as_healthy()
            break

        duration = time.monotonic() - start
        self.log.info(
            "%s %s [status:%d, request:%.3fs]",
            method,
            _redacted(request.url),
            result.status_code,
            duration,
        )
        return result

    def _build_request(
        self,
        endpoint: Endpoint,
        method: str,
        options: RequestOptions,
        config: ClientConfig,
        content: Optional[bytes],
        gzipped: bool,
    ) -> httpx.Request:
        url = endpoint.url + options.path

        items = []
        if options.content_type:
            items.append(("Content-Type", options.content_type))
        if options.headers:
            items.extend(httpx.Headers(options.headers).multi_items())
        if config.headers:
            items.extend(httpx.Headers(config.headers).multi_items())

        headers = httpx.Headers(items)
        if "user-agent" not in headers:
            headers["User-Agent"] = DEFAULT_USER_AGENT
        if "accept" not in headers:
            headers["Accept"] = "application/json"
        if content is not None and "content-type" not in headers:
            headers["Content-Type"] = "application/json"
        if gzipped:
            headers["Content-Encoding"] = "gzip"

        try:
            return self.http_client.build_request(
                method,
                url,
                params=options.encoded_params() or None,
                headers=headers,
                content=content,
            )
        except httpx.InvalidURL as e:
            self.log.error("elastic: cannot create request for %s %s: %s", method, url, e)
            raise ConfigurationError(f"cannot create request for {method} {url}: {e}") from e

    async def _finish(
        self,
        request: httpx.Request,
        response: httpx.Response,
        options: RequestOptions,
        config: ClientConfig,
    ) -> Response:
        """Report deprecations, check the status and build the Response."""
        warnings = response.headers.get_list("Warning")
        if warnings:
            if config.deprecation_log is not None:
                config.deprecation_log(request, response)
            for warning in warnings:
                self.log.error("Deprecation warning: %s", warning)

        status = response.status_code
        if not 200 <= status <= 299 and status not in options.ignore_errors:
            raise await self._response_error(response, config)

        if options.stream:
            self.log.dump_response(response)
            return Response(
                status_code=status,
                headers=response.headers,
                deprecation_warnings=warnings,
                stream=response,
                decoder=config.decoder,
            )

        body = await self._read_body(response, options.max_response_size)
        self.log.dump_response(response, body)
        return Response(
            status_code=status,
            headers=response.headers,
            body=body,
            deprecation_warnings=warnings,
            decoder=config.decoder,
        )

    async def _response_error(self, response: httpx.Response, config: ClientConfig) -> ResponseError:
        """Read an unsuccessful response and turn it into a ResponseError."""
        body = await self._read_body(response, 0)
        self.log.dump_response(response, body)
        partial = Response(
            status_code=response.status_code,
            headers=response.headers,
            body=body,
            deprecation_warnings=response.headers.get_list("Warning"),
            decoder=config.decoder,
        )
        return ResponseError.from_body(response.status_code, body, response=partial)

    async def _read_body(self, response: httpx.Response, max_size: int) -> bytes:
        """Read and close the response body, enforcing max_size when set."""
        try:
            if not max_size:
                return await response.aread()

            chunks = []
            size = 0
            async for chunk in response.aiter_bytes():
                size += len(chunk)
                if size > max_size:
                    raise ResponseSizeError(max_size)
                chunks.append(chunk)
            return b"".join(chunks)
        finally:
            await response.aclose()


def _redacted(url: httpx.URL) -> str:
    if url.password:
        return str(url.copy_with(password="xxxxx"))
    return str(url)
