"""
Logging helpers

The client reports through three sinks: an error log for critical events
(nodes dying, deadlock resurrection, deprecation warnings), an info log for
request timings and cluster membership changes, and a trace log that dumps
raw HTTP traffic. Each sink is a standard ``logging.Logger`` and can be
replaced through the client configuration.
"""

import logging
from typing import Optional

import httpx

PACKAGE_LOGGER = "elasticsearch_cluster_lib"
TRACE_LOGGER = "elasticsearch_cluster_lib.trace"


class ClientLogger:
    """Routes client messages to the configured error/info/trace loggers."""

    def __init__(
        self,
        error_log: Optional[logging.Logger] = None,
        info_log: Optional[logging.Logger] = None,
        trace_log: Optional[logging.Logger] = None,
    ):
        self.error_log = error_log or logging.getLogger(PACKAGE_LOGGER)
        self.info_log = info_log or logging.getLogger(PACKAGE_LOGGER)
        self.trace_log = trace_log or logging.getLogger(TRACE_LOGGER)

    def error(self, msg: str, *args):
        self.error_log.error(msg, *args)

    def info(self, msg: str, *args):
        self.info_log.info(msg, *args)

    def trace(self, msg: str, *args):
        self.trace_log.debug(msg, *args)

    @property
    def tracing(self) -> bool:
        return self.trace_log.isEnabledFor(logging.DEBUG)

    def dump_request(self, request: httpx.Request, body: bytes = b""):
        """Dump an outgoing request to the trace log."""
        if not self.tracing:
            return
        lines = [f"{request.method} {request.url} HTTP/1.1"]
        lines.extend(f"{name}: {value}" for name, value in request.headers.multi_items()
                     if name.lower() != "authorization")
        self.trace("%s\n\n%s", "\n".join(lines), _printable(body))

    def dump_response(self, response: httpx.Response, body: bytes = b""):
        """Dump an incoming response to the trace log."""
        if not self.tracing:
            return
        lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}"]
        lines.extend(f"{name}: {value}" for name, value in response.headers.multi_items())
        self.trace("%s\n\n%s", "\n".join(lines), _printable(body))


def _printable(body: bytes) -> str:
    if not body:
        return ""
    return body.decode("utf-8", errors="replace")


def setup_logging(level: str = "INFO") -> None:
    """
    Configure application logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
