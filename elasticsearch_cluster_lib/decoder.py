"""
Response Decoders

Pluggable decoders used to turn Elasticsearch response bodies into Python
objects. Pass an instance as ``ClientConfig.decoder`` to replace the default.
"""

import json
from decimal import Decimal
from typing import Any


class Decoder:
    """Interface for response body decoders."""

    def decode(self, data: bytes) -> Any:
        raise NotImplementedError


class DefaultDecoder(Decoder):
    """Decodes JSON with the standard ``json`` module."""

    def decode(self, data: bytes) -> Any:
        return json.loads(data)


class NumberDecoder(Decoder):
    """
    Decodes JSON keeping full numeric precision.

    Floating point values become ``Decimal`` so that e.g. scores and
    aggregation values survive a round-trip without rounding.
    """

    def decode(self, data: bytes) -> Any:
        return json.loads(data, parse_float=Decimal)
