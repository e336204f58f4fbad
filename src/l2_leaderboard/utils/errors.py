"""Exception types shared by the registry, RPC layer and aggregator."""
from __future__ import annotations

from typing import Iterable


class InvalidArgument(ValueError):
    """Raised for a malformed endpoint URL, block count or interval token."""


class RpcConnectionError(ConnectionError):
    """Raised when an RPC endpoint cannot be reached or identified."""


class RateLimited(RuntimeError):
    """Raised when an endpoint answers with HTTP 429 / Too Many Requests."""

    code = "429"


class UpstreamDataGap(LookupError):
    """A block, transaction or receipt came back empty from the endpoint."""


class ChainValidationError(ValueError):
    """Raised when a chain entry cannot be added to the registry."""

    def __init__(self, message: str, missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing = tuple(missing)
