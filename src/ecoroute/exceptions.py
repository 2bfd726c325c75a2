"""Error taxonomy for the optimization engine."""

from __future__ import annotations


class RoutingError(Exception):
    """Base class for all engine errors."""


class InvalidInput(RoutingError, ValueError):
    """The request cannot be optimized (missing depot, no pickups, bad coordinates)."""


class NoPathFound(RoutingError):
    """The internal graph cannot connect two points."""


class ProviderUnavailable(RoutingError, ConnectionError):
    """The external routing provider timed out, errored or returned an unusable body."""
