"""
Domain exceptions.

- `InvalidRangeToken` is a programmer error and fails fast.
- `QueryFailure` is transient; the controller catches it at its boundary and
  keeps showing the last good data.
- `ConfigError` reports an invalid configuration or settings file.

"Insufficient data" and the informational merge outcomes are result values,
not exceptions (see `evasoil.domain.models`).
"""

from __future__ import annotations


class InvalidRangeToken(ValueError):
    """Raised when a range token is not one of 1h, 6h, 24h, 7d, 30d."""


class QueryFailure(RuntimeError):
    """Raised (or delivered) when a readings-store range query fails."""


class ConfigError(ValueError):
    """Raised when configuration or persisted settings are invalid."""
