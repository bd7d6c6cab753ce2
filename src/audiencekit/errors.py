"""Exception types raised by the generation layer.

Vendor SDK exceptions (auth, rate limits, network) are not wrapped: they
propagate unchanged from ``generate()``.  Decode failures surface as the
original ``json.JSONDecodeError``.
"""

from __future__ import annotations


class AudienceKitError(RuntimeError):
    """Base class for errors raised by audiencekit itself."""


class UnknownProviderError(AudienceKitError, ValueError):
    """The provider identifier is not one of the supported vendors."""


class MissingAPIKeyError(AudienceKitError):
    """No user or system API key is available for the selected provider."""


class EmptyResponseError(AudienceKitError):
    """The vendor call succeeded but produced no usable text."""
