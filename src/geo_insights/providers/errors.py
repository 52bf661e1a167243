"""Errors raised by external provider clients."""

from __future__ import annotations


class ProviderError(RuntimeError):
    pass


class GeolocationError(ProviderError):
    pass


class InsightError(ProviderError):
    pass
