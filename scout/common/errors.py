from __future__ import annotations


class ScoutError(Exception):
    """Base class for errors raised by the search service."""


class ConfigurationError(ScoutError):
    """Provider credentials are missing."""


class UpstreamError(ScoutError):
    """The search provider call failed or returned unusable data."""


class RegistryUnavailable(ScoutError):
    """A registration or heartbeat call to the registry failed.

    Never leaves the registry client: it is logged and dropped there.
    """
