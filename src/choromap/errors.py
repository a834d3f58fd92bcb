"""Error taxonomy for loading, configuration and join problems."""

from __future__ import annotations


class ChoromapError(Exception):
    """Base class for all choromap failures."""


class LoadError(ChoromapError):
    """A geometry or record source could not be loaded or parsed."""


class ConfigurationError(ChoromapError, ValueError):
    """Fatal misuse: bad config, empty geometry, empty category schema."""


class UnmatchedRecordWarning(UserWarning):
    """A record or feature without a counterpart in the other source.

    Never raised. Instances are collected on the join result and logged.
    """
