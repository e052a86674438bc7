"""
Error Types

Exceptions raised inside the analytics engine. Public entry points catch
these and turn them into typed results.
"""


class AnalyticsError(Exception):
    """Base class for analytics engine errors."""


class InvalidDateRangeError(AnalyticsError):
    """Unknown date range key or unparsable custom dates."""


class RemoteAnalyticsError(AnalyticsError):
    """The remote analytics source failed or returned an unusable payload."""
