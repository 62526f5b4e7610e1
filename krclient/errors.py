"""Base exception shared by every krclient error."""


class KrError(Exception):
    """Base class for errors raised by krclient."""
