"""Exceptions raised by zemon."""


class ZemonError(Exception):
    """Base class for errors that end a monitoring session."""


class ProviderError(ZemonError):
    """Metric collection failed."""


class TerminalError(ZemonError):
    """Entering, drawing to or polling the terminal failed."""
