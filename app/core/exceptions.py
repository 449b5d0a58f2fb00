from typing import Optional


class AnalyzerError(Exception):
    """Base class for all analyzer failures."""


class ConfigurationError(AnalyzerError):
    """A required setting (the model API key) is missing."""


class InputError(AnalyzerError):
    """User input could not be turned into posts, or there is nothing to analyze."""


class TransportError(AnalyzerError):
    """The proxy answered with a non-2xx status or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(AnalyzerError):
    """The model output did not contain usable JSON."""
