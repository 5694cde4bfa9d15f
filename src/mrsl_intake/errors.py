from __future__ import annotations


class IntakeError(Exception):
    """Base class for every failure surfaced to the reviewer."""


class ConfigurationError(IntakeError):
    """A required setting (API key, webhook URL, ...) is missing or malformed."""


class ExtractionError(IntakeError):
    """The inference call failed or returned something other than the declared JSON shape."""


class SubmissionError(IntakeError):
    """The webhook could not be reached or answered with a non-success status."""
