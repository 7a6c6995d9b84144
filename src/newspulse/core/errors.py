"""Exception types raised across the pipeline."""

from __future__ import annotations


class NewsPulseError(Exception):
    """Base class for newspulse errors."""


class ConfigError(NewsPulseError):
    """Settings are missing or invalid."""


class SourceError(NewsPulseError):
    """A feed or price source failed after exhausting its retries."""

    def __init__(self, label: str, attempts: int, cause: BaseException) -> None:
        super().__init__(f"{label} failed after {attempts} attempt(s): {cause}")
        self.label = label
        self.attempts = attempts
        self.cause = cause


class EvaluatorError(NewsPulseError):
    """The trust evaluator backend could not produce a response."""


class DeliveryError(NewsPulseError):
    """The delivery channel rejected a message."""
