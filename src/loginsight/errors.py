"""Typed errors raised by the insights engine.

Alerts are reports, not errors: nothing here is raised for a crossed threshold.
"""

from __future__ import annotations


class InsightsError(Exception):
    """Base class for every error raised by loginsight."""


class InvalidSampleError(InsightsError, ValueError):
    def __init__(self, metric: str, value: object) -> None:
        self.metric = metric
        self.value = value
        super().__init__(f"Metric '{metric}' only accepts finite numbers, got {value!r}")


class EmptyDatasetError(InsightsError, ValueError):
    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Cannot compute '{kind}' over an empty dataset")


class InvalidFrequencyError(InsightsError, ValueError):
    def __init__(self, frequency_type: str, frequency: str, reason: str) -> None:
        self.frequency_type = frequency_type
        self.frequency = frequency
        super().__init__(f"Invalid {frequency_type} frequency '{frequency}': {reason}")


class StoreUnavailableError(InsightsError):
    """Raised when the key-value store cannot be read or written."""


class ConfigFileError(InsightsError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot load config file {path}: {reason}")


class SinkDeliveryError(InsightsError):
    """Raised when an insights snapshot cannot be delivered to a sink."""
