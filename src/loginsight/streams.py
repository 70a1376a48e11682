"""Append-only numeric series, one per tracked metric."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Real

from whenever import Instant

from loginsight.errors import InvalidSampleError

logger = logging.getLogger("loginsight.streams")


@dataclass(frozen=True, slots=True)
class Sample:
    value: float
    recorded_at: Instant


@dataclass
class MetricStream:
    """Ordered samples for one metric, in arrival order.

    Samples only enter through `record`, which rejects anything that is not a
    finite real number. Readers get copies; aggregation never sees the
    underlying list.
    """

    name: str
    _samples: list[Sample] = field(default_factory=list, repr=False)

    def record(self, value: float, recorded_at: Instant | None = None) -> None:
        sample = validate_sample(self.name, value)
        self._samples.append(Sample(sample, recorded_at or Instant.now()))

    def values(self) -> list[float]:
        """Snapshot of the sample values in arrival order."""
        return [s.value for s in self._samples]

    def prune_before(self, cutoff: Instant) -> int:
        """Drop samples recorded strictly before `cutoff`. Returns how many were removed."""
        kept = [s for s in self._samples if s.recorded_at >= cutoff]
        removed = len(self._samples) - len(kept)
        if removed:
            self._samples = kept
            logger.debug("Pruned %d samples from stream %s", removed, self.name)
        return removed

    def reset(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)


def validate_sample(metric: str, value: object) -> float:
    """Return `value` as a float, or raise InvalidSampleError."""
    # bool is a Real subclass but never a meaningful sample
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidSampleError(metric, value)
    as_float = float(value)
    if not math.isfinite(as_float):
        raise InvalidSampleError(metric, value)
    return as_float
