"""Insight scheduler - decides when a new insights snapshot is due.

State is derived from two persisted fields, never stored as an enum:

    NeverGenerated  no lastInsightGeneration key
    AwaitingInterval  key present, policy not yet satisfied
    Due  policy satisfied; the decision advances lastInsightGeneration to now

Policies:
- EveryUnit(amount, unit): never fires without a baseline. Sub-month units
  compare wall-clock time; months and years compare calendar fields only.
- Periodically(period): fixed day counts (daily=1, weekly=7, monthly=30,
  yearly=365). Without a baseline the epoch is used, so the first check fires.
  Unknown periods never fire.
- AfterTotalLogs(threshold): fires while totalLogs >= threshold. totalLogs is
  monotonic and is not reset on firing.

Date/Time: Uses `whenever` library (UTC-first, Rust-backed).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from whenever import Instant, TimeDelta

from loginsight.errors import InsightsError, InvalidFrequencyError, StoreUnavailableError
from loginsight.models import AfterTotalLogs, EveryUnit, Periodically, SchedulingPolicy
from loginsight.store import KeyValueStore
from loginsight.types import FrequencyType, Period, TimeUnit

logger = logging.getLogger("loginsight.scheduler")

LAST_GENERATION_KEY = "lastInsightGeneration"
TOTAL_LOGS_KEY = "totalLogs"

_UNIT_MILLIS: dict[TimeUnit, int] = {
    TimeUnit.SECONDS: 1_000,
    TimeUnit.MINUTES: 60_000,
    TimeUnit.HOURS: 3_600_000,
    TimeUnit.DAYS: 86_400_000,
    TimeUnit.WEEKS: 7 * 86_400_000,
}

_PERIOD_DAYS: dict[Period, int] = {
    Period.DAILY: 1,
    Period.WEEKLY: 7,
    Period.MONTHLY: 30,
    Period.YEARLY: 365,
}

_EVERY_UNIT_PATTERN = re.compile(r"^\s*(?:every\s+)?(\S+)\s+(\S+)\s*$", re.IGNORECASE)

_EPOCH = Instant.from_timestamp(0)


# ---------------------------------------------------------------------------
# Policy parsing
# ---------------------------------------------------------------------------


def parse_policy(frequency_type: FrequencyType | str, frequency: str) -> SchedulingPolicy:
    """Build a scheduling policy from the configured type and frequency string.

    Raises:
        InvalidFrequencyError: The frequency string cannot be read for this type.
    """
    kind = FrequencyType(frequency_type)

    if kind == FrequencyType.EVERY_UNIT:
        match = _EVERY_UNIT_PATTERN.match(frequency)
        if not match:
            raise InvalidFrequencyError(kind, frequency, "expected '<amount> <unit>'")
        amount = _parse_non_negative_int(kind, frequency, match.group(1))
        return EveryUnit(amount=amount, unit=_normalise_unit(match.group(2)))

    if kind == FrequencyType.PERIODICALLY:
        period = frequency.strip().lower()
        try:
            return Periodically(period=Period(period))
        except ValueError:
            return Periodically(period=period)

    return AfterTotalLogs(threshold=_parse_non_negative_int(kind, frequency, frequency))


def _parse_non_negative_int(kind: FrequencyType, frequency: str, raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        raise InvalidFrequencyError(kind, frequency, f"'{raw}' is not an integer") from None
    if value < 0:
        raise InvalidFrequencyError(kind, frequency, "amount must not be negative")
    return value


def _normalise_unit(raw: str) -> TimeUnit | str:
    unit = raw.lower()
    for candidate in (unit, f"{unit}s"):
        try:
            return TimeUnit(candidate)
        except ValueError:
            continue
    return raw


# ---------------------------------------------------------------------------
# Persisted bookkeeping
# ---------------------------------------------------------------------------


class SchedulerState:
    """View over the two bookkeeping keys held in a KeyValueStore.

    Store failures surface as StoreUnavailableError regardless of what the
    underlying store raised.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def last_generation(self) -> Instant | None:
        raw = self._read(LAST_GENERATION_KEY)
        if raw is None:
            return None
        try:
            return _EPOCH + TimeDelta(milliseconds=int(str(raw)))
        except (TypeError, ValueError, OverflowError):
            logger.warning("Ignoring corrupt %s value: %r", LAST_GENERATION_KEY, raw)
            return None

    @property
    def total_logs(self) -> int:
        raw = self._read(TOTAL_LOGS_KEY)
        if raw is None:
            return 0
        try:
            return int(str(raw))
        except ValueError:
            logger.warning("Ignoring corrupt %s value: %r", TOTAL_LOGS_KEY, raw)
            return 0

    def mark_generated(self, now: Instant) -> None:
        self._write(LAST_GENERATION_KEY, str(now.timestamp_millis()))

    def increment_total_logs(self, by: int = 1) -> int:
        updated = self.total_logs + by
        self._write(TOTAL_LOGS_KEY, str(updated))
        return updated

    def _read(self, key: str) -> Any | None:
        try:
            if not self._store.exists(key):
                return None
            return self._store.get(key)
        except InsightsError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to read '{key}': {e}") from e

    def _write(self, key: str, value: str) -> None:
        try:
            self._store.set(key, value)
        except InsightsError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to write '{key}': {e}") from e


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


def should_generate(policy: SchedulingPolicy, state: SchedulerState, now: Instant) -> bool:
    """Return True if a snapshot is due, advancing lastInsightGeneration to `now` if so.

    Configuration problems (unsupported unit, unknown period) return False.

    Raises:
        StoreUnavailableError: The bookkeeping store could not be read or written.
    """
    if isinstance(policy, EveryUnit):
        due = _every_unit_due(policy, state.last_generation, now)
    elif isinstance(policy, Periodically):
        due = _periodically_due(policy, state.last_generation, now)
    elif isinstance(policy, AfterTotalLogs):
        due = state.total_logs >= policy.threshold
    else:
        logger.error("Unsupported scheduling policy: %r", policy)
        return False

    if due:
        state.mark_generated(now)
        logger.info("Insights due under %s policy", policy.kind)
    return due


def _every_unit_due(policy: EveryUnit, last: Instant | None, now: Instant) -> bool:
    if last is None:
        return False

    if policy.unit == TimeUnit.MONTHS:
        current, previous = now.to_tz("UTC"), last.to_tz("UTC")
        elapsed: float = (current.year - previous.year) * 12 + (current.month - previous.month)
    elif policy.unit == TimeUnit.YEARS:
        elapsed = now.to_tz("UTC").year - last.to_tz("UTC").year
    elif policy.unit in _UNIT_MILLIS:
        elapsed = _elapsed_millis(last, now) / _UNIT_MILLIS[TimeUnit(policy.unit)]
    else:
        logger.error("Unsupported frequency unit: %s", policy.unit)
        return False

    return elapsed >= policy.amount


def _elapsed_millis(since: Instant, until: Instant) -> int:
    return until.timestamp_millis() - since.timestamp_millis()


def _periodically_due(policy: Periodically, last: Instant | None, now: Instant) -> bool:
    days = _PERIOD_DAYS.get(policy.period)
    if days is None:
        logger.debug("Unknown insight period %r never fires", policy.period)
        return False
    baseline = last if last is not None else _EPOCH
    elapsed_days = _elapsed_millis(baseline, now) / _UNIT_MILLIS[TimeUnit.DAYS]
    return elapsed_days >= days


class InsightScheduler:
    """Binds a policy to its persisted state and a clock."""

    def __init__(
        self,
        policy: SchedulingPolicy,
        store: KeyValueStore,
        *,
        clock: Callable[[], Instant] = Instant.now,
    ) -> None:
        self.policy = policy
        self.state = SchedulerState(store)
        self._clock = clock

    def should_generate(self, now: Instant | None = None) -> bool:
        return should_generate(self.policy, self.state, now or self._clock())

    def record_log(self) -> int:
        """Count one ingested log event. Returns the new cumulative total."""
        return self.state.increment_total_logs()
