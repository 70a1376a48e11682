"""Destinations for insights snapshots.

The coordinator never performs I/O itself; callers hand a ready snapshot to
one or more sinks. Delivery is attempted once - no retries.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import httpx

from loginsight.config import InsightsConfig
from loginsight.errors import SinkDeliveryError
from loginsight.models import InsightsSnapshot
from loginsight.types import InsightDestination

logger = logging.getLogger("loginsight.sinks")


class InsightSink(Protocol):
    def deliver(self, snapshot: InsightsSnapshot) -> None: ...


class FileInsightSink:
    """Writes the latest snapshot as pretty-printed JSON, replacing the previous one."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def deliver(self, snapshot: InsightsSnapshot) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(snapshot.model_dump_json(indent=2, by_alias=True))
        except OSError as e:
            raise SinkDeliveryError(f"Failed to write insights to {self.path}: {e}") from e
        logger.info("Insights written to %s", self.path)


class AnalyticsServiceSink:
    """POSTs snapshots to an analytics service endpoint."""

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout_sec: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=timeout_sec)

    def deliver(self, snapshot: InsightsSnapshot) -> None:
        try:
            resp = self._client.post(
                self.url,
                content=snapshot.model_dump_json(by_alias=True),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SinkDeliveryError(
                f"Analytics service returned HTTP {e.response.status_code}: "
                f"{e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise SinkDeliveryError(f"Failed to reach analytics service: {e}") from e
        logger.info("Insights sent to analytics service %s", self.url)

    def close(self) -> None:
        self._client.close()


def build_sinks(config: InsightsConfig) -> list[InsightSink]:
    """Instantiate the sinks enabled in `config`.

    Database destinations have no built-in sink and are skipped.
    """
    sinks: list[InsightSink] = []
    for destination in config.insight_destinations:
        if destination == InsightDestination.FILE:
            sinks.append(FileInsightSink(config.insight_file))
        elif destination == InsightDestination.ANALYTICS_SERVICE:
            service = config.analytics_service
            if not service.enabled or not service.url:
                logger.info("Analytics service destination configured but not enabled")
                continue
            sinks.append(
                AnalyticsServiceSink(
                    service.url, service.api_key, timeout_sec=service.timeout_sec
                )
            )
        else:
            logger.warning("No built-in sink for destination %s, skipping", destination)
    return sinks


def deliver_all(sinks: list[InsightSink], snapshot: InsightsSnapshot) -> list[str]:
    """Deliver to every sink, collecting failures instead of stopping at the first."""
    failures: list[str] = []
    for sink in sinks:
        try:
            sink.deliver(snapshot)
        except SinkDeliveryError as e:
            logger.warning("Insights delivery failed: %s", e)
            failures.append(str(e))
    return failures
