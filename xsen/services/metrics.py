"""Provider-call metrics with batched CloudWatch publishing.

Every outbound call (video search, tool endpoints, Anthropic) records a
success or failure here.  With ``METRICS_ENABLED=true`` a daemon thread
pushes the buffer to CloudWatch every ``FLUSH_INTERVAL_SECONDS``; otherwise
data points are only debug-logged and dropped on flush.

>>> from xsen.services.metrics import metrics
>>> metrics.record_success("espn", "tools/call", latency_ms=182.0)
>>> metrics.record_failure("video", "GET /search", error_type="ReadTimeout")
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "XSEN"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit


def _datum(name: str, dimensions: dict[str, str], value: float, unit: str) -> dict[str, Any]:
    return {
        "MetricName": name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
        "Timestamp": datetime.now(UTC),
        "Value": value,
        "Unit": unit,
    }


class MetricsClient:
    """Buffers provider metrics and flushes them in batches."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None
        self._stopped = threading.Event()

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:  # lazy: boto3 is only needed when publishing
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        self._extend(
            _datum("Provider/Calls", {"Service": service, "Outcome": "success"}, 1, "Count"),
            _datum("Provider/Latency", {"Service": service, "Operation": operation}, latency_ms, "Milliseconds"),
        )
        logger.debug("Metric: %s %s ok %.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        points = [
            _datum("Provider/Calls", {"Service": service, "Outcome": "failure"}, 1, "Count"),
            _datum("Provider/Errors", {"Service": service, "ErrorType": error_type}, 1, "Count"),
        ]
        if latency_ms > 0:
            points.append(
                _datum("Provider/Latency", {"Service": service, "Operation": operation}, latency_ms, "Milliseconds")
            )
        self._extend(*points)
        logger.debug("Metric: %s %s failed (%s) %.1fms", service, operation, error_type, latency_ms)

    def flush(self) -> int:
        """Send buffered data points.  Returns how many were sent."""
        with self._lock:
            batch, self._buffer = self._buffer, []
        if not batch:
            return 0
        if not self._enabled:
            logger.debug("Metrics disabled, dropping %d data point(s)", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for start in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[start : start + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metric(s) to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _extend(self, *points: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.extend(points)

    def close(self) -> None:
        """Stop the flush thread and send whatever is left."""
        self._stopped.set()
        self.flush()

    def _flush_loop(self) -> None:
        while not self._stopped.wait(FLUSH_INTERVAL_SECONDS):
            try:
                self.flush()
            except Exception:
                logger.exception("Periodic metrics flush failed")

    def _start_flush_thread(self) -> None:
        threading.Thread(target=self._flush_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.close)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


metrics = MetricsClient()
