# Performance efficiency metrics: time behavior and resource utilization

import json
import logging
from typing import Any, Dict, List, Optional

from telemetry_quality.config import BenchmarkConstants
from telemetry_quality.mappers import GoalMapper
from telemetry_quality.metrics import (
    AttributeAverageMetric,
    LeafMetric,
    Metric,
    mean,
    percentile,
    safe_ratio,
    variance,
)
from telemetry_quality.telemetry import TelemetryBatch, to_ms

logger = logging.getLogger(__name__)

# Interface name prefix -> relative energy cost
INTERFACE_SCORES = (
    ("wl", 2.0),  # Wi-Fi
    ("en", 1.0),  # Ethernet
    ("ww", 1.5),  # cellular
    ("lo", 0.2),  # loopback
)
UNKNOWN_INTERFACE_SCORE = 0.5

# Weights of the 1, 5 and 15 minute load averages
LOADAVG_WEIGHTS = (1.0, 0.6, 0.3)


def response_times(batch: TelemetryBatch) -> List[float]:
    """Длительности HTTP-спанов (мс) / HTTP span durations in ms"""
    return [record.duration_ms for record in batch if record.is_http]


# -- Time Behavior -----------------------------------------------------------


class ARTMetric(LeafMetric):
    def __init__(self):
        super().__init__(
            "Average Response Time",
            "Average time (in ms) to process HTTP requests",
            "ms",
            "ART",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        return mean(response_times(batch))


class TPUTMetric(LeafMetric):
    """
    Throughput over the most recent observation window.

    The window spans from the earliest start to the latest end of HTTP spans,
    clipped to ``THROUGHPUT_WINDOW_MS``; spans starting inside it are counted.
    """

    def __init__(self):
        super().__init__(
            "Throughput",
            "Number of HTTP requests processed per second",
            "req/s",
            "TPUT",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        http = batch.http_records()
        if not http:
            return 0.0
        min_start = min(record.start_ms for record in http)
        max_end = max(record.end_ms for record in http)
        window_ms = min(max_end - min_start, float(BenchmarkConstants.THROUGHPUT_WINDOW_MS))
        if window_ms <= 0:
            return 0.0
        window_start = max_end - window_ms
        in_window = sum(1 for record in http if record.start_ms >= window_start)
        return safe_ratio(in_window, window_ms / 1000.0)


class NHRMetric(LeafMetric):
    def __init__(self):
        super().__init__(
            "Number of HTTP Requests",
            "Total number of HTTP requests observed",
            "requests",
            "NHR",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        return float(len(batch.http_records()))


class P95RTMetric(LeafMetric):
    def __init__(self):
        super().__init__(
            "95th Percentile Response Time",
            "Response time (in ms) below which 95% of HTTP requests complete",
            "ms",
            "P95RT",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        return percentile(response_times(batch), float(BenchmarkConstants.PERCENTILE))


class RTVarMetric(LeafMetric):
    def __init__(self):
        super().__init__(
            "Response Time Variance",
            "Variance of HTTP response times",
            "ms^2",
            "RTVar",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        return variance(response_times(batch))


# -- Resource Utilization ----------------------------------------------------


class CpuUsageMetric(AttributeAverageMetric):
    attribute = "app.system.cpuusage"

    def __init__(self):
        super().__init__(
            "Average CPU Usage",
            "Average system CPU usage over all spans",
            "%",
            "CpuUsage",
        )


class CpuTimeMetric(AttributeAverageMetric):
    attribute = "app.system.cputime"

    def __init__(self):
        super().__init__(
            "Average CPU Time",
            "Average CPU time used over all spans",
            "%",
            "CpuTime",
        )


class MemoryMetric(AttributeAverageMetric):
    attribute = "app.system.memory"

    def __init__(self):
        super().__init__(
            "Average Memory",
            "Average system memory usage over all spans",
            "%",
            "Memory",
        )


class UptimeMetric(LeafMetric):
    attribute = "app.system.uptime"

    def __init__(self):
        super().__init__(
            "Uptime",
            "Largest reported system uptime",
            "s",
            "Uptime",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        values = [record.number(self.attribute) for record in batch]
        values = [value for value in values if isinstance(value, float)]
        return max(values) if values else 0.0


def _loadavg_score(loadavg: Any, cores: Any) -> Optional[float]:
    if not isinstance(loadavg, (list, tuple)):
        return None
    cores_count = to_ms(cores)
    if cores_count <= 0:
        return None
    values = [to_ms(item) for item in list(loadavg)[: len(LOADAVG_WEIGHTS)]]
    values += [0.0] * (len(LOADAVG_WEIGHTS) - len(values))
    weighted = sum(weight * value for weight, value in zip(LOADAVG_WEIGHTS, values))
    return weighted / sum(LOADAVG_WEIGHTS) / cores_count


class LoadavgMetric(LeafMetric):
    """Weighted 1/5/15 minute load average per core, averaged over spans."""

    def __init__(self, acronym: str = "Loadavg"):
        super().__init__(
            "Average Load per Core",
            "Weighted load average normalized by the number of cores",
            "load/core",
            acronym,
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        scores = []
        for record in batch:
            if not (record.has("app.system.loadavg") and record.has("app.system.core")):
                continue
            score = _loadavg_score(record.get("app.system.loadavg"), record.get("app.system.core"))
            scores.append(score if score is not None else 0.0)
        return mean(scores)


def interface_score(name: str) -> float:
    for prefix, score in INTERFACE_SCORES:
        if name.startswith(prefix):
            return score
    return UNKNOWN_INTERFACE_SCORE


def parse_interfaces(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Failed to parse network interfaces attribute")
            return {}
    return dict(raw) if isinstance(raw, dict) else {}


class NetworkMetric(LeafMetric):
    """Mean energy score of reported network interfaces."""

    attribute = "app.system.networkinterfaces"

    def __init__(self, acronym: str = "Network", attribute: Optional[str] = None):
        super().__init__(
            "Network Energy Impact",
            "Average energy score of the network interfaces in use",
            "score/interface",
            acronym,
        )
        if attribute:
            self.attribute = attribute

    def _compute(self, batch: TelemetryBatch) -> float:
        total = 0.0
        count = 0
        for record in batch:
            if not record.has(self.attribute):
                continue
            for name in parse_interfaces(record.get(self.attribute)):
                total += interface_score(str(name))
                count += 1
        return safe_ratio(total, count)


# -- Mappers -----------------------------------------------------------------


class TimeBehaviorMapper(GoalMapper):
    goal_name = "Time Behavior"

    def build_metrics(self) -> List[Metric]:
        return [ARTMetric(), TPUTMetric(), NHRMetric(), P95RTMetric(), RTVarMetric()]


class ResourceUtilizationMapper(GoalMapper):
    goal_name = "Resource Utilization"
    application_type = "backend"

    def build_metrics(self) -> List[Metric]:
        return [
            CpuUsageMetric(),
            CpuTimeMetric(),
            MemoryMetric(),
            UptimeMetric(),
            LoadavgMetric(),
            NetworkMetric(),
        ]
