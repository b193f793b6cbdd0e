# Energy consumption metrics: physical and ecological footprint

import math
from collections import OrderedDict
from typing import Dict, List

from telemetry_quality.mappers import GoalMapper
from telemetry_quality.metrics import CompositeMetric, LeafMetric, Metric, mean, safe_ratio
from telemetry_quality.performance_metrics import (
    CpuTimeMetric,
    CpuUsageMetric,
    MemoryMetric,
    UptimeMetric,
)
from telemetry_quality.telemetry import ABSENT, TelemetryBatch, TelemetryRecord

NAVIGATION_PREFIX = "Navigation: "
RESOURCE_FETCH = "resourceFetch"

# Share of each resource in the physical footprint score
FOOTPRINT_WEIGHTS = OrderedDict(
    [("CpuUsage", 0.4), ("Memory", 0.3), ("CpuTime", 0.2), ("Uptime", 0.1)]
)

# EcoIndex weighting of DOM size, request count and page weight
ECOINDEX_WEIGHTS = OrderedDict([("Dom", 3.0), ("HTTPNb", 2.0), ("PageWeight", 1.0)])


class PhysicalFootprintMetric(CompositeMetric):
    """Взвешенная сумма системных ресурсов / Weighted sum of system resources"""

    def __init__(self):
        super().__init__(
            "Physical Footprint",
            "Weighted footprint of CPU, memory, CPU time and uptime",
            "score",
            "PhysicalFootprint",
        )
        self.children["CpuUsage"] = CpuUsageMetric()
        self.children["CpuTime"] = CpuTimeMetric()
        self.children["Memory"] = MemoryMetric()
        self.children["Uptime"] = UptimeMetric()

    def combine(self, values: Dict[str, float]) -> float:
        return sum(
            weight * values[name] / 100.0 for name, weight in FOOTPRINT_WEIGHTS.items()
        )


class DomMetric(LeafMetric):
    """Mean of the largest DOM size observed per page URL."""

    def __init__(self):
        super().__init__(
            "Average DOM Size",
            "Average number of DOM elements per page",
            "elements",
            "Dom",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        largest: Dict[object, float] = {}
        for record in batch:
            if record.is_http:
                continue
            url = record.key("http.url")
            dom = record.get("app.dom.element")
            if url is ABSENT or isinstance(dom, bool) or not isinstance(dom, (int, float)):
                continue
            largest[url] = max(largest.get(url, float(dom)), float(dom))
        return mean(list(largest.values()))


def _start_second(record: TelemetryRecord) -> int:
    return int(math.floor(record.start_ms / 1000.0))


class HTTPNbMetric(LeafMetric):
    """
    Число HTTP-запросов на навигацию.
    HTTP requests issued per page navigation.

    A request belongs to a navigation when it starts in the same second and
    its URL contains the navigated path.
    """

    def __init__(self):
        super().__init__(
            "HTTP Requests per Navigation",
            "Average number of HTTP requests triggered by a page navigation",
            "requests/page",
            "HTTPNb",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        navigations = [
            record
            for record in batch
            if isinstance(record.name, str) and record.name.startswith(NAVIGATION_PREFIX)
        ]
        if not navigations:
            return 0.0
        http = batch.http_records()
        total = 0
        for navigation in navigations:
            path = navigation.name[len(NAVIGATION_PREFIX):]
            if not path or navigation.start_time is None:
                continue
            second = _start_second(navigation)
            for record in http:
                url = record.text("http.url")
                if url is not ABSENT and path in url and _start_second(record) == second:
                    total += 1
        return safe_ratio(total, len(navigations))


class PageWeightMetric(LeafMetric):
    """Mean response size of fetched resources, each URL counted once."""

    def __init__(self):
        super().__init__(
            "Average Page Weight",
            "Average content length of fetched resources",
            "bytes",
            "PageWeight",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        sizes: "OrderedDict[object, float]" = OrderedDict()
        for record in batch:
            if record.name != RESOURCE_FETCH:
                continue
            url = record.key("http.url")
            size = record.number("http.response_content_length")
            if url is ABSENT or size is ABSENT or url in sizes:
                continue
            sizes[url] = float(int(size))
        return mean(list(sizes.values()))


class EcoindexMetric(CompositeMetric):
    def __init__(self):
        super().__init__(
            "EcoIndex",
            "Weighted combination of DOM size, request count and page weight",
            "score",
            "Ecoindex",
        )
        self.children["Dom"] = DomMetric()
        self.children["HTTPNb"] = HTTPNbMetric()
        self.children["PageWeight"] = PageWeightMetric()

    def combine(self, values: Dict[str, float]) -> float:
        weighted = sum(weight * values[name] for name, weight in ECOINDEX_WEIGHTS.items())
        return weighted / sum(ECOINDEX_WEIGHTS.values())


# -- Mappers -----------------------------------------------------------------


class PhysicalFootprintMapper(GoalMapper):
    goal_name = "Physical Footprint"
    application_type = "backend"

    def build_metrics(self) -> List[Metric]:
        return [
            CpuUsageMetric(),
            CpuTimeMetric(),
            MemoryMetric(),
            UptimeMetric(),
            PhysicalFootprintMetric(),
        ]


class EcologicalFootprintMapper(GoalMapper):
    goal_name = "Ecological Footprint"
    application_type = "frontend"

    def build_metrics(self) -> List[Metric]:
        return [DomMetric(), HTTPNbMetric(), PageWeightMetric(), EcoindexMetric()]
