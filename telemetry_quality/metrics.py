# Metric base classes, bounded history and shared numeric helpers

import math
from collections import OrderedDict, deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterable, List, Optional, Sequence

from telemetry_quality.config import BenchmarkConstants
from telemetry_quality.telemetry import TelemetryBatch, TelemetryType


def safe_ratio(numerator: float, denominator: float) -> float:
    """Деление без ошибок: x / 0 -> 0 / Zero denominator yields 0"""
    if not denominator:
        return 0.0
    return finite(numerator / denominator)


def finite(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def mean(values: Sequence[float]) -> float:
    return safe_ratio(sum(values), len(values)) if values else 0.0


def percentile(values: Iterable[float], p: float) -> float:
    """Value at index floor(p * n) of the ascending-sorted values."""
    ordered = sorted(values)
    if not ordered:
        return 0.0
    index = min(int(math.floor(p * len(ordered))), len(ordered) - 1)
    return ordered[max(index, 0)]


def variance(values: Sequence[float]) -> float:
    """Population variance; fewer than two values yield 0."""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return mean([(value - avg) ** 2 for value in values])


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class HistoryEntry:
    timestamp: str
    value: float


class MetricHistory:
    """
    Ограниченная история значений метрики.
    Bounded history of past metric values, oldest entries dropped first.
    """

    def __init__(self, limit: Optional[int] = None):
        self._entries: Deque[HistoryEntry] = deque(
            maxlen=int(limit or BenchmarkConstants.HISTORY_LIMIT)
        )

    @property
    def limit(self) -> int:
        return self._entries.maxlen

    def record(self, value: float, timestamp: Optional[str] = None) -> HistoryEntry:
        entry = HistoryEntry(timestamp=timestamp or utc_now_iso(), value=finite(value))
        self._entries.append(entry)
        return entry

    def extend(self, entries: Iterable[HistoryEntry]) -> None:
        for entry in entries:
            self._entries.append(entry)

    def values(self) -> List[float]:
        return [entry.value for entry in self._entries]

    def max_value(self) -> Optional[float]:
        return max(self.values()) if self._entries else None

    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def to_list(self) -> List[Dict[str, Any]]:
        return [asdict(entry) for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)


class Metric:
    """
    Метрика: сводит пакет телеметрии к одному числу.
    A named, unit-tagged reduction of a telemetry batch to a single number.

    Subclasses implement ``_compute``; ``compute_value`` wraps it so that the
    stored value is always finite and no state leaks between calls.
    """

    kind = ""

    def __init__(
        self,
        name: str,
        description: str,
        unit: str,
        acronym: str,
        required_telemetry: Sequence[TelemetryType] = (TelemetryType.TRACING,),
    ):
        self.name = name
        self.description = description
        self.unit = unit
        self.acronym = acronym
        self.required_telemetry = list(required_telemetry)
        self.value = 0.0
        self.history = MetricHistory()

    def compute_value(self, batch: Any) -> float:
        self.value = finite(self._compute(TelemetryBatch.coerce(batch)))
        return self.value

    def _compute(self, batch: TelemetryBatch) -> float:
        raise NotImplementedError

    def record_history(self, timestamp: Optional[str] = None) -> HistoryEntry:
        return self.history.record(self.value, timestamp)

    def reset_value(self) -> None:
        self.value = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "acronym": self.acronym,
            "description": self.description,
            "unit": self.unit,
            "kind": self.kind,
            "value": self.value,
            "requiredTelemetry": [item.value for item in self.required_telemetry],
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(acronym={self.acronym!r}, value={self.value})"


class LeafMetric(Metric):
    """Метрика, вычисляемая напрямую по записям / Computed from records"""

    kind = "leaf"


class CompositeMetric(Metric):
    """
    Метрика из дочерних метрик / Combination of named child metrics.

    Every child is computed against the same batch before ``combine``.
    """

    kind = "composite"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.children: "OrderedDict[str, Metric]" = OrderedDict()

    def child_values(self, batch: TelemetryBatch) -> Dict[str, float]:
        return {name: child.compute_value(batch) for name, child in self.children.items()}

    def _compute(self, batch: TelemetryBatch) -> float:
        return self.combine(self.child_values(batch))

    def combine(self, values: Dict[str, float]) -> float:
        raise NotImplementedError

    def reset_value(self) -> None:
        super().reset_value()
        for child in self.children.values():
            child.reset_value()

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["children"] = {
            name: child.value for name, child in self.children.items()
        }
        return payload


# -- reusable leaf patterns ------------------------------------------------


class DistinctCountMetric(LeafMetric):
    """Число различных значений атрибута / Distinct values of one attribute"""

    attribute = ""

    def _compute(self, batch: TelemetryBatch) -> float:
        return float(len(batch.distinct(self.attribute)))


class AttributeAverageMetric(LeafMetric):
    """Среднее числового атрибута / Average of a numeric attribute"""

    attribute = ""

    def _compute(self, batch: TelemetryBatch) -> float:
        values = [record.number(self.attribute) for record in batch]
        return mean([value for value in values if isinstance(value, float)])


class DistinctRatioMetric(CompositeMetric):
    """
    Отношение двух дочерних метрик / Quotient of two child metrics.

    Denominator 0 yields 0.
    """

    numerator = ""
    denominator = ""

    def combine(self, values: Dict[str, float]) -> float:
        return safe_ratio(values[self.numerator], values[self.denominator])
