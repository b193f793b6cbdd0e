# Orchestration: mapped model, history persistence and assessment entry point

import json
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.assessment import AssessmentEngine, AssessmentReport
from telemetry_quality.catalog import build_default_registry
from telemetry_quality.config import BenchmarkConstants
from telemetry_quality.mappers import MapperRegistry, map_goal_tree
from telemetry_quality.metrics import HistoryEntry, Metric, finite
from telemetry_quality.quality_models import QualityModel, build_iso25010_model
from telemetry_quality.selection import extract_required_metrics, required_telemetry
from telemetry_quality.telemetry import TelemetryType

logger = logging.getLogger(__name__)

HISTORY_FORMAT_VERSION = 1


class MetricHistoryStore:
    """
    Хранилище истории метрик между запусками.
    Per-acronym bounded metric history persisted as JSON between runs.
    """

    def __init__(self, limit: Optional[int] = None):
        self.limit = int(limit or BenchmarkConstants.HISTORY_LIMIT)
        self._entries: "OrderedDict[str, List[HistoryEntry]]" = OrderedDict()

    def acronyms(self) -> List[str]:
        return list(self._entries)

    def entries(self, acronym: str) -> List[HistoryEntry]:
        return list(self._entries.get(acronym, []))

    def values(self, acronym: str) -> List[float]:
        return [entry.value for entry in self._entries.get(acronym, [])]

    def set_entries(self, acronym: str, entries: Iterable[HistoryEntry]) -> None:
        self._entries[acronym] = list(entries)[-self.limit:]

    def update_from(self, metrics: Iterable[Metric]) -> None:
        for metric in metrics:
            self.set_entries(metric.acronym, metric.history.entries())

    def apply_to(self, metric: Metric) -> int:
        """Загружает историю в метрику / Seeds a metric's history, returns count"""
        entries = self._entries.get(metric.acronym, [])
        metric.history.clear()
        metric.history.extend(entries)
        return len(entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": HISTORY_FORMAT_VERSION,
            "limit": self.limit,
            "metrics": {
                acronym: [
                    {"timestamp": entry.timestamp, "value": entry.value} for entry in entries
                ]
                for acronym, entries in self._entries.items()
            },
        }

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Union[str, Path], limit: Optional[int] = None) -> "MetricHistoryStore":
        """Missing file gives an empty store; malformed entries are skipped."""
        store = cls(limit)
        path = Path(path)
        if not path.exists():
            return store
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise ValueError(f"invalid metric history JSON in '{path}': {e}") from e

        metrics = data.get("metrics", {}) if isinstance(data, dict) else {}
        if not isinstance(metrics, dict):
            logger.warning(f"Ignoring metric history in '{path}': 'metrics' must be an object")
            return store

        for acronym, raw_entries in metrics.items():
            if not isinstance(raw_entries, list):
                logger.warning(f"Ignoring history for '{acronym}': expected a list")
                continue
            entries = []
            for item in raw_entries:
                if not isinstance(item, dict) or "value" not in item:
                    continue
                entries.append(
                    HistoryEntry(timestamp=str(item.get("timestamp", "")), value=finite(item["value"]))
                )
            store.set_entries(str(acronym), entries)
        return store


class QualityAssessmentService:
    """
    Сервис оценки качества приложения.
    Holds one quality model mapped for one application and runs assessments
    of telemetry batches against it.
    """

    def __init__(
        self,
        app_metadata: Optional[ApplicationMetadata] = None,
        model: Optional[QualityModel] = None,
        registry: Optional[MapperRegistry] = None,
        history_store: Optional[MetricHistoryStore] = None,
        engine: Optional[AssessmentEngine] = None,
    ):
        self.app_metadata = app_metadata or ApplicationMetadata()
        self.model = model or build_iso25010_model()
        self.registry = registry or build_default_registry()
        self.history_store = history_store
        self.engine = engine or AssessmentEngine()
        map_goal_tree(self.model.tree, self.app_metadata, self.registry)

    def required_metrics(self, selected_names: Iterable[str]) -> List[Metric]:
        return extract_required_metrics(self.model.tree, selected_names)

    def required_telemetry(self, selected_names: Iterable[str]) -> List[TelemetryType]:
        return required_telemetry(self.required_metrics(selected_names))

    def unmapped_goals(self) -> List[str]:
        return self.registry.unmapped_goals(self.model.tree)

    def _seed_history(self, metrics: Iterable[Metric]) -> None:
        """
        Reseeded before every pass. Goals sharing an acronym hold separate
        instances, and the store carries the history between them.
        """
        if self.history_store is None:
            return
        for metric in metrics:
            self.history_store.apply_to(metric)

    def assess(
        self, batch: Any, selected_names: Iterable[str], timestamp: Optional[str] = None
    ) -> AssessmentReport:
        selected_names = list(selected_names)
        logger.debug(f"Starting quality assessment for '{self.app_metadata.name}'")
        metrics = self.required_metrics(selected_names)
        self._seed_history(metrics)
        report = self.engine.assess(
            self.model, batch, selected_names, self.app_metadata, timestamp
        )
        if self.history_store is not None:
            self.history_store.update_from(metrics)
        return report
