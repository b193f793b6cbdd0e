# Metric interpretation: benchmark normalization and weight assignment

import logging
from typing import Iterable, Optional

from telemetry_quality.config import BenchmarkConstants
from telemetry_quality.goals import Goal
from telemetry_quality.metrics import Metric, finite

logger = logging.getLogger(__name__)


class MetricInterpreter:
    """
    Нормализация значения метрики и назначение веса.
    Normalizes a metric value against its benchmark maximum and assigns the
    metric a weight in the context of its owning goal.

    ``interpret()`` is not clamped: a value above the benchmark yields a
    quotient above 1.
    """

    def __init__(
        self,
        metric: Metric,
        goal: Goal,
        initial_max_value: Optional[float] = None,
        base_weight: Optional[float] = None,
        selected_goal_ids: Iterable[int] = (),
        refresh_from_history: bool = True,
    ):
        self.metric = metric
        self.goal = goal
        if initial_max_value is None:
            initial_max_value = BenchmarkConstants.benchmark_for(metric.acronym)
        self.max_value = float(initial_max_value or 0.0)
        self.base_weight = (
            float(base_weight)
            if base_weight is not None
            else BenchmarkConstants.base_weight_for(metric.acronym)
        )
        self.selected_goal_ids = frozenset(selected_goal_ids)
        self.refresh_from_history = refresh_from_history

    def refresh_max_value(self) -> float:
        """max(history, текущий эталон) / max(history, current benchmark)"""
        historical = self.metric.history.max_value()
        if historical is not None and historical > self.max_value:
            self.max_value = historical
        return self.max_value

    def interpret(self) -> float:
        if self.refresh_from_history:
            self.refresh_max_value()
        if self.max_value <= 0:
            return 0.0
        return finite(self.metric.value / self.max_value)

    @property
    def goal_selected(self) -> bool:
        return self.goal.node_id is not None and self.goal.node_id in self.selected_goal_ids

    def assign_weight(self) -> float:
        """
        Selected goal: goal.weight split evenly over its attached metrics.
        Otherwise the metric's default base weight.
        """
        if self.goal_selected and self.goal.metrics:
            return self.goal.weight / len(self.goal.metrics)
        return self.base_weight

    def __repr__(self) -> str:
        return (
            f"MetricInterpreter({self.metric.acronym!r}, goal={self.goal.name!r}, "
            f"max_value={self.max_value})"
        )


def build_interpreter(
    metric: Metric,
    goal: Goal,
    selected_goal_ids: Iterable[int] = (),
    refresh_from_history: bool = True,
) -> Optional[MetricInterpreter]:
    """Интерпретатор по акрониму или None / Interpreter for a known acronym"""
    benchmark = BenchmarkConstants.benchmark_for(metric.acronym)
    if benchmark is None:
        logger.warning(f"No interpreter available for metric: {metric.name} ({metric.acronym})")
        return None
    return MetricInterpreter(
        metric,
        goal,
        initial_max_value=benchmark,
        selected_goal_ids=selected_goal_ids,
        refresh_from_history=refresh_from_history,
    )
