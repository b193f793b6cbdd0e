# Assessment engine: interprets computed metrics and rolls scores up the tree

import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.errors import GoalStructureError, NoMetricsForSelectionError
from telemetry_quality.goals import CompositeGoal, Goal, GoalTree, LeafGoal
from telemetry_quality.interpreters import build_interpreter
from telemetry_quality.metrics import Metric, utc_now_iso
from telemetry_quality.quality_models import QualityModel
from telemetry_quality.selection import (
    extract_required_metrics,
    required_telemetry,
    selection_context,
    top_selected_goals,
)
from telemetry_quality.telemetry import TelemetryBatch

logger = logging.getLogger(__name__)


@dataclass
class MetricAssessment:
    metric: str
    value: float
    weight: float
    timestamp: str
    raw_value: float = 0.0
    benchmark: float = 0.0
    name: str = ""


@dataclass
class Assessment:
    """Оценка одной цели / Assessment of one goal at one point in time"""

    goal_name: str
    metric_assessments: List[MetricAssessment] = field(default_factory=list)
    global_score: Optional[float] = None
    timestamp: str = ""

    def add_metric_assessment(self, item: MetricAssessment) -> None:
        self.metric_assessments.append(item)

    def compute_final_score(
        self, strategy: "AssessmentStrategy", timestamp: Optional[str] = None
    ) -> Optional[float]:
        self.global_score = (
            strategy.aggregate(self.metric_assessments) if self.metric_assessments else None
        )
        self.timestamp = timestamp or utc_now_iso()
        return self.global_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "goal": self.goal_name,
            "global_score": self.global_score,
            "timestamp": self.timestamp,
            "metrics": [asdict(item) for item in self.metric_assessments],
        }


class AssessmentStrategy:
    def aggregate(self, items: Sequence[MetricAssessment]) -> float:
        raise NotImplementedError


class WeightedAverageStrategy(AssessmentStrategy):
    """sum(v * w) / sum(w); 0 when the weights sum to 0."""

    def aggregate(self, items: Sequence[MetricAssessment]) -> float:
        return weighted_average((item.value, item.weight) for item in items)


def weighted_average(pairs: Iterable[Any]) -> float:
    total = 0.0
    total_weight = 0.0
    for value, weight in pairs:
        total += value * weight
        total_weight += weight
    if total_weight == 0:
        return 0.0
    return total / total_weight


@dataclass
class GoalScore:
    name: str
    kind: str
    weight: float
    score: Optional[float]
    depth: int = 0
    parent: Optional[str] = None
    metric_count: int = 0

    @property
    def is_known(self) -> bool:
        return self.score is not None


@dataclass
class AssessmentReport:
    """
    Итог оценки качества.
    Result of one assessment pass: per-goal scores, overall score and the
    flattened list of computed metrics.
    """

    model_name: str
    application: Dict[str, Any]
    selected_goals: List[str]
    goal_scores: List[GoalScore]
    overall_score: float
    computed_metrics: List[Dict[str, Any]]
    assessments: "OrderedDict[str, Assessment]"
    coverage_percent: float
    required_telemetry: List[str]
    timestamp: str

    def score_of(self, goal_name: str) -> Optional[float]:
        for item in self.goal_scores:
            if item.name.casefold() == goal_name.casefold():
                return item.score
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model_name,
            "application": dict(self.application),
            "selected_goals": list(self.selected_goals),
            "timestamp": self.timestamp,
            "overall_score": self.overall_score,
            "coverage_percent": self.coverage_percent,
            "required_telemetry": list(self.required_telemetry),
            "goal_scores": [asdict(item) for item in self.goal_scores],
            "metrics": [dict(item) for item in self.computed_metrics],
            "assessments": [item.to_dict() for item in self.assessments.values()],
        }


class AssessmentEngine:
    """
    Движок оценки: вычисление, интерпретация и агрегация.
    Computes the metrics of the selected goals against one batch, interprets
    them and aggregates scores bottom-up.

    Leaf score: weighted average of interpreted metrics. Composite score:
    weighted average of the known child scores using child weights. Goals
    with no metric stay unknown (None) and do not drag the average down.
    """

    def __init__(
        self,
        strategy: Optional[AssessmentStrategy] = None,
        refresh_from_history: bool = True,
        record_history: bool = True,
    ):
        self.strategy = strategy or WeightedAverageStrategy()
        self.refresh_from_history = refresh_from_history
        self.record_history = record_history

    def compute_metrics(
        self, metrics: Iterable[Metric], batch: Any
    ) -> "OrderedDict[str, Metric]":
        batch = TelemetryBatch.coerce(batch)
        computed: "OrderedDict[str, Metric]" = OrderedDict()
        for metric in metrics:
            if metric.acronym in computed:
                continue
            metric.compute_value(batch)
            computed[metric.acronym] = metric
        return computed

    def assess(
        self,
        model: QualityModel,
        batch: Any,
        selected_names: Iterable[str],
        app_metadata: Optional[ApplicationMetadata] = None,
        timestamp: Optional[str] = None,
    ) -> AssessmentReport:
        selected_names = [str(name) for name in selected_names]
        tree = model.tree
        metrics = extract_required_metrics(tree, selected_names)
        if not metrics:
            raise NoMetricsForSelectionError(selected_names)

        timestamp = timestamp or utc_now_iso()
        computed = self.compute_metrics(metrics, batch)
        context = selection_context(tree, selected_names)

        scores: List[GoalScore] = []
        assessments: "OrderedDict[str, Assessment]" = OrderedDict()
        top_goals = top_selected_goals(tree, selected_names)
        for goal in top_goals:
            self._score_goal(tree, goal, computed, context, timestamp, scores, assessments, 0)

        # History is appended after interpretation so the current value never
        # raises its own benchmark.
        if self.record_history:
            for metric in computed.values():
                metric.record_history(timestamp)

        top_scores = [
            (item.score, item.weight)
            for item in scores
            if item.depth == 0 and item.score is not None
        ]
        overall = weighted_average(top_scores) if top_scores else 0.0

        leaves = [leaf for goal in top_goals for leaf in tree.leaves(goal)]
        known_leaves = sum(1 for leaf in leaves if leaf.metrics)
        coverage = round(known_leaves / len(leaves) * 100.0, 1) if leaves else 0.0

        app_metadata = app_metadata or ApplicationMetadata()
        logger.debug(
            f"Assessed {len(scores)} goal(s) with {len(computed)} metric(s), "
            f"overall={overall:.4f}"
        )
        return AssessmentReport(
            model_name=model.name,
            application=app_metadata.to_dict(),
            selected_goals=[goal.name for goal in top_goals],
            goal_scores=scores,
            overall_score=overall,
            computed_metrics=[
                {
                    "name": metric.name,
                    "acronym": metric.acronym,
                    "value": metric.value,
                    "unit": metric.unit,
                }
                for metric in computed.values()
            ],
            assessments=assessments,
            coverage_percent=coverage,
            required_telemetry=[item.value for item in required_telemetry(metrics)],
            timestamp=timestamp,
        )

    def assess_leaf(
        self,
        goal: Goal,
        computed: Dict[str, Metric],
        context: Iterable[int],
        timestamp: str,
    ) -> Assessment:
        assessment = Assessment(goal_name=goal.name)
        for acronym, attached in goal.metrics.items():
            metric = computed.get(acronym, attached)
            interpreter = build_interpreter(
                metric,
                goal,
                selected_goal_ids=context,
                refresh_from_history=self.refresh_from_history,
            )
            if interpreter is None:
                continue
            assessment.add_metric_assessment(
                MetricAssessment(
                    metric=acronym,
                    value=interpreter.interpret(),
                    weight=interpreter.assign_weight(),
                    timestamp=timestamp,
                    raw_value=metric.value,
                    benchmark=interpreter.max_value,
                    name=metric.name,
                )
            )
        assessment.compute_final_score(self.strategy, timestamp)
        return assessment

    def _score_goal(
        self,
        tree: GoalTree,
        goal: Goal,
        computed: Dict[str, Metric],
        context: Iterable[int],
        timestamp: str,
        scores: List[GoalScore],
        assessments: "OrderedDict[str, Assessment]",
        depth: int,
    ) -> Optional[float]:
        entry = GoalScore(
            name=goal.name,
            kind=goal.kind,
            weight=goal.weight,
            score=None,
            depth=depth,
            parent=None if depth == 0 else tree.parent(goal).name,
            metric_count=len(goal.metrics),
        )
        scores.append(entry)

        if isinstance(goal, CompositeGoal):
            child_scores = []
            for child in tree.children(goal):
                score = self._score_goal(
                    tree, child, computed, context, timestamp, scores, assessments, depth + 1
                )
                if score is not None:
                    child_scores.append((score, child.weight))
            assessment = Assessment(goal_name=goal.name, timestamp=timestamp)
            if child_scores:
                assessment.global_score = weighted_average(child_scores)
        elif isinstance(goal, LeafGoal):
            assessment = self.assess_leaf(goal, computed, context, timestamp)
        else:
            raise GoalStructureError(f"unsupported goal node: {goal!r}")

        entry.score = assessment.global_score
        goal.add_assessment(assessment)
        assessments[goal.name] = assessment
        return entry.score
