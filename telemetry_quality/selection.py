# Goal selection: required metrics, telemetry needs and goal filtering

import re
from collections import OrderedDict
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set

from telemetry_quality.goals import CompositeGoal, Goal, GoalTree, normalize_goal_name
from telemetry_quality.metrics import Metric
from telemetry_quality.telemetry import TelemetryType

STOP_WORDS = frozenset(
    ("and", "or", "but", "because", "as", "in", "if", "for", "on", "with", "without")
)


def extract_keywords(text: str) -> List[str]:
    """Ключевые слова текста без стоп-слов / Lowercase keywords minus stop words"""
    if not text:
        return []
    words = re.split(r"[^\w-]+", str(text).lower())
    return [word for word in words if word and word not in STOP_WORDS]


def matches_keywords(keywords: Sequence[str], text: str) -> bool:
    if not text:
        return False
    text_keywords = set(extract_keywords(text))
    return any(keyword in text_keywords for keyword in keywords)


def _normalized_names(selected_names: Iterable[str]) -> Set[str]:
    return {normalize_goal_name(name) for name in selected_names if str(name).strip()}


def find_selected_goals(tree: GoalTree, selected_names: Iterable[str]) -> List[Goal]:
    """Все узлы с выбранными именами / Every node whose name was selected"""
    wanted = _normalized_names(selected_names)
    return [goal for goal in tree.walk() if normalize_goal_name(goal.name) in wanted]


def top_selected_goals(tree: GoalTree, selected_names: Iterable[str]) -> List[Goal]:
    """Selected goals without a selected ancestor."""
    selected = find_selected_goals(tree, selected_names)
    ids = {goal.node_id for goal in selected}
    return [
        goal
        for goal in selected
        if not any(ancestor.node_id in ids for ancestor in tree.ancestors(goal))
    ]


def selection_context(tree: GoalTree, selected_names: Iterable[str]) -> Set[int]:
    """
    Node ids of the selected goals and all their descendants.

    Selecting a characteristic selects every sub-goal under it.
    """
    context: Set[int] = set()
    for goal in find_selected_goals(tree, selected_names):
        context.add(goal.node_id)
        context.update(child.node_id for child in tree.descendants(goal))
    return context


def extract_required_metrics(
    tree: GoalTree, selected_names: Iterable[str], goals: Optional[Iterable[Goal]] = None
) -> List[Metric]:
    """
    Метрики выбранных целей без дублей по акрониму.
    Metrics of every selected goal at any depth, deduplicated by acronym in
    tree order (first occurrence wins).
    """
    wanted = _normalized_names(selected_names)
    collected: "OrderedDict[str, Metric]" = OrderedDict()

    def _collect(nodes: Iterable[Goal]) -> None:
        for goal in nodes:
            if isinstance(goal, CompositeGoal):
                _collect(tree.children(goal))
            if normalize_goal_name(goal.name) in wanted:
                for acronym, metric in goal.metrics.items():
                    collected.setdefault(acronym, metric)

    _collect(tree.roots if goals is None else goals)
    return list(collected.values())


def required_telemetry(metrics: Iterable[Metric]) -> List[TelemetryType]:
    """Объединение нужных типов телеметрии / Union of required telemetry types"""
    seen: List[TelemetryType] = []
    for metric in metrics:
        for item in metric.required_telemetry:
            if item not in seen:
                seen.append(item)
    return seen


class NameBasedFiltering:
    """
    Оставляет цели с выбранными именами.
    Keeps the goals whose names are selected; with ``prune`` the non-selected
    sub-goals of a kept composite are detached from the tree.
    """

    def __init__(self, prune: bool = False):
        self.prune = prune

    def filter(
        self, tree: GoalTree, goals: Iterable[Goal], selected_names: Iterable[str]
    ) -> List[Goal]:
        wanted = _normalized_names(selected_names)
        return self._filter(tree, list(goals), wanted)

    def _filter(self, tree: GoalTree, goals: List[Goal], wanted: Set[str]) -> List[Goal]:
        kept: List[Goal] = []
        for goal in goals:
            if normalize_goal_name(goal.name) not in wanted:
                continue
            if isinstance(goal, CompositeGoal):
                children = tree.children(goal)
                kept_children = self._filter(tree, children, wanted)
                if self.prune:
                    kept_ids = {child.node_id for child in kept_children}
                    for child in children:
                        if child.node_id not in kept_ids:
                            tree.remove_child(goal, child.name)
            kept.append(goal)
        return kept


class ThresholdType(Enum):
    UPPER_EXCLUDED = "upper_excluded"
    UPPER_INCLUDED = "upper_included"
    LOWER_INCLUDED = "lower_included"
    LOWER_EXCLUDED = "lower_excluded"


class Threshold:
    """Пороги релевантности / Relevance thresholds"""

    LOW = 0.25
    MEDIUM = 0.5
    HIGH = 0.75


# Keyword hit scores; the sum is divided by the number of checks
NAME_HIT_SCORE = 4.0
DESCRIPTION_HIT_SCORE = 2.0
RELEVANCE_CHECKS = 2


class WeightBasedFiltering:
    """
    Фильтрация по релевантности текстовой цели пользователя.
    Scores each goal against a free-text user goal and keeps those passing
    the threshold.

    A goal scores 4 when its name shares a keyword with the text and 2 when
    its description does, halved. A composite's relevance is the mean of its
    own score and its children's relevances. Scores are kept in ``scores``
    (node id -> relevance); goal weights are left untouched.
    """

    def __init__(
        self,
        threshold: float = Threshold.MEDIUM,
        threshold_type: ThresholdType = ThresholdType.LOWER_INCLUDED,
    ):
        self.threshold = float(threshold)
        self.threshold_type = threshold_type
        self.scores: Dict[int, float] = {}

    def passes(self, relevance: float) -> bool:
        if self.threshold_type is ThresholdType.LOWER_INCLUDED:
            return relevance >= self.threshold
        if self.threshold_type is ThresholdType.LOWER_EXCLUDED:
            return relevance > self.threshold
        if self.threshold_type is ThresholdType.UPPER_INCLUDED:
            return relevance <= self.threshold
        return relevance < self.threshold

    def relevance(self, tree: GoalTree, goal: Goal, keywords: Sequence[str]) -> float:
        score = 0.0
        if matches_keywords(keywords, goal.name):
            score += NAME_HIT_SCORE
        if matches_keywords(keywords, goal.description):
            score += DESCRIPTION_HIT_SCORE
        relevance = score / RELEVANCE_CHECKS
        if isinstance(goal, CompositeGoal):
            children = tree.children(goal)
            child_scores = [self.relevance(tree, child, keywords) for child in children]
            relevance = (relevance + sum(child_scores)) / (len(child_scores) + 1)
        self.scores[goal.node_id] = relevance
        return relevance

    def filter(self, tree: GoalTree, goals: Iterable[Goal], user_goal: str) -> List[Goal]:
        keywords = extract_keywords(user_goal)
        self.scores = {}
        kept = []
        for goal in goals:
            if self.passes(self.relevance(tree, goal, keywords)):
                kept.append(goal)
        return kept
