# Goal mapper protocol, registration table and tree mapping walk

import logging
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.config import BenchmarkConstants
from telemetry_quality.errors import GoalStructureError, MapperMismatchError
from telemetry_quality.goals import (
    CompositeGoal,
    Goal,
    GoalTree,
    LeafGoal,
    normalize_goal_name,
)
from telemetry_quality.metrics import Metric

logger = logging.getLogger(__name__)


class GoalMapper:
    """
    Привязывает одну листовую цель к набору метрик.
    Binds exactly one leaf goal name to a fixed set of metrics.

    ``application_type`` restricts the mapper to applications whose declared
    type contains that marker ("frontend" / "backend"). When the marker is
    missing the mapper contributes no metric at all.
    """

    goal_name = ""
    application_type: Optional[str] = None

    def __init__(self, app_metadata: Optional[ApplicationMetadata] = None):
        self.app_metadata = app_metadata or ApplicationMetadata()
        self.metrics: List[Metric] = self.build_metrics() if self.applies() else []

    @property
    def mapper_name(self) -> str:
        return f"{self.goal_name} Mapper"

    @property
    def weight(self) -> float:
        return BenchmarkConstants.goal_weight_for(self.goal_name)

    def applies(self) -> bool:
        if self.application_type is None:
            return True
        return self.app_metadata.has_type(self.application_type)

    def build_metrics(self) -> List[Metric]:
        raise NotImplementedError

    def matches(self, goal: Goal) -> bool:
        return normalize_goal_name(goal.name) == normalize_goal_name(self.goal_name)

    def map(self, goal: Goal) -> None:
        if not self.matches(goal):
            raise MapperMismatchError(self.mapper_name, goal.name)
        goal.weight = self.weight
        for metric in self.metrics:
            goal.add_metric(metric)


MapperFactory = Callable[[ApplicationMetadata], GoalMapper]


class MapperRegistry:
    """
    Таблица регистрации: имя цели -> фабрика маппера.
    Registration table of normalized goal name -> mapper factory.
    """

    def __init__(self):
        self._factories: "OrderedDict[str, MapperFactory]" = OrderedDict()
        self._names: Dict[str, str] = {}

    def register(self, goal_name: str, factory: MapperFactory) -> None:
        key = normalize_goal_name(goal_name)
        if key in self._factories:
            logger.debug(f"Replacing mapper registration for goal '{goal_name}'")
        self._factories[key] = factory
        self._names[key] = goal_name

    def register_mapper(self, mapper_cls) -> None:
        self.register(mapper_cls.goal_name, mapper_cls)

    def unregister(self, goal_name: str) -> bool:
        key = normalize_goal_name(goal_name)
        self._names.pop(key, None)
        return self._factories.pop(key, None) is not None

    def factory_for(self, goal_name: str) -> Optional[MapperFactory]:
        return self._factories.get(normalize_goal_name(goal_name))

    def create(
        self, goal_name: str, app_metadata: ApplicationMetadata
    ) -> Optional[GoalMapper]:
        factory = self.factory_for(goal_name)
        return factory(app_metadata) if factory is not None else None

    def registered_goals(self) -> List[str]:
        return list(self._names.values())

    def unmapped_goals(self, tree: GoalTree) -> List[str]:
        """Листья без маппера / Leaf goals with no registered mapper"""
        return [goal.name for goal in tree.leaves() if goal.name not in self]

    def __contains__(self, goal_name: str) -> bool:
        return normalize_goal_name(goal_name) in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def map_goal(
    tree: GoalTree,
    goal: Goal,
    app_metadata: ApplicationMetadata,
    registry: MapperRegistry,
) -> None:
    """
    Заполняет метрики цели: сначала подцели, затем объединение вверх.
    Children are mapped first, then their metrics are unioned into the
    composite by acronym (first occurrence wins).
    A composite's metrics are rebuilt on every visit, so sub-goals removed
    since the last mapping no longer contribute.
    """
    if isinstance(goal, CompositeGoal):
        children = tree.children(goal)
        for child in children:
            map_goal(tree, child, app_metadata, registry)
        goal.clear_metrics()
        for child in children:
            for metric in child.metrics.values():
                goal.add_metric(metric)
    elif isinstance(goal, LeafGoal):
        mapper = registry.create(goal.name, app_metadata)
        if mapper is None:
            logger.debug(f"No mapper registered for goal '{goal.name}'")
            return
        mapper.map(goal)
        logger.debug(
            f"{mapper.mapper_name}: mapped {len(goal.metrics)} metric(s) "
            f"for app type '{app_metadata.type}'"
        )
    else:
        raise GoalStructureError(f"unsupported goal node: {goal!r}")


def map_goal_tree(
    tree: GoalTree,
    app_metadata: ApplicationMetadata,
    registry: MapperRegistry,
    roots: Optional[Iterable[Goal]] = None,
) -> GoalTree:
    for root in list(roots) if roots is not None else tree.roots:
        map_goal(tree, root, app_metadata, registry)
    return tree
