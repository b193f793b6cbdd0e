# Goal / characteristic hierarchy stored in a flat arena

from collections import OrderedDict, deque
from typing import Any, Deque, Dict, Iterator, List, Optional, Union

from telemetry_quality.config import BenchmarkConstants
from telemetry_quality.errors import GoalStructureError


def normalize_goal_name(name: str) -> str:
    """'  time   Behavior ' -> 'time behavior'"""
    return " ".join(str(name).split()).casefold()


class Goal:
    """
    Узел дерева целей качества.
    Quality goal node. Use LeafGoal or CompositeGoal, never Goal directly.
    """

    kind = ""

    def __init__(self, name: str, description: str = "", weight: float = 1.0):
        if not str(name).strip():
            raise GoalStructureError("goal name must not be empty")
        self.name = str(name)
        self.description = description
        self.weight = float(weight)
        self.node_id: Optional[int] = None
        self.parent_id: Optional[int] = None
        # acronym -> Metric, first occurrence wins
        self.metrics: "OrderedDict[str, Any]" = OrderedDict()
        self.assessments: Deque[Any] = deque(
            maxlen=int(BenchmarkConstants.GOAL_ASSESSMENT_LIMIT)
        )

    def add_metric(self, metric) -> bool:
        """Добавляет метрику без дублей / Adds a metric, deduplicated by acronym"""
        if metric.acronym in self.metrics:
            return False
        self.metrics[metric.acronym] = metric
        return True

    def has_metric(self, acronym: str) -> bool:
        return acronym in self.metrics

    def clear_metrics(self) -> None:
        self.metrics.clear()

    def add_assessment(self, assessment) -> None:
        self.assessments.append(assessment)

    @property
    def latest_assessment(self):
        return self.assessments[-1] if self.assessments else None

    def info(self) -> str:
        return (
            f"{self.name} [{self.kind}] weight={self.weight:.3f} "
            f"metrics={', '.join(self.metrics) or '-'}"
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, weight={self.weight})"


class LeafGoal(Goal):
    """Лист: метрики назначаются маппером / Leaf: metrics attached by a mapper"""

    kind = "leaf"


class CompositeGoal(Goal):
    """Составная цель с подцелями / Composite goal with ordered sub-goals"""

    kind = "composite"

    def __init__(self, name: str, description: str = "", weight: float = 1.0):
        super().__init__(name, description, weight)
        self.children: List[int] = []


GoalRef = Union[int, Goal]


class GoalTree:
    """
    Арена узлов: узлы хранятся в плоском списке, родитель задан индексом.
    Arena of goal nodes; parent links are plain node ids.
    """

    def __init__(self):
        self._nodes: List[Goal] = []
        self._roots: List[int] = []

    # -- arena ----------------------------------------------------------

    def _register(self, goal: Goal) -> int:
        if not isinstance(goal, (LeafGoal, CompositeGoal)):
            raise GoalStructureError(
                f"expected LeafGoal or CompositeGoal, got {type(goal).__name__}"
            )
        if goal.node_id is not None:
            if goal.node_id >= len(self._nodes) or self._nodes[goal.node_id] is not goal:
                raise GoalStructureError(f"goal '{goal.name}' belongs to another tree")
            if goal.parent_id is not None or goal.node_id in self._roots:
                raise GoalStructureError(f"goal '{goal.name}' is already attached")
            return goal.node_id
        goal.node_id = len(self._nodes)
        self._nodes.append(goal)
        return goal.node_id

    def _id(self, ref: GoalRef) -> int:
        node_id = ref.node_id if isinstance(ref, Goal) else ref
        if not isinstance(node_id, int) or not 0 <= node_id < len(self._nodes):
            raise GoalStructureError(f"unknown goal reference: {ref!r}")
        return node_id

    def node(self, ref: GoalRef) -> Goal:
        return self._nodes[self._id(ref)]

    def _composite(self, ref: GoalRef, action: str) -> CompositeGoal:
        goal = self.node(ref)
        if isinstance(goal, CompositeGoal):
            return goal
        raise GoalStructureError(f"cannot {action} leaf goal '{goal.name}'")

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    # -- roots ----------------------------------------------------------

    @property
    def roots(self) -> List[Goal]:
        return [self._nodes[node_id] for node_id in self._roots]

    def add_root(self, goal: Goal) -> int:
        node_id = self._register(goal)
        self._roots.append(node_id)
        return node_id

    def find_root(self, name: str) -> Optional[Goal]:
        wanted = normalize_goal_name(name)
        for node_id in self._roots:
            if normalize_goal_name(self._nodes[node_id].name) == wanted:
                return self._nodes[node_id]
        return None

    def remove_root(self, name: str) -> bool:
        goal = self.find_root(name)
        if goal is None:
            return False
        self._roots.remove(goal.node_id)
        return True

    def clear_roots(self) -> None:
        self._roots = []

    # -- direct children --------------------------------------------------

    def add_child(self, parent: GoalRef, goal: Goal) -> int:
        """Добавляет подцель / Appends a sub-goal and sets its parent id"""
        composite = self._composite(parent, "add a sub-goal to")
        if goal.node_id is not None and (
            goal.node_id == composite.node_id
            or any(item.node_id == goal.node_id for item in self.ancestors(composite))
        ):
            raise GoalStructureError(
                f"goal '{goal.name}' cannot become a sub-goal of its own descendant "
                f"'{composite.name}'"
            )
        node_id = self._register(goal)
        composite.children.append(node_id)
        goal.parent_id = composite.node_id
        return node_id

    def children(self, ref: GoalRef) -> List[Goal]:
        goal = self.node(ref)
        if isinstance(goal, CompositeGoal):
            return [self._nodes[child_id] for child_id in goal.children]
        return []

    def find_child(self, parent: GoalRef, name: str) -> Optional[Goal]:
        """Поиск только среди прямых потомков / Direct children only"""
        wanted = normalize_goal_name(name)
        for child in self.children(parent):
            if normalize_goal_name(child.name) == wanted:
                return child
        return None

    def has_child(self, parent: GoalRef, name: str) -> bool:
        return self.find_child(parent, name) is not None

    def remove_child(self, parent: GoalRef, name: str) -> bool:
        composite = self._composite(parent, "remove a sub-goal from")
        child = self.find_child(composite, name)
        if child is None:
            return False
        composite.children.remove(child.node_id)
        child.parent_id = None
        return True

    def clear_children(self, parent: GoalRef) -> None:
        composite = self._composite(parent, "clear sub-goals of")
        for child_id in composite.children:
            self._nodes[child_id].parent_id = None
        composite.children = []

    def parent(self, ref: GoalRef) -> Optional[Goal]:
        goal = self.node(ref)
        return None if goal.parent_id is None else self._nodes[goal.parent_id]

    # -- traversal --------------------------------------------------------

    def walk(self, start: Optional[GoalRef] = None) -> Iterator[Goal]:
        """Обход в глубину (pre-order) / Depth-first pre-order walk"""
        stack = [self._id(start)] if start is not None else list(reversed(self._roots))
        while stack:
            goal = self._nodes[stack.pop()]
            yield goal
            if isinstance(goal, CompositeGoal):
                stack.extend(reversed(goal.children))

    def find(self, name: str, start: Optional[GoalRef] = None) -> Optional[Goal]:
        """Рекурсивный поиск по имени / Recursive lookup by name"""
        wanted = normalize_goal_name(name)
        for goal in self.walk(start):
            if normalize_goal_name(goal.name) == wanted:
                return goal
        return None

    def descendants(self, ref: GoalRef) -> List[Goal]:
        return list(self.walk(ref))[1:]

    def ancestors(self, ref: GoalRef) -> List[Goal]:
        result = []
        parent = self.parent(ref)
        while parent is not None:
            result.append(parent)
            parent = self.parent(parent)
        return result

    def leaves(self, start: Optional[GoalRef] = None) -> List[Goal]:
        return [goal for goal in self.walk(start) if isinstance(goal, LeafGoal)]

    def to_dict(self, ref: GoalRef) -> Dict[str, Any]:
        goal = self.node(ref)
        payload: Dict[str, Any] = {
            "name": goal.name,
            "description": goal.description,
            "weight": goal.weight,
            "kind": goal.kind,
            "metrics": [
                {"acronym": acronym, "name": metric.name, "unit": metric.unit}
                for acronym, metric in goal.metrics.items()
            ],
        }
        if isinstance(goal, CompositeGoal):
            payload["subGoals"] = [self.to_dict(child_id) for child_id in goal.children]
        return payload

    def render(self, start: Optional[GoalRef] = None, indent: str = "  ") -> str:
        lines = []
        starts = [self.node(start)] if start is not None else self.roots

        def _render(goal: Goal, depth: int) -> None:
            lines.append(f"{indent * depth}- {goal.info()}")
            for child in self.children(goal):
                _render(child, depth + 1)

        for goal in starts:
            _render(goal, 0)
        return "\n".join(lines)
