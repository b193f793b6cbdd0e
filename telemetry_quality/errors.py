"""Исключения оценки качества / Quality assessment exceptions."""

from typing import Iterable


class QualityAssessmentError(Exception):
    """Базовое исключение пакета / Base package exception"""


class MapperMismatchError(QualityAssessmentError, ValueError):
    """Mapper was applied to a goal it does not handle."""

    def __init__(self, mapper_name: str, goal_name: str):
        self.mapper_name = mapper_name
        self.goal_name = goal_name
        super().__init__(f"{mapper_name}: Incorrect mapper for goal {goal_name}")


class InvalidMetricStateError(QualityAssessmentError, ValueError):
    """Explicit assignment that would later cause a division by zero."""


class GoalStructureError(QualityAssessmentError, TypeError):
    """Invalid operation on the goal tree (e.g. adding a child to a leaf)."""


class TelemetryFormatError(QualityAssessmentError, ValueError):
    """Telemetry or metadata file cannot be interpreted."""


class NoMetricsForSelectionError(QualityAssessmentError):
    """Selected goals resolved to an empty metric set."""

    def __init__(self, selected_goals: Iterable[str] = ()):
        self.selected_goals = [str(name) for name in selected_goals]
        message = "No metrics found for the selected goals."
        if self.selected_goals:
            message += f" Selected: {', '.join(self.selected_goals)}."
        message += (
            " Select goals with registered mappers or check the application type"
            " (frontend/backend)."
        )
        super().__init__(message)
