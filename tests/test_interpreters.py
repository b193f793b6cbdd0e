import unittest

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.goals import LeafGoal
from telemetry_quality.interpreters import MetricInterpreter, build_interpreter
from telemetry_quality.metrics import LeafMetric
from telemetry_quality.performance_metrics import ARTMetric, TimeBehaviorMapper
from telemetry_quality.telemetry import TelemetryBatch


class _ConstantMetric(LeafMetric):
    def __init__(self, value, acronym="ART"):
        super().__init__("Constant", "Fixed value", "unit", acronym)
        self._constant = value

    def _compute(self, batch):
        return self._constant


def mapped_time_behavior_goal():
    goal = LeafGoal("Time Behavior")
    goal.node_id = 0
    TimeBehaviorMapper(ApplicationMetadata(type="backend")).map(goal)
    return goal


class MetricInterpreterTests(unittest.TestCase):
    def test_interpret_divides_by_benchmark(self):
        metric = _ConstantMetric(250.0)
        metric.compute_value(TelemetryBatch())
        interpreter = MetricInterpreter(metric, LeafGoal("Time Behavior"), initial_max_value=1000.0)
        self.assertAlmostEqual(interpreter.interpret(), 0.25)

    def test_interpret_is_not_clamped(self):
        metric = _ConstantMetric(3000.0)
        metric.compute_value(TelemetryBatch())
        interpreter = MetricInterpreter(metric, LeafGoal("Time Behavior"), initial_max_value=1000.0)
        self.assertAlmostEqual(interpreter.interpret(), 3.0)

    def test_non_positive_benchmark_yields_zero(self):
        metric = _ConstantMetric(5.0)
        metric.compute_value(TelemetryBatch())
        interpreter = MetricInterpreter(metric, LeafGoal("Time Behavior"), initial_max_value=0.0)
        self.assertEqual(interpreter.interpret(), 0.0)

    def test_history_raises_benchmark(self):
        metric = _ConstantMetric(500.0)
        metric.compute_value(TelemetryBatch())
        metric.history.record(2000.0, "2026-01-01T00:00:00+00:00")
        metric.history.record(800.0, "2026-01-02T00:00:00+00:00")

        interpreter = MetricInterpreter(metric, LeafGoal("Time Behavior"), initial_max_value=1000.0)
        self.assertAlmostEqual(interpreter.interpret(), 0.25)
        self.assertEqual(interpreter.max_value, 2000.0)

        frozen = MetricInterpreter(
            metric, LeafGoal("Time Behavior"), initial_max_value=1000.0, refresh_from_history=False
        )
        self.assertAlmostEqual(frozen.interpret(), 0.5)

    def test_history_below_benchmark_keeps_benchmark(self):
        metric = _ConstantMetric(500.0)
        metric.history.record(10.0)
        interpreter = MetricInterpreter(metric, LeafGoal("Time Behavior"), initial_max_value=1000.0)
        self.assertEqual(interpreter.refresh_max_value(), 1000.0)

    def test_weight_of_selected_goal_is_split_evenly(self):
        goal = mapped_time_behavior_goal()
        weights = [
            MetricInterpreter(metric, goal, selected_goal_ids={0}).assign_weight()
            for metric in goal.metrics.values()
        ]
        self.assertAlmostEqual(sum(weights), goal.weight)
        self.assertAlmostEqual(weights[0], goal.weight / 5)

    def test_weight_outside_selection_is_base_weight(self):
        goal = mapped_time_behavior_goal()
        interpreter = MetricInterpreter(goal.metrics["ART"], goal, selected_goal_ids={42})
        self.assertFalse(interpreter.goal_selected)
        self.assertEqual(interpreter.assign_weight(), 0.3)
        custom = MetricInterpreter(goal.metrics["ART"], goal, base_weight=0.9)
        self.assertEqual(custom.assign_weight(), 0.9)

    def test_build_interpreter_for_unknown_acronym(self):
        metric = _ConstantMetric(1.0, acronym="Unknown")
        with self.assertLogs("telemetry_quality.interpreters", level="WARNING"):
            self.assertIsNone(build_interpreter(metric, LeafGoal("Time Behavior")))
        interpreter = build_interpreter(ARTMetric(), LeafGoal("Time Behavior"))
        self.assertEqual(interpreter.max_value, 1000.0)


if __name__ == "__main__":
    unittest.main()
