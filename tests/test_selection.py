import unittest

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.catalog import build_default_registry
from telemetry_quality.goals import CompositeGoal, GoalTree, LeafGoal
from telemetry_quality.mappers import map_goal_tree
from telemetry_quality.quality_models import build_iso25010_model
from telemetry_quality.selection import (
    NameBasedFiltering,
    Threshold,
    ThresholdType,
    WeightBasedFiltering,
    extract_keywords,
    extract_required_metrics,
    required_telemetry,
    selection_context,
    top_selected_goals,
)
from telemetry_quality.telemetry import TelemetryType

FULL_STACK = ApplicationMetadata(name="shop", type="frontend+backend")


def mapped_model():
    model = build_iso25010_model()
    map_goal_tree(model.tree, FULL_STACK, build_default_registry())
    return model


class KeywordTests(unittest.TestCase):
    def test_stop_words_and_punctuation(self):
        self.assertEqual(
            extract_keywords("Speed and security, for the non-repudiation!"),
            ["speed", "security", "the", "non-repudiation"],
        )
        self.assertEqual(extract_keywords(""), [])


class RequiredMetricsTests(unittest.TestCase):
    def test_leaf_selection(self):
        model = mapped_model()
        metrics = extract_required_metrics(model.tree, ["time behavior"])
        self.assertEqual([metric.acronym for metric in metrics], ["ART", "TPUT", "NHR", "P95RT", "RTVar"])

    def test_composite_selection_is_deduplicated(self):
        model = mapped_model()
        acronyms = [
            metric.acronym
            for metric in extract_required_metrics(
                model.tree, ["Performance Efficiency", "Energy Consumption", "Time Behavior"]
            )
        ]
        self.assertEqual(len(acronyms), len(set(acronyms)))
        self.assertIn("CpuUsage", acronyms)
        self.assertIn("Ecoindex", acronyms)

    def test_unknown_or_unmapped_selection_is_empty(self):
        model = mapped_model()
        self.assertEqual(extract_required_metrics(model.tree, ["Nope"]), [])
        self.assertEqual(extract_required_metrics(model.tree, ["Capacity"]), [])

    def test_required_telemetry_union(self):
        model = mapped_model()
        metrics = extract_required_metrics(model.tree, ["Security"])
        self.assertEqual(required_telemetry(metrics), [TelemetryType.TRACING])
        self.assertEqual(required_telemetry([]), [])


class SelectionContextTests(unittest.TestCase):
    def test_context_includes_descendants(self):
        model = mapped_model()
        tree = model.tree
        context = selection_context(tree, ["User Engagement"])
        engagement = tree.find("User Engagement")
        self.assertIn(engagement.node_id, context)
        self.assertIn(tree.find("Loyalty").node_id, context)
        self.assertNotIn(tree.find("Interaction Capability").node_id, context)

    def test_top_selected_goals_skip_nested_selection(self):
        tree = mapped_model().tree
        top = top_selected_goals(tree, ["Loyalty", "User Engagement", "Security"])
        self.assertEqual([goal.name for goal in top], ["User Engagement", "Security"])


class NameBasedFilteringTests(unittest.TestCase):
    def build(self):
        tree = GoalTree()
        security = CompositeGoal("Security")
        tree.add_root(security)
        tree.add_child(security, LeafGoal("Confidentiality"))
        tree.add_child(security, LeafGoal("Integrity"))
        tree.add_root(LeafGoal("Time Behavior"))
        return tree, security

    def test_keeps_selected_goals(self):
        tree, security = self.build()
        kept = NameBasedFiltering().filter(tree, tree.roots, ["security", "confidentiality"])
        self.assertEqual(kept, [security])
        self.assertEqual(len(tree.children(security)), 2)

    def test_prune_detaches_unselected_children(self):
        tree, security = self.build()
        NameBasedFiltering(prune=True).filter(tree, tree.roots, ["Security", "Confidentiality"])
        self.assertEqual([goal.name for goal in tree.children(security)], ["Confidentiality"])


class WeightBasedFilteringTests(unittest.TestCase):
    def build(self):
        tree = GoalTree()
        tree.add_root(LeafGoal("Response Time", "How fast requests complete"))
        tree.add_root(LeafGoal("Storage", "Disk usage and response size"))
        tree.add_root(LeafGoal("Branding", "Logo colors"))
        return tree

    def test_relevance_scores(self):
        tree = self.build()
        strategy = WeightBasedFiltering(threshold=Threshold.MEDIUM)
        kept = strategy.filter(tree, tree.roots, "fast response")
        self.assertEqual([goal.name for goal in kept], ["Response Time", "Storage"])
        scores = [strategy.scores[goal.node_id] for goal in tree.roots]
        self.assertEqual(scores, [3.0, 1.0, 0.0])

    def test_threshold_types(self):
        strategy = WeightBasedFiltering(threshold=1.0, threshold_type=ThresholdType.LOWER_EXCLUDED)
        self.assertFalse(strategy.passes(1.0))
        self.assertTrue(strategy.passes(1.5))
        strategy = WeightBasedFiltering(threshold=1.0, threshold_type=ThresholdType.UPPER_INCLUDED)
        self.assertTrue(strategy.passes(1.0))
        strategy = WeightBasedFiltering(threshold=1.0, threshold_type=ThresholdType.UPPER_EXCLUDED)
        self.assertFalse(strategy.passes(1.0))
        self.assertTrue(strategy.passes(0.0))

    def test_composite_relevance_averages_children(self):
        tree = GoalTree()
        root = CompositeGoal("Speed", "Overall speed")
        tree.add_root(root)
        tree.add_child(root, LeafGoal("Latency", "Request latency"))
        strategy = WeightBasedFiltering(threshold=Threshold.LOW)
        strategy.filter(tree, tree.roots, "latency")
        # own 0, child (4 + 2) / 2 = 3 -> (0 + 3) / 2
        self.assertEqual(strategy.scores[root.node_id], 1.5)
        self.assertEqual(root.weight, 1.0)


if __name__ == "__main__":
    unittest.main()
