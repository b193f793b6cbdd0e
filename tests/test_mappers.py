import unittest

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.catalog import DEFAULT_MAPPERS, all_catalog_metrics, build_default_registry
from telemetry_quality.config import BenchmarkConstants
from telemetry_quality.engagement_metrics import ActivityMapper, PopularityMapper
from telemetry_quality.errors import MapperMismatchError
from telemetry_quality.goals import CompositeGoal, GoalTree, LeafGoal
from telemetry_quality.mappers import GoalMapper, MapperRegistry, map_goal_tree
from telemetry_quality.performance_metrics import ResourceUtilizationMapper, TimeBehaviorMapper
from telemetry_quality.quality_models import build_iso25010_model
from telemetry_quality.selection import extract_required_metrics
from telemetry_quality.security_metrics import NonRepudiationMapper

FRONTEND = ApplicationMetadata(name="shop", type="frontend")
BACKEND = ApplicationMetadata(name="api", type="Backend service")


class GoalMapperTests(unittest.TestCase):
    def test_mismatched_goal_raises_with_both_names(self):
        mapper = TimeBehaviorMapper(BACKEND)
        with self.assertRaises(MapperMismatchError) as ctx:
            mapper.map(LeafGoal("Confidentiality"))
        self.assertIn("Time Behavior Mapper", str(ctx.exception))
        self.assertIn("Confidentiality", str(ctx.exception))

    def test_goal_name_match_is_normalized(self):
        goal = LeafGoal("  time BEHAVIOR ")
        TimeBehaviorMapper(BACKEND).map(goal)
        self.assertEqual(list(goal.metrics), ["ART", "TPUT", "NHR", "P95RT", "RTVar"])
        self.assertAlmostEqual(goal.weight, BenchmarkConstants.GOAL_WEIGHTS["Time Behavior"])

    def test_mapping_twice_does_not_duplicate(self):
        goal = LeafGoal("Popularity")
        mapper = PopularityMapper(FRONTEND)
        mapper.map(goal)
        count = len(goal.metrics)
        mapper.map(goal)
        PopularityMapper(FRONTEND).map(goal)
        self.assertEqual(len(goal.metrics), count)

    def test_application_type_conditioning_is_all_or_nothing(self):
        self.assertEqual(len(ActivityMapper(FRONTEND).metrics), 3)
        self.assertEqual(ActivityMapper(BACKEND).metrics, [])
        self.assertEqual(len(ResourceUtilizationMapper(BACKEND).metrics), 6)
        self.assertEqual(ResourceUtilizationMapper(FRONTEND).metrics, [])

        goal = LeafGoal("Activity")
        ActivityMapper(BACKEND).map(goal)
        self.assertEqual(len(goal.metrics), 0)

    def test_shared_acronym_metrics_are_distinct_per_mapper(self):
        names = [metric.acronym for metric in NonRepudiationMapper(BACKEND).metrics]
        self.assertIn("ProcLoadavg", names)
        self.assertIn("ProcNetwork", names)
        self.assertEqual(len(names), len(set(names)))


class MapperRegistryTests(unittest.TestCase):
    def test_default_registry_covers_mapped_goals(self):
        registry = build_default_registry()
        self.assertEqual(len(registry), len(DEFAULT_MAPPERS))
        self.assertIn("time behavior", registry)
        self.assertNotIn("Capacity", registry)
        self.assertIsInstance(registry.create("Loyalty", FRONTEND), GoalMapper)
        self.assertIsNone(registry.create("Capacity", FRONTEND))

    def test_unmapped_goals_are_enumerable(self):
        model = build_iso25010_model()
        unmapped = build_default_registry().unmapped_goals(model.tree)
        self.assertIn("Capacity", unmapped)
        self.assertNotIn("Time Behavior", unmapped)

    def test_register_and_unregister(self):
        registry = MapperRegistry()
        registry.register_mapper(TimeBehaviorMapper)
        self.assertEqual(registry.registered_goals(), ["Time Behavior"])
        self.assertTrue(registry.unregister("TIME behavior"))
        self.assertFalse(registry.unregister("Time Behavior"))
        self.assertEqual(len(registry), 0)


class MapGoalTreeTests(unittest.TestCase):
    def test_composite_metrics_are_union_of_children(self):
        tree = GoalTree()
        root = CompositeGoal("Root")
        tree.add_root(root)
        tree.add_child(root, LeafGoal("Resource Utilization"))
        tree.add_child(root, LeafGoal("Physical Footprint"))
        tree.add_child(root, LeafGoal("Unmapped Leaf"))

        map_goal_tree(tree, BACKEND, build_default_registry())

        expected = []
        for child in tree.children(root):
            for acronym in child.metrics:
                if acronym not in expected:
                    expected.append(acronym)
        self.assertEqual(list(root.metrics), expected)
        self.assertIn("PhysicalFootprint", root.metrics)
        # first occurrence wins on shared acronyms
        resource = tree.find("Resource Utilization")
        self.assertIs(root.metrics["CpuUsage"], resource.metrics["CpuUsage"])
        self.assertEqual(len(tree.find("Unmapped Leaf").metrics), 0)

    def test_remapping_drops_metrics_of_removed_sub_goals(self):
        model = build_iso25010_model()
        registry = build_default_registry()
        map_goal_tree(model.tree, BACKEND, registry)
        efficiency = model.get_goal_by_name("Performance Efficiency")
        self.assertIn("CpuUsage", efficiency.metrics)

        self.assertTrue(model.remove_sub_goal("Performance Efficiency", "Resource Utilization"))
        map_goal_tree(model.tree, BACKEND, registry)

        expected = []
        for child in model.tree.children(efficiency):
            for acronym in child.metrics:
                if acronym not in expected:
                    expected.append(acronym)
        self.assertEqual(list(efficiency.metrics), expected)
        self.assertEqual(expected, ["ART", "TPUT", "NHR", "P95RT", "RTVar"])
        required = extract_required_metrics(model.tree, ["Performance Efficiency"])
        self.assertEqual([metric.acronym for metric in required], expected)

    def test_cleared_composite_has_no_metrics_after_remapping(self):
        model = build_iso25010_model()
        registry = build_default_registry()
        map_goal_tree(model.tree, BACKEND, registry)
        model.clear_sub_goals("Security")
        map_goal_tree(model.tree, BACKEND, registry)
        self.assertEqual(len(model.get_goal_by_name("Security").metrics), 0)

    def test_iso_model_mapping_for_frontend(self):
        model = build_iso25010_model()
        map_goal_tree(model.tree, FRONTEND, build_default_registry())
        engagement = model.get_goal_by_name("User Engagement")
        self.assertIn("UIF", engagement.metrics)
        self.assertIn("NoU", engagement.metrics)
        self.assertEqual(len(model.get_goal_by_name("Security").metrics), 0)
        self.assertIn("Ecoindex", model.get_goal_by_name("Energy Consumption").metrics)

    def test_catalog_is_deduplicated(self):
        acronyms = [metric.acronym for metric in all_catalog_metrics()]
        self.assertEqual(len(acronyms), len(set(acronyms)))
        for acronym in acronyms:
            self.assertIn(acronym, BenchmarkConstants.METRIC_BENCHMARKS)


if __name__ == "__main__":
    unittest.main()
