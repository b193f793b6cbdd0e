import unittest

from telemetry_quality.errors import GoalStructureError
from telemetry_quality.goals import CompositeGoal, LeafGoal
from telemetry_quality.quality_models import (
    ISO_25010_CHARACTERISTICS,
    QualityModel,
    build_iso25010_model,
    get_quality_model,
    select_model_by_purpose,
)


class ISO25010ModelTests(unittest.TestCase):
    def test_characteristics_are_top_level_goals(self):
        model = build_iso25010_model()
        self.assertEqual(
            [goal.name for goal in model.goals],
            [spec[0] for spec in ISO_25010_CHARACTERISTICS],
        )
        self.assertIn("Security", [goal.name for goal in model.goals])
        self.assertIn("Energy Consumption", [goal.name for goal in model.goals])

    def test_user_engagement_is_nested_composite(self):
        model = build_iso25010_model()
        engagement = model.get_goal_by_name("User Engagement")
        self.assertIsInstance(engagement, CompositeGoal)
        self.assertEqual(model.tree.parent(engagement).name, "Interaction Capability")
        self.assertEqual(
            [goal.name for goal in model.tree.children(engagement)],
            ["Popularity", "Activity", "Loyalty"],
        )
        self.assertIsInstance(model.get_goal_by_name("Loyalty"), LeafGoal)

    def test_rebuild_restores_removed_goals(self):
        model = build_iso25010_model()
        self.assertTrue(model.remove_goal("Safety"))
        self.assertFalse(model.has_goal("Safety"))
        model.rebuild()
        self.assertTrue(model.has_goal("Safety"))

    def test_sub_goal_helpers(self):
        model = build_iso25010_model()
        self.assertTrue(model.has_sub_goal("Security", "confidentiality"))
        self.assertFalse(model.has_sub_goal("Security", "Time Behavior"))
        self.assertTrue(model.remove_sub_goal("Security", "Confidentiality"))
        self.assertFalse(model.has_sub_goal("Security", "Confidentiality"))
        model.clear_sub_goals("Security")
        self.assertEqual(model.tree.children(model.get_goal_by_name("Security")), [])

    def test_to_dict_shape(self):
        payload = build_iso25010_model().to_dict()
        self.assertEqual(payload["version"], "2023")
        security = next(goal for goal in payload["goals"] if goal["name"] == "Security")
        self.assertIn("Confidentiality", [goal["name"] for goal in security["subGoals"]])

    def test_display_info_lists_goals(self):
        text = build_iso25010_model().display_info()
        self.assertTrue(text.startswith("ISO/IEC 25010"))
        self.assertIn("Time Behavior", text)


class QualityModelTests(unittest.TestCase):
    def test_duplicate_goals_are_rejected(self):
        model = QualityModel("Custom")
        model.add_goal(CompositeGoal("Speed"))
        with self.assertRaises(GoalStructureError):
            model.add_goal(CompositeGoal("speed"))

        model.add_sub_goal("Speed", LeafGoal("Latency"))
        with self.assertRaises(GoalStructureError):
            model.add_sub_goal("Speed", LeafGoal("LATENCY"))
        with self.assertRaises(GoalStructureError):
            model.add_sub_goal("Missing", LeafGoal("Other"))

    def test_clear_goals(self):
        model = QualityModel("Custom")
        model.add_goal(LeafGoal("Latency"))
        model.clear_goals()
        self.assertEqual(model.goals, [])

    def test_registry_lookup(self):
        self.assertEqual(get_quality_model(" ISO25010 ").version, "2023")
        with self.assertRaises(KeyError):
            get_quality_model("unknown")

    def test_select_model_by_purpose(self):
        model = select_model_by_purpose("I care about response time and security")
        self.assertIsNotNone(model)
        self.assertEqual(model.version, "2023")
        self.assertIsNone(select_model_by_purpose("zzz qqq"))
        self.assertIsNone(select_model_by_purpose(""))


if __name__ == "__main__":
    unittest.main()
