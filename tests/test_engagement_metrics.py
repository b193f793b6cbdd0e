import unittest

from telemetry_quality.engagement_metrics import (
    ADMetric,
    ADuMetric,
    CDAMetric,
    DTAMetric,
    DTRsMetric,
    DTRvMetric,
    NCPVMetric,
    NoSMetric,
    NoSuMetric,
    NoSvMetric,
    NoUMetric,
    NoVMetric,
    NoVuMetric,
    RRMetric,
    UIFMetric,
)
from telemetry_quality.errors import InvalidMetricStateError
from telemetry_quality.telemetry import TelemetryBatch

DAY_MS = 86_400_000


def record(name=None, start=0, end=None, **attributes):
    payload = {"attributes": {key.replace("_", "."): value for key, value in attributes.items()}}
    if name is not None:
        payload["name"] = name
    payload["startTime"] = start
    if end is not None:
        payload["endTime"] = end
    return payload


def session_batch():
    # 10 records, 3 sessions, nothing else
    sessions = ["s1", "s2", "s3", "s1", "s2", "s1", "s3", "s1", "s2", "s3"]
    return TelemetryBatch([{"attributes": {"app.session.id": sid}} for sid in sessions])


class ActivityMetricsTests(unittest.TestCase):
    def test_uif_counts_interactions_per_session(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"app.session.id": "s1", "event_type": "click"}},
                {"attributes": {"app.session.id": "s1", "event_type": "DBL_CLICK"}},
                {"attributes": {"app.session.id": "s2", "event_type": "scroll"}},
                {"attributes": {"app.session.id": "s2", "event_type": "not-an-event"}},
            ]
        )
        metric = UIFMetric()
        self.assertAlmostEqual(metric.compute_value(batch), 1.5)
        self.assertEqual(metric.total_interactions, 3)
        self.assertEqual(metric.nb_sessions, 2)

        only_clicks = UIFMetric(selected_events=["click"])
        self.assertAlmostEqual(only_clicks.compute_value(batch), 0.5)

    def test_uif_without_sessions_is_zero(self):
        batch = TelemetryBatch([{"attributes": {"event_type": "click"}}] * 7)
        self.assertEqual(UIFMetric().compute_value(batch), 0.0)

    def test_explicit_zero_sessions_is_rejected(self):
        with self.assertRaises(InvalidMetricStateError):
            UIFMetric().nb_sessions = 0
        with self.assertRaises(InvalidMetricStateError):
            NoSMetric().nb_sessions = 0
        metric = NoSMetric()
        metric.nb_sessions = 4
        self.assertEqual(metric.nb_sessions, 4)

    def test_cda_counts_navigation_clicks_per_visit(self):
        batch = TelemetryBatch(
            [
                {"name": "Navigation: /home", "attributes": {"app.visit.id": "v1", "event_type": "click"}},
                {"name": "navigation: /cart", "attributes": {"app.visit.id": "v1", "event_type": "click"}},
                {"name": "button", "attributes": {"app.visit.id": "v2", "event_type": "click"}},
            ]
        )
        self.assertAlmostEqual(CDAMetric().compute_value(batch), 1.0)
        self.assertEqual(NCPVMetric().compute_value(batch), 2.0)

    def test_dta_averages_visit_spans(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"app.visit.id": "v1"}, "startTime": 0, "endTime": 100},
                {"attributes": {"app.visit.id": "v1"}, "startTime": 50, "endTime": 300},
                {"attributes": {"app.visit.id": "v2"}, "startTime": [1, 0], "endTime": [1, 100000000]},
            ]
        )
        self.assertAlmostEqual(DTAMetric().compute_value(batch), (300 + 100) / 2)


class PopularityMetricsTests(unittest.TestCase):
    def test_distinct_session_count(self):
        self.assertEqual(NoSMetric().compute_value(session_batch()), 3.0)

    def test_distinct_counts_and_ratios(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"app.user.id": "u1", "app.session.id": "s1", "app.visit.id": "v1"}},
                {"attributes": {"app.user.id": "u1", "app.session.id": "s2", "app.visit.id": "v2"}},
                {"attributes": {"app.user.id": "u2", "app.session.id": "s3", "app.visit.id": "v2"}},
                {"attributes": {"app.user.id": "u2", "app.session.id": "s4", "app.visit.id": "v3"}},
            ]
        )
        self.assertEqual(NoUMetric().compute_value(batch), 2.0)
        self.assertEqual(NoVMetric().compute_value(batch), 3.0)
        self.assertAlmostEqual(NoVuMetric().compute_value(batch), 1.5)
        self.assertAlmostEqual(NoSuMetric().compute_value(batch), 2.0)
        self.assertAlmostEqual(NoSvMetric().compute_value(batch), 4.0 / 3.0)

    def test_ratio_with_zero_denominator_is_zero(self):
        # 7 sessions but no user ids at all
        batch = TelemetryBatch(
            [{"attributes": {"app.session.id": f"s{i}"}} for i in range(7)]
        )
        metric = NoSuMetric()
        self.assertEqual(metric.compute_value(batch), 0.0)
        self.assertEqual(metric.children["NoS"].value, 7.0)
        self.assertEqual(metric.children["NoU"].value, 0.0)


class LoyaltyMetricsTests(unittest.TestCase):
    def setUp(self):
        self.batch = TelemetryBatch(
            [
                record(start=0, end=100, app_user_id="u1", app_visit_id="v1", app_session_id="s1"),
                record(start=DAY_MS, end=DAY_MS + 300, app_user_id="u1", app_visit_id="v2", app_session_id="s1"),
                record(start=10, end=60, app_user_id="u2", app_visit_id="v3", app_session_id="s2"),
            ]
        )

    def test_active_days(self):
        self.assertEqual(ADMetric().compute_value(self.batch), 2.0)
        # u1 active on 2 days, u2 on 1 day
        self.assertAlmostEqual(ADuMetric().compute_value(self.batch), 1.5)

    def test_return_rate(self):
        # u1 returned once, u2 never
        self.assertAlmostEqual(RRMetric().compute_value(self.batch), 0.5)

    def test_dwell_time_retention(self):
        # u1: visits 100 and 300 -> 200, u2: 50 -> (200 + 50) / 2 users
        self.assertAlmostEqual(DTRvMetric().compute_value(self.batch), 125.0)
        # u1: one session of 400, u2: 50
        self.assertAlmostEqual(DTRsMetric().compute_value(self.batch), 225.0)

    def test_empty_batch_yields_zero(self):
        for metric_cls in (ADMetric, ADuMetric, RRMetric, DTRvMetric, DTRsMetric):
            self.assertEqual(metric_cls().compute_value(TelemetryBatch()), 0.0)


if __name__ == "__main__":
    unittest.main()
