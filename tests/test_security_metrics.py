import unittest

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.security_metrics import (
    AuthRefusedMetric,
    ConfidentialityMapper,
    IpMetric,
    LoginMetric,
    LoginSMetric,
    MemoryFreeMetric,
    NonRepudiationMapper,
    ProcCpuMetric,
    ScanAPIMetric,
    SQLiMetric,
    SQLModMetric,
    XSSMetric,
    is_login_attempt,
)
from telemetry_quality.telemetry import TelemetryBatch, TelemetryRecord


def attrs(**attributes):
    return {"attributes": {key.replace("_", "."): value for key, value in attributes.items()}}


class ConfidentialityMetricsTests(unittest.TestCase):
    def test_xss_share_of_targets(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"http.target": "/search?q=<SCRIPT>alert(1)</script>"}},
                {"attributes": {"http.target": "/home"}},
                {"attributes": {"http.target": "/img?onerror=steal()"}},
                {"attributes": {"other": 1}},
            ]
        )
        self.assertAlmostEqual(XSSMetric().compute_value(batch), 2 / 3)

    def test_scan_api_flags_noisy_ips(self):
        scanner = [
            {"attributes": {"net.host.ip": "10.0.0.1", "http.target": "/x", "http.status_code": 404}}
        ] * 11
        normal = [
            {"attributes": {"net.host.ip": "10.0.0.2", "http.target": "/a", "http.status_code": 200}}
        ] * 3
        self.assertAlmostEqual(ScanAPIMetric().compute_value(TelemetryBatch(scanner + normal)), 0.5)

    def test_scan_api_flags_many_distinct_targets(self):
        records = [
            {"attributes": {"net.host.ip": "10.0.0.3", "http.target": f"/probe/{i}", "http.status_code": 200}}
            for i in range(25)
        ]
        self.assertEqual(ScanAPIMetric().compute_value(TelemetryBatch(records)), 1.0)

    def test_auth_refused_counts_targeted_requests(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"http.target": "/a", "http.status_code": 401}},
                {"attributes": {"http.target": "/b", "http.status_code": "403"}},
                {"attributes": {"http.target": "/c", "http.status_code": 200}},
                {"attributes": {"http.status_code": 401}},
            ]
        )
        self.assertAlmostEqual(AuthRefusedMetric().compute_value(batch), 0.5)

    def test_sql_injection_patterns(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"db.statement": "SELECT * FROM users WHERE id = 1 OR 1=1"}},
                {"attributes": {"db.statement": "ping"}},
                {"attributes": {}},
                {"attributes": {"db.statement": "name = 'x'; --"}},
            ]
        )
        self.assertAlmostEqual(SQLiMetric().compute_value(batch), 0.5)

    def test_unauthenticated_modifications(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"db.statement": "INSERT INTO t VALUES (1)", "app.user.id": "u1"}},
                {"attributes": {"db.statement": "delete from t"}},
                {"attributes": {"db.statement": "UPDATE t SET a = 1", "app.user.id": "u2", "http.status_code": 403}},
                {"attributes": {"db.statement": "SELECT 1"}},
            ]
        )
        self.assertAlmostEqual(SQLModMetric().compute_value(batch), 2 / 3)

    def test_empty_batch_yields_zero(self):
        for metric_cls in (XSSMetric, ScanAPIMetric, AuthRefusedMetric, SQLiMetric, SQLModMetric):
            self.assertEqual(metric_cls().compute_value(TelemetryBatch()), 0.0)


class NonRepudiationMetricsTests(unittest.TestCase):
    def test_login_attempt_detection(self):
        self.assertTrue(
            is_login_attempt(TelemetryRecord(attributes={"http.method": "post", "http.url": "/API/Login"}))
        )
        self.assertFalse(
            is_login_attempt(TelemetryRecord(attributes={"http.method": "GET", "http.url": "/login"}))
        )
        self.assertFalse(is_login_attempt(TelemetryRecord(attributes={"http.method": "POST"})))

    def test_login_success_rates(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"http.method": "POST", "http.url": "/login", "http.status_code": 200, "app.session.id": "s1"}},
                {"attributes": {"http.method": "POST", "http.url": "/auth", "http.status_code": 401, "app.session.id": "s1"}},
                {"attributes": {"http.method": "POST", "http.url": "/login", "http.status_code": 200, "app.session.id": "s2"}},
                {"attributes": {"http.method": "GET", "http.url": "/login", "http.status_code": 200, "app.session.id": "s3"}},
            ]
        )
        self.assertAlmostEqual(LoginMetric().compute_value(batch), 2 / 3)
        # s1 -> 0.5, s2 -> 1.0, s3 has no attempt
        self.assertAlmostEqual(LoginSMetric().compute_value(batch), 0.75)

    def test_traced_ips_and_process_averages(self):
        batch = TelemetryBatch(
            [
                {"attributes": {"http.method": "GET", "net.peer.ip": "1.2.3.4", "app.cpu.usage": 10, "app.memory.free": 70}},
                {"attributes": {"http.method": "GET", "net.peer.ip": "1.2.3.5", "app.cpu.usage": 30}},
                {"attributes": {"net.peer.ip": "1.2.3.6"}},
            ]
        )
        self.assertEqual(IpMetric().compute_value(batch), 2.0)
        self.assertAlmostEqual(ProcCpuMetric().compute_value(batch), 20.0)
        self.assertAlmostEqual(MemoryFreeMetric().compute_value(batch), 70.0)


class SecurityMappersTests(unittest.TestCase):
    def test_backend_only(self):
        backend = ApplicationMetadata(type="backend")
        frontend = ApplicationMetadata(type="frontend")
        self.assertEqual(len(ConfidentialityMapper(backend).metrics), 5)
        self.assertEqual(len(NonRepudiationMapper(backend).metrics), 8)
        self.assertEqual(ConfidentialityMapper(frontend).metrics, [])
        self.assertEqual(NonRepudiationMapper(frontend).metrics, [])


if __name__ == "__main__":
    unittest.main()
