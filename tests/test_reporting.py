import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from telemetry_quality.application import ApplicationMetadata
from telemetry_quality.reporting import (
    build_comparison,
    load_report_payload,
    print_results,
    save_json_report,
    validate_report_contract,
)
from telemetry_quality.service import QualityAssessmentService
from telemetry_quality.telemetry import TelemetryBatch

BACKEND = ApplicationMetadata(name="api", type="backend")


def make_report(durations=(100, 300)):
    batch = TelemetryBatch(
        [
            {"attributes": {"http.method": "GET"}, "startTime": 0, "duration": duration}
            for duration in durations
        ]
    )
    service = QualityAssessmentService(app_metadata=BACKEND)
    return service.assess(batch, ["Performance Efficiency"], "2026-01-01T00:00:00+00:00")


class ReportContractTests(unittest.TestCase):
    def test_engine_report_passes_contract(self):
        self.assertEqual(validate_report_contract(make_report().to_dict()), [])

    def test_contract_errors(self):
        payload = make_report().to_dict()
        payload["coverage_percent"] = 150.0
        payload["overall_score"] = "high"
        payload["goal_scores"].append({"name": "Broken", "score": "x"})
        payload["metrics"].append(dict(payload["metrics"][0]))
        del payload["model"]

        errors = validate_report_contract(payload)
        self.assertIn("missing field 'model'", errors)
        self.assertTrue(any("overall_score" in error for error in errors))
        self.assertTrue(any("coverage_percent out of range" in error for error in errors))
        self.assertTrue(any("score must be a number or null" in error for error in errors))
        self.assertTrue(any("duplicate acronym" in error for error in errors))
        self.assertEqual(validate_report_contract([]), ["report payload must be an object"])


class ReportOutputTests(unittest.TestCase):
    def test_print_results_saves_json_and_text(self):
        report = make_report()
        with tempfile.TemporaryDirectory() as tmp:
            prefix = str(Path(tmp) / "reports" / "run1")
            buffer = io.StringIO()
            with redirect_stdout(buffer):
                json_path, text_path = print_results(report, output_prefix=prefix)

            output = buffer.getvalue()
            self.assertIn("GOAL SCORES", output)
            self.assertIn("JSON contract validation passed", output)

            payload = json.loads(json_path.read_text(encoding="utf-8"))
            self.assertEqual(payload["model"], report.model_name)
            text = text_path.read_text(encoding="utf-8")
            self.assertIn("Time Behavior", text)
            self.assertIn("n/a", text)

    def test_print_results_without_prefix_writes_nothing(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            self.assertEqual(print_results(make_report()), (None, None))

    def test_comparison_with_previous_report(self):
        with tempfile.TemporaryDirectory() as tmp:
            baseline_path = save_json_report(make_report((900, 900)), str(Path(tmp) / "base"))
            previous = load_report_payload(baseline_path)
            current = make_report((100, 100)).to_dict()

            comparison = build_comparison(previous, current, str(baseline_path))
            entries = {entry["goal"]: entry for entry in comparison["entries"]}
            self.assertIn(entries["Time Behavior"]["status"], ("improved", "declined"))
            self.assertEqual(entries["Capacity"]["status"], "unknown")
            self.assertIsNone(entries["Capacity"]["delta_score"])
            self.assertEqual(comparison["removed_goals"], [])

            buffer = io.StringIO()
            with redirect_stdout(buffer):
                print_results(current, compare_path=str(baseline_path))
            self.assertIn("COMPARISON WITH BASELINE", buffer.getvalue())

    def test_invalid_baseline_is_skipped(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            print_results(make_report(), compare_path="/nonexistent/baseline.json")
        self.assertIn("Comparison skipped", buffer.getvalue())

    def test_load_report_rejects_lists(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "list.json"
            path.write_text("[]", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_report_payload(path)


if __name__ == "__main__":
    unittest.main()
