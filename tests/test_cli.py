import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from telemetry_quality.cli import main, parse_arguments, split_goal_names


def run_cli(argv):
    stdout = io.StringIO()
    stderr = io.StringIO()
    code = 0
    with redirect_stdout(stdout), redirect_stderr(stderr):
        try:
            main(argv)
        except SystemExit as e:
            code = e.code
    return code, stdout.getvalue(), stderr.getvalue()


class ArgumentTests(unittest.TestCase):
    def test_goal_names_are_split_and_deduplicated(self):
        args = parse_arguments(["-g", "Time Behavior, Security", "-g", "Security"])
        self.assertEqual(split_goal_names(args.goals), ["Time Behavior", "Security"])


class CliTests(unittest.TestCase):
    def test_list_goals(self):
        code, stdout, _ = run_cli(["--list-goals", "--app-type", "backend"])
        self.assertEqual(code, 0)
        self.assertIn("Time Behavior", stdout)
        self.assertIn("Unmapped goals", stdout)

    def test_required_telemetry(self):
        code, stdout, _ = run_cli(["--app-type", "frontend", "-g", "Activity", "--required-telemetry"])
        self.assertEqual(code, 0)
        self.assertIn("REQUIRED METRICS", stdout)
        self.assertIn("UIF", stdout)
        self.assertIn("tracing", stdout)

    def test_missing_goals_or_telemetry_exit(self):
        code, stdout, _ = run_cli(["--app-type", "backend"])
        self.assertEqual(code, 1)
        self.assertIn("No goals selected", stdout)

        code, stdout, _ = run_cli(["--app-type", "backend", "-g", "Time Behavior"])
        self.assertEqual(code, 1)
        self.assertIn("Telemetry file is required", stdout)

    def test_missing_telemetry_file_is_an_error(self):
        code, _, stderr = run_cli(["-g", "Time Behavior", "-t", "/nonexistent/spans.json"])
        self.assertEqual(code, 1)
        self.assertIn("ERROR", stderr)

    def test_full_run_writes_reports_and_history(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            telemetry = root / "spans.jsonl"
            telemetry.write_text(
                "\n".join(
                    json.dumps(
                        {"attributes": {"http.method": "GET"}, "startTime": i * 100, "duration": 100 + i}
                    )
                    for i in range(5)
                ),
                encoding="utf-8",
            )
            history = root / "history.json"
            prefix = root / "reports" / "run1"

            code, stdout, stderr = run_cli(
                [
                    "-t", str(telemetry),
                    "--app-type", "backend",
                    "--app-name", "api",
                    "-g", "Time Behavior",
                    "--history", str(history),
                    "-o", str(prefix),
                ]
            )
            self.assertEqual(code, 0, stderr)
            self.assertIn("Metric history saved", stdout)

            payload = json.loads(prefix.with_suffix(".json").read_text(encoding="utf-8"))
            self.assertEqual(payload["application"]["name"], "api")
            self.assertEqual(payload["selected_goals"], ["Time Behavior"])

            saved = json.loads(history.read_text(encoding="utf-8"))
            self.assertIn("ART", saved["metrics"])


if __name__ == "__main__":
    unittest.main()
