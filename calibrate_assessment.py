#!/usr/bin/env python3
"""
КАЛИБРОВКА ОЦЕНКИ КАЧЕСТВА / QUALITY ASSESSMENT CALIBRATION

Сравнивает баллы целей из отчетов assess_quality.py с экспертной разметкой.
Compares goal scores from assess_quality.py reports with expert labels.

Использование / Usage:
  python calibrate_assessment.py --labels labels.csv --results reports/run1.json
  python calibrate_assessment.py --labels labels.csv --results all_apps.json -o calibration/q1
"""
import argparse
import sys
from pathlib import Path

from telemetry_quality.calibration import (
    build_calibration_report,
    load_expert_labels,
    load_goal_scores,
    render_calibration_summary,
    save_calibration_report,
)


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Калибровка баллов целей по экспертной разметке\n"
        "Calibrate goal scores against expert labels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--labels",
        required=True,
        help="CSV с колонками goal, expert_score[, application] / Expert labels CSV",
    )
    parser.add_argument(
        "--results",
        required=True,
        help="JSON-отчет или список отчетов / Assessment report JSON (object or list)",
    )
    parser.add_argument(
        "-o",
        "--output-prefix",
        default="calibration_report",
        help="Префикс .json и .txt / Prefix for the .json and .txt outputs",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_arguments()
    labels_path = Path(args.labels)
    results_path = Path(args.results)
    try:
        report = build_calibration_report(
            load_expert_labels(labels_path),
            load_goal_scores(results_path),
            labels_source=str(labels_path),
            results_source=str(results_path),
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ ОШИБКА / ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    lines = render_calibration_summary(report)
    print("\n".join(lines))

    json_path = Path(f"{args.output_prefix}.json")
    txt_path = Path(f"{args.output_prefix}.txt")
    save_calibration_report(report, json_path)
    txt_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    print(f"\n✅ Сохранено / Saved: {json_path}, {txt_path}")


if __name__ == "__main__":
    main()
