#!/usr/bin/env python3
import argparse
from pathlib import Path

from telemetry_quality.service import MetricHistoryStore
from telemetry_quality.tuning import (
    apply_suggested_benchmarks_to_config,
    save_tuning_report,
    suggest_benchmarks,
)


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Suggest metric benchmark updates from the recorded metric history."
    )
    parser.add_argument(
        "--history",
        type=str,
        required=True,
        help="Path to metric history JSON written by assess_quality.py --history",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="calibration/benchmark_config_patch.json",
        help="Output path for tuning report JSON",
    )
    parser.add_argument(
        "--percentile",
        type=float,
        default=0.95,
        help="History percentile used as the suggested benchmark (0..1)",
    )
    parser.add_argument(
        "--min-samples",
        type=int,
        default=5,
        help="Minimum history samples per metric before suggesting a change",
    )
    parser.add_argument(
        "--apply-config",
        type=str,
        default="",
        help="Optional path to benchmark_config.json to apply suggested benchmarks",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_arguments()
    history_path = Path(args.history)
    if not history_path.exists():
        raise FileNotFoundError(f"history file not found: {history_path}")
    store = MetricHistoryStore.load(history_path)

    percentile_value = min(max(args.percentile, 0.0), 1.0)
    report = suggest_benchmarks(
        store, percentile_value=percentile_value, min_samples=max(1, args.min_samples)
    )
    output_path = Path(args.output)
    save_tuning_report(report, output_path)

    print(f"Tuning report saved: {output_path}")
    print(
        f"Metrics with history: {report['metrics_with_history']} | "
        f"suggested changes: {len(report['suggested_benchmarks'])}"
    )

    top_changes = [row for row in report["metric_stats"] if row["reason"] == "suggested"][:5]
    if top_changes:
        print("Top suggested benchmark changes:")
        for row in top_changes:
            print(
                f"  - {row['metric']}: {row['old_max']} -> {row['suggested_max']} "
                f"(delta {row['delta_max']}, samples={row['samples']})"
            )

    if args.apply_config:
        updated = apply_suggested_benchmarks_to_config(
            report["suggested_benchmarks"], Path(args.apply_config)
        )
        print(
            f"Applied suggested benchmarks to {args.apply_config} "
            f"({len(updated.get('METRIC_BENCHMARKS', {}))} metrics in config)"
        )


if __name__ == "__main__":
    main()
