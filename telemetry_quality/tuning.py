import json
from pathlib import Path
from typing import Any, Dict, List

from telemetry_quality.config import BenchmarkConstants
from telemetry_quality.metrics import percentile
from telemetry_quality.service import MetricHistoryStore

# Share metrics are bounded by 1 and keep their benchmark
FIXED_BENCHMARKS = frozenset(
    ("XSS", "ScanAPI", "AuthRefused", "SQLi", "SQLMod", "Login", "LoginS")
)

# A suggestion never moves a benchmark outside [old * MIN, old * MAX]
MIN_FACTOR = 0.5
MAX_FACTOR = 2.0


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def suggest_benchmarks(
    history_store: MetricHistoryStore,
    percentile_value: float = 0.95,
    min_samples: int = 5,
) -> Dict[str, Any]:
    """
    Предлагает эталонные максимумы по истории метрик.
    Suggests benchmark maxima from the observed metric history.

    The suggestion is the history percentile, clamped to a factor range of
    the current benchmark. Metrics with too few samples keep their value.
    """
    metric_stats: List[Dict[str, Any]] = []
    suggested: Dict[str, float] = {}

    for acronym, old_raw in BenchmarkConstants.METRIC_BENCHMARKS.items():
        old_max = _to_float(old_raw, 0.0)
        values = history_store.values(acronym)
        new_max = old_max
        reason = "kept"
        if acronym in FIXED_BENCHMARKS:
            reason = "fixed"
        elif len(values) < min_samples:
            reason = "insufficient_samples"
        else:
            observed = percentile(values, percentile_value)
            if observed > 0 and old_max > 0:
                new_max = round(
                    max(old_max * MIN_FACTOR, min(old_max * MAX_FACTOR, observed)), 3
                )
                reason = "suggested"
            elif observed > 0:
                new_max = round(observed, 3)
                reason = "suggested"

        if reason == "suggested":
            suggested[acronym] = new_max
        metric_stats.append(
            {
                "metric": acronym,
                "samples": len(values),
                "old_max": round(old_max, 3),
                "suggested_max": round(new_max, 3),
                "delta_max": round(new_max - old_max, 3),
                "reason": reason,
            }
        )

    metric_stats.sort(key=lambda row: abs(_to_float(row["delta_max"])), reverse=True)

    return {
        "percentile": percentile_value,
        "min_samples": min_samples,
        "metrics_with_history": len(history_store.acronyms()),
        "metric_stats": metric_stats,
        "suggested_benchmarks": suggested,
    }


def save_tuning_report(report: Dict[str, Any], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8"
    )


def apply_suggested_benchmarks_to_config(
    suggested: Dict[str, float], config_path: Path
) -> Dict[str, Any]:
    existing: Dict[str, Any] = {}
    if config_path.exists():
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
            if isinstance(raw, dict):
                existing = raw
        except (ValueError, OSError):
            existing = {}

    benchmarks = existing.get("METRIC_BENCHMARKS", {})
    if not isinstance(benchmarks, dict):
        benchmarks = {}
    benchmarks.update(suggested)
    existing["METRIC_BENCHMARKS"] = benchmarks
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        json.dumps(existing, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    return existing
