# Agreement between computed goal scores and expert judgement

import csv
import json
import math
from dataclasses import dataclass
from datetime import datetime
from itertools import groupby
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

# Expert scores and model scores share the [0, 1] scale
HIGH_MAE = 0.2
LOW_SPEARMAN = 0.4
GOOD_SPEARMAN = 0.7
MIN_RELIABLE_SAMPLES = 10

KEY_SEPARATOR = "::"


@dataclass
class CalibrationSample:
    key: str
    expert_score: float
    model_score: float

    @property
    def delta(self) -> float:
        return self.model_score - self.expert_score


def sample_key(goal: str, application: str = "") -> str:
    """Ключ образца: 'app::goal' или 'goal' / Sample key"""
    goal = str(goal).strip()
    application = str(application or "").strip()
    return f"{application}{KEY_SEPARATOR}{goal}" if application else goal


def load_expert_labels(csv_path: Path) -> Dict[str, float]:
    """
    Загружает экспертную разметку целей из CSV.
    Columns ``goal`` and ``expert_score`` are required; an ``application``
    column, when present, scopes each label to one application.
    Rows without a goal or with a non-numeric score are skipped.
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"labels file not found: {csv_path}")

    with open(csv_path, "r", encoding="utf-8", newline="") as file:
        reader = csv.DictReader(file)
        columns = set(reader.fieldnames or ())
        if not {"goal", "expert_score"} <= columns:
            raise ValueError(
                f"labels csv '{csv_path}' needs columns goal, expert_score; got {sorted(columns)}"
            )
        rows = list(reader)

    labels: Dict[str, float] = {}
    for row in rows:
        goal = (row.get("goal") or "").strip()
        score = _as_score(row.get("expert_score"))
        if goal and score is not None:
            labels[sample_key(goal, row.get("application", ""))] = score
    return labels


def _as_score(value: Any) -> Optional[float]:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    return score if math.isfinite(score) else None


def _report_goal_scores(payload: Dict[str, Any], application: str) -> Iterable[Tuple[str, float]]:
    for item in payload.get("goal_scores") or []:
        if not isinstance(item, dict):
            continue
        score = _as_score(item.get("score"))
        if score is not None:
            yield sample_key(item.get("name", ""), application), score


def load_goal_scores(report_json_path: Path) -> Dict[str, float]:
    """
    Загружает баллы целей из JSON-отчета оценки.
    A single report is keyed by goal name; a list of reports is keyed by
    'application::goal'. Unknown (null) scores are skipped.
    """
    if not report_json_path.exists():
        raise FileNotFoundError(f"report file not found: {report_json_path}")

    raw_data = json.loads(report_json_path.read_text(encoding="utf-8"))
    if isinstance(raw_data, dict):
        return dict(_report_goal_scores(raw_data, ""))
    if not isinstance(raw_data, list):
        raise ValueError("report json must be an object or a list of objects")

    scores: Dict[str, float] = {}
    for payload in raw_data:
        if not isinstance(payload, dict):
            continue
        application = payload.get("application")
        name = application.get("name", "") if isinstance(application, dict) else ""
        scores.update(_report_goal_scores(payload, str(name)))
    return scores


# -- statistics ---------------------------------------------------------------


def _average_ranks(values: Sequence[float]) -> List[float]:
    """1-based ranks; tied values share the mean of their positions."""
    order = sorted(range(len(values)), key=values.__getitem__)
    ranks = [0.0] * len(values)
    position = 0
    for _, group in groupby(order, key=values.__getitem__):
        members = list(group)
        shared = position + (len(members) + 1) / 2.0
        for index in members:
            ranks[index] = shared
        position += len(members)
    return ranks


def _centered(values: Sequence[float]) -> List[float]:
    center = math.fsum(values) / len(values)
    return [value - center for value in values]


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    """None for mismatched, too short or constant series."""
    if len(x) != len(y) or len(x) < 2:
        return None
    dx, dy = _centered(x), _centered(y)
    spread = math.sqrt(math.fsum(a * a for a in dx) * math.fsum(b * b for b in dy))
    if spread == 0:
        return None
    return math.fsum(a * b for a, b in zip(dx, dy)) / spread


def spearman_correlation(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    if len(x) != len(y) or len(x) < 2:
        return None
    return pearson_correlation(_average_ranks(x), _average_ranks(y))


def mean_absolute_error(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    if not x or len(x) != len(y):
        return None
    return math.fsum(abs(a - b) for a, b in zip(x, y)) / len(x)


def match_samples(
    expert_labels: Dict[str, float], model_scores: Dict[str, float]
) -> List[CalibrationSample]:
    """Пары по общим ключам / Samples for keys present on both sides, sorted"""
    return [
        CalibrationSample(key, expert_labels[key], model_scores[key])
        for key in sorted(expert_labels.keys() & model_scores.keys())
    ]


def quality_band(spearman: Optional[float]) -> str:
    if spearman is None or spearman < LOW_SPEARMAN:
        return "poor"
    if spearman < GOOD_SPEARMAN:
        return "moderate"
    return "good"


def _rounded(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 4)


def build_calibration_report(
    expert_labels: Dict[str, float],
    model_scores: Dict[str, float],
    labels_source: Optional[str] = None,
    results_source: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Формирует отчет калибровки баллов целей.
    Compares goal scores with expert labels: rank and linear agreement,
    absolute error, signed bias (model minus expert) and per-goal deltas.
    """
    samples = match_samples(expert_labels, model_scores)
    expert = [sample.expert_score for sample in samples]
    model = [sample.model_score for sample in samples]

    spearman = spearman_correlation(expert, model)
    mae = mean_absolute_error(expert, model)
    bias = math.fsum(sample.delta for sample in samples) / len(samples) if samples else None

    warnings: List[str] = []
    if len(samples) < MIN_RELIABLE_SAMPLES:
        warnings.append(
            f"small sample size (<{MIN_RELIABLE_SAMPLES}); treat agreement figures as indicative"
        )
    if spearman is None:
        warnings.append("rank correlation undefined: scores or labels do not vary")
    elif spearman < LOW_SPEARMAN:
        warnings.append(f"low rank correlation ({spearman:.2f}); revisit benchmarks and weights")
    if mae is not None and mae > HIGH_MAE:
        warnings.append(f"mean absolute error {mae:.2f} exceeds {HIGH_MAE}")

    unmatched_labels = sorted(expert_labels.keys() - model_scores.keys())
    return {
        "generated_at": datetime.now().isoformat(timespec="seconds"),
        "labels_source": labels_source,
        "results_source": results_source,
        "sample_size": len(samples),
        "unmatched_labels": unmatched_labels,
        "metrics": {
            "spearman": _rounded(spearman),
            "pearson": _rounded(pearson_correlation(expert, model)),
            "mae": _rounded(mae),
            "bias": _rounded(bias),
        },
        "quality_band": quality_band(spearman),
        "warnings": warnings,
        "pairs": [
            {
                "goal": sample.key,
                "expert_score": round(sample.expert_score, 4),
                "model_score": round(sample.model_score, 4),
                "delta": round(sample.delta, 4),
            }
            for sample in samples
        ],
    }


def save_calibration_report(report: Dict[str, Any], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")


def render_calibration_summary(report: Dict[str, Any], top: int = 10) -> List[str]:
    """
    Текстовая сводка калибровки / Plain-text calibration summary lines.
    Goals are listed by absolute disagreement, largest first.
    """
    metrics = report.get("metrics", {})
    lines = [
        "=" * 120,
        "КАЛИБРОВКА БАЛЛОВ ЦЕЛЕЙ / GOAL SCORE CALIBRATION",
        "=" * 120,
        f"Метки / Labels:     {report.get('labels_source') or '-'}",
        f"Отчет / Results:    {report.get('results_source') or '-'}",
        f"Образцов / Samples: {report.get('sample_size', 0)} "
        f"(quality band: {report.get('quality_band', 'poor')})",
        "",
    ]
    for label in ("spearman", "pearson", "mae", "bias"):
        value = metrics.get(label)
        lines.append(f"  {label:10} {'n/a' if value is None else f'{value:.4f}'}")

    for warning in report.get("warnings", []):
        lines.append(f"⚠️  {warning}")

    pairs = sorted(report.get("pairs", []), key=lambda item: -abs(item.get("delta", 0.0)))
    if pairs:
        lines.extend(["", "Наибольшие расхождения / Largest disagreements:"])
        for item in pairs[:top]:
            lines.append(
                f"  {item['goal']:45} expert={item['expert_score']:.3f} "
                f"model={item['model_score']:.3f} delta={item['delta']:+.3f}"
            )

    unmatched = report.get("unmatched_labels", [])
    if unmatched:
        lines.extend(["", f"Без балла модели / Labels without a score: {', '.join(unmatched)}"])
    return lines
