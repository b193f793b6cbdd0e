import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from telemetry_quality.assessment import AssessmentReport

REPORT_REQUIRED_FIELDS = (
    ("model", str),
    ("application", dict),
    ("selected_goals", list),
    ("timestamp", str),
    ("overall_score", (int, float)),
    ("coverage_percent", (int, float)),
    ("required_telemetry", list),
    ("goal_scores", list),
    ("metrics", list),
    ("assessments", list),
)
GOAL_SCORE_REQUIRED_FIELDS = ("name", "kind", "weight", "score", "depth")
METRIC_REQUIRED_FIELDS = ("name", "acronym", "value", "unit")

# Score change below this is reported as unchanged
COMPARISON_TOLERANCE = 0.005


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _score_text(value: Optional[float]) -> str:
    if value is None:
        return "  n/a "
    return f"{value:6.3f}"


def build_report_payload(report: Union[AssessmentReport, Dict[str, Any]]) -> Dict[str, Any]:
    """JSON-совместимый отчет / JSON-ready report payload"""
    if isinstance(report, AssessmentReport):
        return report.to_dict()
    return dict(report)


def validate_report_contract(payload: Dict[str, Any]) -> List[str]:
    """
    Проверяет контракт JSON-отчета.
    Validates the JSON report payload and returns a list of contract errors.
    """
    if not isinstance(payload, dict):
        return ["report payload must be an object"]

    errors: List[str] = []
    for field_name, expected in REPORT_REQUIRED_FIELDS:
        if field_name not in payload:
            errors.append(f"missing field '{field_name}'")
            continue
        value = payload[field_name]
        if isinstance(value, bool) or not isinstance(value, expected):
            errors.append(f"field '{field_name}' has invalid type {type(value).__name__}")

    coverage = payload.get("coverage_percent")
    if _is_number(coverage) and not 0.0 <= coverage <= 100.0:
        errors.append(f"coverage_percent out of range: {coverage}")

    for index, item in enumerate(payload.get("goal_scores") or []):
        if not isinstance(item, dict):
            errors.append(f"goal_scores[{index}]: must be an object")
            continue
        for key in GOAL_SCORE_REQUIRED_FIELDS:
            if key not in item:
                errors.append(f"goal_scores[{index}]: missing '{key}'")
        score = item.get("score")
        if score is not None and not _is_number(score):
            errors.append(f"goal_scores[{index}]: score must be a number or null")
        elif _is_number(score) and score < 0:
            errors.append(f"goal_scores[{index}]: negative score {score}")

    seen_acronyms = set()
    for index, item in enumerate(payload.get("metrics") or []):
        if not isinstance(item, dict):
            errors.append(f"metrics[{index}]: must be an object")
            continue
        for key in METRIC_REQUIRED_FIELDS:
            if key not in item:
                errors.append(f"metrics[{index}]: missing '{key}'")
        if "value" in item and not _is_number(item["value"]):
            errors.append(f"metrics[{index}]: value must be a number")
        acronym = item.get("acronym")
        if acronym in seen_acronyms:
            errors.append(f"metrics[{index}]: duplicate acronym '{acronym}'")
        seen_acronyms.add(acronym)

    return errors


def save_json_report(report: Union[AssessmentReport, Dict[str, Any]], prefix: str) -> Path:
    path = Path(f"{prefix}.json")
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as file:
        json.dump(build_report_payload(report), file, indent=2, ensure_ascii=False)
    return path


def load_report_payload(json_path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(json_path)
    if not path.exists():
        raise FileNotFoundError(f"report file not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("report file has unsupported format; expected an object")
    return data


def goal_score_map(payload: Dict[str, Any]) -> Dict[str, Optional[float]]:
    scores: Dict[str, Optional[float]] = {}
    for item in payload.get("goal_scores") or []:
        if isinstance(item, dict) and item.get("name"):
            score = item.get("score")
            scores[str(item["name"])] = None if score is None else _to_float(score)
    return scores


def build_comparison(
    previous: Dict[str, Any], current: Dict[str, Any], baseline_source: Optional[str] = None
) -> Dict[str, Any]:
    """Сравнение двух оценок / Before/after comparison of two report payloads"""
    before_map = goal_score_map(previous)
    after_map = goal_score_map(current)

    entries: List[Dict[str, Any]] = []
    for name, after in after_map.items():
        before = before_map.get(name)
        if before is None or after is None:
            entries.append(
                {
                    "goal": name,
                    "status": "new" if name not in before_map else "unknown",
                    "before_score": before,
                    "after_score": after,
                    "delta_score": None,
                }
            )
            continue
        delta = round(after - before, 4)
        status = "unchanged"
        if delta > COMPARISON_TOLERANCE:
            status = "improved"
        elif delta < -COMPARISON_TOLERANCE:
            status = "declined"
        entries.append(
            {
                "goal": name,
                "status": status,
                "before_score": before,
                "after_score": after,
                "delta_score": delta,
            }
        )

    before_overall = _to_float(previous.get("overall_score"), 0.0)
    after_overall = _to_float(current.get("overall_score"), 0.0)
    return {
        "baseline_source": baseline_source,
        "generated_at": datetime.now().isoformat(timespec="seconds"),
        "overall_before": before_overall,
        "overall_after": after_overall,
        "overall_delta": round(after_overall - before_overall, 4),
        "removed_goals": sorted(set(before_map) - set(after_map)),
        "entries": entries,
    }


def _report_lines(payload: Dict[str, Any]) -> List[str]:
    application = payload.get("application") or {}
    lines = [
        "=" * 120,
        "ОТЧЕТ ОЦЕНКИ КАЧЕСТВА / QUALITY ASSESSMENT REPORT",
        f"({payload.get('model', '')})",
        "=" * 120,
        "",
        f"Приложение / Application: {application.get('name', '')} "
        f"[{application.get('type', '') or 'unknown type'}]",
        f"Цели / Selected goals: {', '.join(payload.get('selected_goals') or [])}",
        f"Общий балл / Overall score: {_to_float(payload.get('overall_score')):.3f}",
        f"Покрытие целей / Goal coverage: {_to_float(payload.get('coverage_percent')):.1f}%",
        "Телеметрия / Required telemetry: "
        f"{', '.join(payload.get('required_telemetry') or []) or '-'}",
        "",
        "БАЛЛЫ ПО ЦЕЛЯМ / GOAL SCORES",
        "-" * 120,
    ]
    for item in payload.get("goal_scores") or []:
        indent = "  " * int(item.get("depth", 0))
        lines.append(
            f"{indent}{item.get('name', ''):{max(60 - len(indent), 1)}} "
            f"{_score_text(item.get('score'))} | weight {_to_float(item.get('weight')):.3f} "
            f"| metrics {item.get('metric_count', 0)}"
        )

    lines += ["", "МЕТРИКИ / METRICS", "-" * 120]
    for item in payload.get("metrics") or []:
        lines.append(
            f"  {item.get('acronym', ''):18} {_to_float(item.get('value')):14.4f} "
            f"{item.get('unit', ''):22} {item.get('name', '')}"
        )

    lines += ["", "ИНТЕРПРЕТАЦИЯ / INTERPRETATION", "-" * 120]
    for assessment in payload.get("assessments") or []:
        metrics = assessment.get("metrics") or []
        if not metrics:
            continue
        lines.append(f"  {assessment.get('goal', '')}: {_score_text(assessment.get('global_score'))}")
        for item in metrics:
            lines.append(
                f"    {item.get('metric', ''):16} normalized={_to_float(item.get('value')):.4f} "
                f"weight={_to_float(item.get('weight')):.4f} "
                f"raw={_to_float(item.get('raw_value')):.4f} "
                f"benchmark={_to_float(item.get('benchmark')):.4f}"
            )
    return lines


def save_text_report(report: Union[AssessmentReport, Dict[str, Any]], prefix: str) -> Path:
    """
    Сохраняет полный текстовый отчет
    Saves the full text report
    """
    payload = build_report_payload(report)
    path = Path(f"{prefix}.txt")
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for line in _report_lines(payload):
            f.write(line + "\n")
        f.write("\n" + "=" * 120 + "\n")
        f.write(
            f"Отчет создан / Report generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
        )
        f.write("=" * 120 + "\n")
    return path


def print_comparison_summary(comparison: Dict[str, Any]) -> None:
    print("\n" + "=" * 120)
    print("СРАВНЕНИЕ С БАЗОВОЙ ОЦЕНКОЙ / COMPARISON WITH BASELINE")
    print("=" * 120)
    print(
        f"  Overall: {comparison['overall_before']:.3f} -> {comparison['overall_after']:.3f} "
        f"({comparison['overall_delta']:+.3f})"
    )
    for entry in comparison["entries"]:
        if entry["status"] in ("improved", "declined"):
            print(
                f"  {entry['goal']:50} {entry['before_score']:.3f} -> "
                f"{entry['after_score']:.3f} ({entry['delta_score']:+.3f}) {entry['status']}"
            )


def print_results(
    report: Union[AssessmentReport, Dict[str, Any]],
    output_prefix: Optional[str] = None,
    compare_path: Optional[str] = None,
) -> Tuple[Optional[Path], Optional[Path]]:
    """
    Выводит результаты оценки и сохраняет отчеты
    Prints assessment results and saves the reports when a prefix is given
    """
    payload = build_report_payload(report)

    print("\n" + "=" * 120)
    for line in _report_lines(payload)[1:]:
        print(line)

    contract_errors = validate_report_contract(payload)
    if contract_errors:
        print(f"\n⚠️  JSON contract validation found {len(contract_errors)} issue(s):")
        for error in contract_errors[:10]:
            print(f"   - {error}")
    else:
        print("\n✅ JSON contract validation passed.")

    json_file = text_file = None
    if output_prefix:
        json_file = save_json_report(payload, output_prefix)
        text_file = save_text_report(payload, output_prefix)
        print(f"\n✅ Полные результаты (JSON) сохранены в {json_file}")
        print(f"   Full results (JSON) saved to {json_file}")
        print(f"✅ Полный текстовый отчет сохранен в {text_file}")
        print(f"   Full text report saved to {text_file}")

    if compare_path:
        try:
            previous = load_report_payload(compare_path)
            print_comparison_summary(
                build_comparison(previous, payload, baseline_source=compare_path)
            )
        except (FileNotFoundError, ValueError, OSError) as error:
            print(
                f"\n⚠️  Сравнение пропущено: {error}\n"
                "   Comparison skipped due to invalid baseline file."
            )

    return json_file, text_file

