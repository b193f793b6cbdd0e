import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from telemetry_quality.application import ApplicationMetadata, load_application_metadata
from telemetry_quality.config import load_benchmark_config
from telemetry_quality.errors import QualityAssessmentError
from telemetry_quality.reporting import print_results
from telemetry_quality.service import MetricHistoryStore, QualityAssessmentService
from telemetry_quality.telemetry import load_telemetry_batch


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Парсинг аргументов командной строки
    Parse command line arguments
    """
    parser = argparse.ArgumentParser(
        description="Telemetry-based Software Quality Assessment\n"
        "Оценка качества ПО по телеметрии (ISO/IEC 25010)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования / Usage examples:
  %(prog)s --list-goals                                   # Дерево целей / Goal tree
  %(prog)s --app-type frontend --goals Activity --required-telemetry
  %(prog)s --telemetry spans.json --app-type backend --goals "Time Behavior,Confidentiality"
  %(prog)s -t spans.jsonl --app-metadata app.json -g "User Engagement" --history history.json
  %(prog)s -t spans.json -g Security --output-prefix reports/run1 --compare reports/run0.json
        """,
    )

    parser.add_argument(
        "-t",
        "--telemetry",
        type=str,
        metavar="FILE",
        help="Файл телеметрии JSON/JSONL / Telemetry file (JSON or JSON Lines)",
    )
    parser.add_argument(
        "--app-metadata",
        type=str,
        metavar="FILE",
        help="JSON с описанием приложения / Application metadata JSON",
    )
    parser.add_argument(
        "--app-type",
        type=str,
        default="",
        help="Тип приложения (frontend, backend, ...) / Application type override",
    )
    parser.add_argument(
        "--app-name",
        type=str,
        default="",
        help="Имя приложения / Application name override",
    )
    parser.add_argument(
        "-g",
        "--goals",
        action="append",
        default=[],
        metavar="NAMES",
        help="Цели качества (повторяемый или через запятую) / Quality goals "
        "(repeatable or comma separated)",
    )
    parser.add_argument(
        "--history",
        type=str,
        metavar="FILE",
        help="Файл истории метрик / Metric history JSON (read and updated)",
    )
    parser.add_argument(
        "-o",
        "--output-prefix",
        type=str,
        default="",
        metavar="PREFIX",
        help="Префикс файлов отчета / Prefix for .json and .txt reports",
    )
    parser.add_argument(
        "--compare",
        type=str,
        metavar="JSON_FILE",
        help="Сравнить с предыдущим JSON-отчетом / Compare with previous JSON report",
    )
    parser.add_argument(
        "--list-goals",
        action="store_true",
        help="Показать дерево целей и метрик / Show the mapped goal tree",
    )
    parser.add_argument(
        "--required-telemetry",
        action="store_true",
        help="Показать нужные метрики и телеметрию / Show required metrics and telemetry",
    )
    parser.add_argument(
        "--config",
        type=str,
        metavar="FILE",
        help="JSON с эталонами и весами / Benchmark config JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Подробный лог / Debug logging",
    )

    return parser.parse_args(argv)


def split_goal_names(values: List[str]) -> List[str]:
    """['A,B', 'C'] -> ['A', 'B', 'C']"""
    names: List[str] = []
    for value in values:
        for name in str(value).split(","):
            name = name.strip()
            if name and name not in names:
                names.append(name)
    return names


def resolve_app_metadata(args: argparse.Namespace) -> ApplicationMetadata:
    if args.app_metadata:
        app = load_application_metadata(args.app_metadata)
    else:
        app = ApplicationMetadata()
    if args.app_type:
        app.type = args.app_type
    if args.app_name:
        app.name = args.app_name
    return app


def print_required_telemetry(service: QualityAssessmentService, goals: List[str]) -> None:
    metrics = service.required_metrics(goals)
    print("\n" + "=" * 120)
    print("НЕОБХОДИМЫЕ МЕТРИКИ / REQUIRED METRICS")
    print("=" * 120)
    for metric in metrics:
        print(f"  {metric.acronym:18} {metric.unit:22} {metric.name}")
    telemetry = ", ".join(item.value for item in service.required_telemetry(goals))
    print(f"\nТелеметрия / Telemetry: {telemetry or '-'}")


def main(argv: Optional[List[str]] = None) -> None:
    """
    Основной скрипт
    Main script
    """
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")
    except (AttributeError, ValueError):
        pass

    try:
        args = parse_arguments(argv)
        if args.verbose:
            logging.getLogger().setLevel(logging.DEBUG)
        if args.config:
            if not os.path.exists(args.config):
                raise FileNotFoundError(f"config file not found: {args.config}")
            load_benchmark_config(args.config)

        app = resolve_app_metadata(args)
        history_store = MetricHistoryStore.load(args.history) if args.history else None
        service = QualityAssessmentService(app_metadata=app, history_store=history_store)
        goals = split_goal_names(args.goals)

        if args.list_goals:
            print(service.model.display_info())
            unmapped = service.unmapped_goals()
            if unmapped:
                print(f"\nБез маппера / Unmapped goals: {', '.join(unmapped)}")
            return

        if not goals:
            print(
                "❌ Не выбраны цели / No goals selected (use --goals or --list-goals)",
                flush=True,
            )
            sys.exit(1)

        if args.required_telemetry:
            print_required_telemetry(service, goals)
            return

        if not args.telemetry:
            print(
                "❌ Не указан файл телеметрии / Telemetry file is required (--telemetry)",
                flush=True,
            )
            sys.exit(1)

        batch = load_telemetry_batch(args.telemetry)
        report = service.assess(batch, goals)
        print_results(
            report, output_prefix=args.output_prefix or None, compare_path=args.compare
        )

        if history_store is not None:
            saved = history_store.save(Path(args.history))
            print(f"✅ История метрик сохранена / Metric history saved: {saved}")

    except KeyboardInterrupt:
        print("\n\n⚠️  Прервано пользователем / Interrupted by user", flush=True)
        sys.exit(1)
    except (QualityAssessmentError, FileNotFoundError, ValueError) as e:
        print(f"\n❌ ОШИБКА / ERROR: {e}", flush=True, file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(
            f"\n❌ КРИТИЧЕСКАЯ ОШИБКА / CRITICAL ERROR: {e}",
            flush=True,
            file=sys.stderr,
        )
        print(f"   {type(e).__name__}: {str(e)}", flush=True, file=sys.stderr)
        import traceback

        traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
