"""telemetry_quality package."""

from telemetry_quality.application import ApplicationMetadata, load_application_metadata
from telemetry_quality.assessment import (
    Assessment,
    AssessmentEngine,
    AssessmentReport,
    AssessmentStrategy,
    GoalScore,
    MetricAssessment,
    WeightedAverageStrategy,
)
from telemetry_quality.calibration import build_calibration_report, load_expert_labels
from telemetry_quality.catalog import all_catalog_metrics, build_default_registry
from telemetry_quality.config import BenchmarkConstants, load_benchmark_config
from telemetry_quality.errors import (
    GoalStructureError,
    InvalidMetricStateError,
    MapperMismatchError,
    NoMetricsForSelectionError,
    QualityAssessmentError,
    TelemetryFormatError,
)
from telemetry_quality.goals import CompositeGoal, Goal, GoalTree, LeafGoal
from telemetry_quality.interpreters import MetricInterpreter
from telemetry_quality.mappers import GoalMapper, MapperRegistry, map_goal, map_goal_tree
from telemetry_quality.metrics import CompositeMetric, LeafMetric, Metric, MetricHistory
from telemetry_quality.quality_models import (
    ISO25010Model,
    QualityModel,
    build_iso25010_model,
    get_quality_model,
    select_model_by_purpose,
)
from telemetry_quality.reporting import print_results, save_text_report
from telemetry_quality.selection import (
    NameBasedFiltering,
    Threshold,
    ThresholdType,
    WeightBasedFiltering,
    extract_required_metrics,
)
from telemetry_quality.service import MetricHistoryStore, QualityAssessmentService
from telemetry_quality.telemetry import (
    ABSENT,
    TelemetryBatch,
    TelemetryRecord,
    TelemetryType,
    load_telemetry_batch,
)
from telemetry_quality.tuning import suggest_benchmarks

__all__ = [
    "ABSENT",
    "ApplicationMetadata",
    "Assessment",
    "AssessmentEngine",
    "AssessmentReport",
    "AssessmentStrategy",
    "BenchmarkConstants",
    "CompositeGoal",
    "CompositeMetric",
    "Goal",
    "GoalMapper",
    "GoalScore",
    "GoalStructureError",
    "GoalTree",
    "ISO25010Model",
    "InvalidMetricStateError",
    "LeafGoal",
    "LeafMetric",
    "MapperMismatchError",
    "MapperRegistry",
    "Metric",
    "MetricAssessment",
    "MetricHistory",
    "MetricHistoryStore",
    "MetricInterpreter",
    "NameBasedFiltering",
    "NoMetricsForSelectionError",
    "QualityAssessmentError",
    "QualityAssessmentService",
    "QualityModel",
    "TelemetryBatch",
    "TelemetryFormatError",
    "TelemetryRecord",
    "TelemetryType",
    "Threshold",
    "ThresholdType",
    "WeightBasedFiltering",
    "WeightedAverageStrategy",
    "all_catalog_metrics",
    "build_calibration_report",
    "build_default_registry",
    "build_iso25010_model",
    "extract_required_metrics",
    "get_quality_model",
    "load_application_metadata",
    "load_benchmark_config",
    "load_expert_labels",
    "load_telemetry_batch",
    "map_goal",
    "map_goal_tree",
    "print_results",
    "save_text_report",
    "select_model_by_purpose",
    "suggest_benchmarks",
]
