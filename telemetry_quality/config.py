# Benchmark and weight constants for metric interpretation

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Настройка логирования / Logging configuration
logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TELEMETRY_QUALITY_CONFIG"
DEFAULT_CONFIG_NAME = "benchmark_config.json"


# Константы / Constants
class BenchmarkConstants:
    """Константы интерпретации метрик / Metric interpretation constants"""

    # Длина истории значений метрик / Metric history length
    HISTORY_LIMIT = 100

    # Сколько оценок хранить на цели / Assessments kept per goal
    GOAL_ASSESSMENT_LIMIT = 50

    # Окно пропускной способности (мс) / Throughput window (ms)
    THROUGHPUT_WINDOW_MS = 10000.0

    # Перцентиль времени ответа / Response time percentile
    PERCENTILE = 0.95

    # Вес по умолчанию для метрик без записи / Fallback base weight
    DEFAULT_BASE_WEIGHT = 0.3

    # Начальные эталонные максимумы / Initial benchmark maxima
    METRIC_BENCHMARKS = {
        # Time Behavior
        "ART": 1000.0,
        "TPUT": 10.0,
        "NHR": 1000.0,
        "P95RT": 2000.0,
        "RTVar": 250000.0,
        # Activity
        "UIF": 500.0,
        "CDA": 10.0,
        "DTA": 30000.0,
        # Popularity
        "NoU": 200.0,
        "NoS": 200.0,
        "NoV": 500.0,
        "NCPV": 1000.0,
        "NoVu": 10.0,
        "NoSu": 10.0,
        "NoSv": 10.0,
        # Loyalty
        "AD": 30.0,
        "ADu": 30.0,
        "RR": 5.0,
        "DTRv": 30000.0,
        "DTRs": 30000.0,
        # Confidentiality
        "XSS": 1.0,
        "ScanAPI": 1.0,
        "AuthRefused": 1.0,
        "SQLi": 1.0,
        "SQLMod": 1.0,
        # Resource Utilization
        "CpuUsage": 100.0,
        "CpuTime": 100.0,
        "Memory": 100.0,
        "Uptime": 86400.0,
        "Loadavg": 1.0,
        "Network": 2.0,
        # Non-repudiation
        "Ip": 1000.0,
        "ProcCpu": 100.0,
        "ProcMemory": 100.0,
        "Login": 1.0,
        "LoginS": 1.0,
        "ProcLoadavg": 1.0,
        "ProcNetwork": 2.0,
        "MemoryFree": 100.0,
        # Energy Consumption
        "PhysicalFootprint": 1.0,
        "Dom": 1500.0,
        "HTTPNb": 30.0,
        "PageWeight": 1000000.0,
        "Ecoindex": 170000.0,
    }

    # Базовые веса метрик / Metric base weights
    METRIC_BASE_WEIGHTS = {
        "ART": 0.3,
        "TPUT": 0.3,
        "NHR": 0.3,
        "P95RT": 0.3,
        "RTVar": 0.3,
        "UIF": 0.3,
        "CDA": 0.3,
        "DTA": 0.3,
        "NoU": 0.4,
        "NoS": 0.4,
        "NoV": 0.4,
        "NCPV": 0.4,
        "NoVu": 0.4,
        "NoSu": 0.4,
        "NoSv": 0.4,
        "AD": 0.3,
        "ADu": 0.3,
        "RR": 0.3,
        "DTRv": 0.3,
        "DTRs": 0.3,
        "XSS": 1.0,
        "ScanAPI": 1.0,
        "AuthRefused": 1.0,
        "SQLi": 1.0,
        "SQLMod": 1.0,
        "CpuUsage": 0.4,
        "CpuTime": 0.4,
        "Memory": 0.4,
        "Uptime": 0.4,
        "Loadavg": 0.4,
        "Network": 0.4,
        "Ip": 0.4,
        "ProcCpu": 0.4,
        "ProcMemory": 0.4,
        "Login": 0.4,
        "LoginS": 0.4,
        "ProcLoadavg": 0.4,
        "ProcNetwork": 0.4,
        "MemoryFree": 0.4,
        "PhysicalFootprint": 0.3,
        "Dom": 0.3,
        "HTTPNb": 0.3,
        "PageWeight": 0.3,
        "Ecoindex": 0.3,
    }

    # Вес цели, выставляемый маппером / Goal weight set by its mapper
    GOAL_WEIGHTS = {
        "Time Behavior": 1.0 / 3.0,
        "Activity": 0.35,
        "Popularity": 0.4,
        "Loyalty": 0.25,
        "Confidentiality": 0.3,
        "Resource Utilization": 0.4,
        "Non-repudiation": 0.4,
        "Physical Footprint": 1.0 / 3.0,
        "Ecological Footprint": 1.0 / 3.0,
    }

    @classmethod
    def benchmark_for(cls, acronym: str) -> Optional[float]:
        value = cls.METRIC_BENCHMARKS.get(acronym)
        return float(value) if value is not None else None

    @classmethod
    def base_weight_for(cls, acronym: str) -> float:
        return float(cls.METRIC_BASE_WEIGHTS.get(acronym, cls.DEFAULT_BASE_WEIGHT))

    @classmethod
    def goal_weight_for(cls, goal_name: str, default: float = 1.0) -> float:
        return float(cls.GOAL_WEIGHTS.get(goal_name, default))


_DICT_ATTRS = ("METRIC_BENCHMARKS", "METRIC_BASE_WEIGHTS", "GOAL_WEIGHTS")


def load_benchmark_config(config_path: Union[str, Path]) -> bool:
    """
    Загружает внешний JSON-конфиг и применяет известные параметры.
    Loads external JSON config and applies known parameters.

    Returns True when the file was read and applied.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        return False

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (ValueError, OSError) as e:
        logger.warning(f"Failed to read benchmark config '{config_path}': {e}")
        return False

    if not isinstance(data, dict):
        logger.warning(f"Benchmark config '{config_path}' must be a JSON object")
        return False

    # Dict-like settings
    for dict_attr in _DICT_ATTRS:
        cfg_val = data.get(dict_attr)
        current_val = getattr(BenchmarkConstants, dict_attr, None)
        if cfg_val is None:
            continue
        if not isinstance(cfg_val, dict) or not isinstance(current_val, dict):
            logger.warning(f"Ignoring '{dict_attr}' in '{config_path}': expected object")
            continue
        merged = current_val.copy()
        for key, value in cfg_val.items():
            try:
                merged[str(key)] = float(value)
            except (TypeError, ValueError):
                logger.warning(
                    f"Ignoring non-numeric {dict_attr}[{key!r}] in '{config_path}'"
                )
        setattr(BenchmarkConstants, dict_attr, merged)

    # Scalar settings
    for key, value in data.items():
        if key in _DICT_ATTRS:
            continue
        if not (key.isupper() and hasattr(BenchmarkConstants, key)):
            logger.warning(f"Unknown benchmark config key '{key}' in '{config_path}'")
            continue
        current = getattr(BenchmarkConstants, key)
        try:
            coerced = type(current)(value)
        except (TypeError, ValueError):
            logger.warning(
                f"Ignoring {key}={value!r} in '{config_path}': expected {type(current).__name__}"
            )
            continue
        if coerced <= 0:
            logger.warning(f"Ignoring {key}={value!r} in '{config_path}': must be positive")
            continue
        setattr(BenchmarkConstants, key, coerced)

    return True


def snapshot_constants() -> Dict[str, Any]:
    """Копия текущих констант / Copy of the current constants"""
    snapshot: Dict[str, Any] = {}
    for key in dir(BenchmarkConstants):
        if not key.isupper():
            continue
        value = getattr(BenchmarkConstants, key)
        snapshot[key] = value.copy() if isinstance(value, dict) else value
    return snapshot


def restore_constants(snapshot: Dict[str, Any]) -> None:
    for key, value in snapshot.items():
        setattr(
            BenchmarkConstants, key, value.copy() if isinstance(value, dict) else value
        )


def _apply_external_benchmark_config() -> None:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        load_benchmark_config(env_path)
        return
    load_benchmark_config(Path(__file__).with_name(DEFAULT_CONFIG_NAME))


_apply_external_benchmark_config()
