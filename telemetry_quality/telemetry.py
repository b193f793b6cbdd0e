# Telemetry records, immutable batches and time normalization

import json
import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from telemetry_quality.errors import TelemetryFormatError

logger = logging.getLogger(__name__)


class TelemetryType(str, Enum):
    """Типы телеметрии / Telemetry types"""

    TRACING = "tracing"
    LOGGING = "logging"
    METRICS = "metrics"


class _Absent:
    """Явный маркер отсутствующего атрибута / Explicit missing-attribute marker"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self):
        return (_Absent, ())


ABSENT = _Absent()


def normalize_event_name(name: str) -> str:
    """CLICK / DBL_CLICK -> click / dblclick"""
    return str(name).lower().replace("_", "")


# Browser events that count as user interactions
USER_INTERACTION_EVENTS = tuple(
    normalize_event_name(name)
    for name in (
        "ABORT", "ANIMATION_CANCEL", "ANIMATION_END", "ANIMATION_ITERATION",
        "ANIMATION_START", "AUX_CLICK", "BLUR", "CAN_PLAY", "CAN_PLAY_THROUGH",
        "CHANGE", "CLICK", "CLOSE", "CONTEXT_MENU", "COPY", "CUE_CHANGE", "CUT",
        "DBL_CLICK", "DRAG", "DRAG_END", "DRAG_ENTER", "DRAG_LEAVE", "DRAG_OVER",
        "DRAG_START", "DROP", "DURATION_CHANGE", "EMPTIED", "ENDED", "ERROR",
        "FOCUS", "FOCUS_IN", "FOCUS_OUT", "FULLSCREEN_CHANGE", "FULLSCREEN_ERROR",
        "GOT_POINTER_CAPTURE", "INPUT", "INVALID", "KEY_DOWN", "KEY_PRESS",
        "KEY_UP", "LOAD", "LOADED_DATA", "LOADED_METADATA", "LOAD_START",
        "LOST_POINTER_CAPTURE", "MOUSE_DOWN", "MOUSE_ENTER", "MOUSE_LEAVE",
        "MOUSE_MOVE", "MOUSE_OUT", "MOUSE_OVER", "MOUSE_UP", "PASTE", "PAUSE",
        "PLAY", "PLAYING", "POINTER_CANCEL", "POINTER_DOWN", "POINTER_ENTER",
        "POINTER_LEAVE", "POINTER_MOVE", "POINTER_OUT", "POINTER_OVER",
        "POINTER_UP", "PROGRESS", "RATE_CHANGE", "RESET", "RESIZE", "SCROLL",
        "SECURITY_POLICY_VIOLATION", "SEEKED", "SEEKING", "SELECT",
        "SELECTION_CHANGE", "SELECT_START", "STALLED", "SUBMIT", "SUSPEND",
        "TIME_UPDATE", "TOGGLE", "TOUCH_CANCEL", "TOUCH_END", "TOUCH_MOVE",
        "TOUCH_START", "TRANSITION_CANCEL", "TRANSITION_END", "TRANSITION_RUN",
        "TRANSITION_START", "VOLUME_CHANGE", "WAITING", "WHEEL",
    )
)


def to_ms(value: Any, default: float = 0.0) -> float:
    """
    Приводит время к миллисекундам.
    Converts a timestamp or duration to milliseconds.

    Accepts a plain millisecond number (or numeric string) or a
    ``[seconds, nanoseconds]`` pair. Anything else yields ``default``.
    """
    if value is None or value is ABSENT or isinstance(value, bool):
        return default
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            return default
        seconds = _to_number(value[0])
        nanos = _to_number(value[1])
        if seconds is None or nanos is None:
            return default
        return seconds * 1000.0 + nanos / 1e6
    number = _to_number(value)
    return default if number is None else number


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def utc_day(timestamp_ms: float) -> Optional[str]:
    """ISO date (UTC) of a millisecond timestamp, None when out of range."""
    try:
        moment = datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return moment.date().isoformat()


def _hashable(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(_hashable(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, default=str)
    return value


@dataclass(frozen=True)
class TelemetryRecord:
    """Одна запись телеметрии / Single telemetry record (span or event)"""

    attributes: Mapping[str, Any] = field(default_factory=dict)
    name: Optional[str] = None
    start_time: Any = None
    end_time: Any = None
    duration: Any = None

    def __post_init__(self):
        # Frozen read-only view, callers cannot mutate the batch through it
        object.__setattr__(
            self, "attributes", MappingProxyType(dict(self.attributes or {}))
        )

    # -- typed accessors ------------------------------------------------

    def get(self, key: str) -> Any:
        """Значение атрибута или ABSENT / Attribute value or ABSENT"""
        value = self.attributes.get(key)
        if value is None or value == "":
            return ABSENT
        return value

    def has(self, key: str) -> bool:
        return self.get(key) is not ABSENT

    def number(self, key: str) -> Any:
        """Числовой атрибут или ABSENT / Numeric attribute or ABSENT"""
        number = _to_number(self.get(key))
        return ABSENT if number is None else number

    def text(self, key: str) -> Any:
        value = self.get(key)
        if value is ABSENT:
            return ABSENT
        return str(value)

    def key(self, key: str) -> Any:
        """Hashable attribute value for grouping, or ABSENT."""
        value = self.get(key)
        return ABSENT if value is ABSENT else _hashable(value)

    # -- timing ---------------------------------------------------------

    @property
    def start_ms(self) -> float:
        return to_ms(self.start_time)

    @property
    def end_ms(self) -> float:
        """End time, falling back to start + duration, then to start."""
        if self.end_time is not None:
            return to_ms(self.end_time, self.start_ms)
        if self.duration is not None:
            return self.start_ms + to_ms(self.duration)
        return self.start_ms

    @property
    def duration_ms(self) -> float:
        if self.duration is not None:
            return to_ms(self.duration)
        if self.start_time is not None and self.end_time is not None:
            return to_ms(self.end_time) - to_ms(self.start_time)
        return 0.0

    @property
    def is_http(self) -> bool:
        return self.has("http.method")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TelemetryRecord":
        if not isinstance(data, Mapping):
            raise TelemetryFormatError(
                f"telemetry record must be an object, got {type(data).__name__}"
            )
        attributes = data.get("attributes") or {}
        if not isinstance(attributes, Mapping):
            raise TelemetryFormatError("telemetry record 'attributes' must be an object")
        return cls(
            attributes=attributes,
            name=data.get("name"),
            start_time=_first_present(data, "startTime", "start_time"),
            end_time=_first_present(data, "endTime", "end_time"),
            duration=data.get("duration"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"attributes": dict(self.attributes)}
        if self.name is not None:
            payload["name"] = self.name
        if self.start_time is not None:
            payload["startTime"] = self.start_time
        if self.end_time is not None:
            payload["endTime"] = self.end_time
        if self.duration is not None:
            payload["duration"] = self.duration
        return payload


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


class TelemetryBatch(Sequence):
    """
    Неизменяемый пакет телеметрии.
    Immutable, ordered batch of telemetry records passed to every metric.
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[TelemetryRecord] = ()):
        items = []
        for record in records:
            if isinstance(record, TelemetryRecord):
                items.append(record)
            else:
                items.append(TelemetryRecord.from_dict(record))
        self._records = tuple(items)

    @classmethod
    def coerce(
        cls, records: Union["TelemetryBatch", Iterable[Any], None]
    ) -> "TelemetryBatch":
        if isinstance(records, TelemetryBatch):
            return records
        return cls(records or ())

    def __getitem__(self, index):
        if isinstance(index, slice):
            return TelemetryBatch(self._records[index])
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TelemetryRecord]:
        return iter(self._records)

    def __eq__(self, other) -> bool:
        if isinstance(other, TelemetryBatch):
            return self._records == other._records
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"TelemetryBatch({len(self._records)} records)"

    def filter(self, predicate: Callable[[TelemetryRecord], bool]) -> "TelemetryBatch":
        return TelemetryBatch(record for record in self._records if predicate(record))

    def http_records(self) -> "TelemetryBatch":
        return self.filter(lambda record: record.is_http)

    def distinct(self, key: str) -> set:
        """Различные значения атрибута / Distinct present values of an attribute"""
        values = set()
        for record in self._records:
            value = record.key(key)
            if value is not ABSENT:
                values.add(value)
        return values

    def group_by(self, key: str) -> "OrderedDict[Any, List[TelemetryRecord]]":
        """Записи, сгруппированные по ключу; записи без ключа пропускаются."""
        groups: "OrderedDict[Any, List[TelemetryRecord]]" = OrderedDict()
        for record in self._records:
            value = record.key(key)
            if value is ABSENT:
                continue
            groups.setdefault(value, []).append(record)
        return groups

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self._records]


def _records_from_payload(payload: Any, source: str) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("records", "telemetry", "spans"):
            if isinstance(payload.get(key), list):
                return payload[key]
        if "attributes" in payload:
            return [payload]
    raise TelemetryFormatError(
        f"telemetry file '{source}' must contain a list of records"
    )


def load_telemetry_batch(path: Union[str, Path]) -> TelemetryBatch:
    """
    Загружает телеметрию из JSON или JSON Lines.
    Loads telemetry from a JSON document or a JSON Lines file.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"telemetry file not found: {path}")

    text = path.read_text(encoding="utf-8")
    stripped = text.strip()
    if not stripped:
        return TelemetryBatch()

    raw_records: List[Any]
    if path.suffix.lower() == ".jsonl":
        raw_records = []
        for line_no, line in enumerate(text.splitlines(), 1):
            line = line.strip()
            if not line:
                continue
            try:
                raw_records.append(json.loads(line))
            except ValueError as e:
                logger.warning(f"Skipping malformed telemetry line {line_no} in '{path}': {e}")
    else:
        try:
            payload = json.loads(stripped)
        except ValueError as e:
            raise TelemetryFormatError(f"invalid telemetry JSON in '{path}': {e}") from e
        raw_records = _records_from_payload(payload, str(path))

    records: List[TelemetryRecord] = []
    for index, item in enumerate(raw_records):
        try:
            records.append(TelemetryRecord.from_dict(item))
        except TelemetryFormatError as e:
            logger.warning(f"Skipping telemetry record #{index} in '{path}': {e}")
    return TelemetryBatch(records)
