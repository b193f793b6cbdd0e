# User engagement metrics: activity, popularity and loyalty

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from telemetry_quality.errors import InvalidMetricStateError
from telemetry_quality.mappers import GoalMapper
from telemetry_quality.metrics import (
    CompositeMetric,
    DistinctCountMetric,
    DistinctRatioMetric,
    LeafMetric,
    Metric,
    mean,
    safe_ratio,
)
from telemetry_quality.telemetry import (
    ABSENT,
    USER_INTERACTION_EVENTS,
    TelemetryBatch,
    TelemetryRecord,
    normalize_event_name,
    utc_day,
)

SESSION_ID = "app.session.id"
VISIT_ID = "app.visit.id"
USER_ID = "app.user.id"
EVENT_TYPE = "event_type"


def is_navigation_click(record: TelemetryRecord) -> bool:
    """Клик по навигации: event_type=click и имя трассы с 'navigation:'"""
    if record.text(EVENT_TYPE) != "click" or not isinstance(record.name, str):
        return False
    return "navigation:" in record.name.lower()


def _validate_session_count(metric_name: str, value: float) -> float:
    if value == 0:
        raise InvalidMetricStateError(
            f"{metric_name} Metric: Number of sessions cannot be zero."
        )
    return value


# -- Activity ----------------------------------------------------------------


class UIFMetric(LeafMetric):
    """User Interaction Frequency: selected interaction events per session."""

    def __init__(self, selected_events: Optional[Iterable[str]] = None):
        super().__init__(
            "User Interaction Frequency",
            "How frequently users interact with the software during a typical session",
            "interactions/session",
            "UIF",
        )
        events = USER_INTERACTION_EVENTS if selected_events is None else selected_events
        self.selected_events = frozenset(normalize_event_name(event) for event in events)
        self.total_interactions = 0
        self._nb_sessions = 1

    @property
    def nb_sessions(self) -> int:
        return self._nb_sessions

    @nb_sessions.setter
    def nb_sessions(self, value: int) -> None:
        self._nb_sessions = int(_validate_session_count("UIF", value))

    def _compute(self, batch: TelemetryBatch) -> float:
        interactions = sum(
            1
            for record in batch
            if record.text(EVENT_TYPE) is not ABSENT
            and normalize_event_name(record.text(EVENT_TYPE)) in self.selected_events
        )
        sessions = len(batch.distinct(SESSION_ID))
        self.total_interactions = interactions
        # Denominator state stays >= 1 so later reads never divide by zero
        self._nb_sessions = max(sessions, 1)
        return safe_ratio(interactions, sessions)

    def reset_value(self) -> None:
        super().reset_value()
        self.total_interactions = 0
        self._nb_sessions = 1


class CDAMetric(LeafMetric):
    """Click Depth Average: navigation clicks per visit."""

    def __init__(self):
        super().__init__(
            "Click Depth Average",
            "Average number of navigation clicks (page views) per visit",
            "clicks/visit",
            "CDA",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        visits = batch.group_by(VISIT_ID)
        nav_clicks = sum(
            1 for records in visits.values() for record in records
            if is_navigation_click(record)
        )
        return safe_ratio(nav_clicks, len(visits))


class DTAMetric(LeafMetric):
    """Dwell Time Average: mean span (max end - min start) per visit."""

    def __init__(self):
        super().__init__(
            "Dwell Time Average",
            "Average time per visit (dwell time)",
            "ms/visit",
            "DTA",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        dwell_times = []
        for records in batch.group_by(VISIT_ID).values():
            start = min(record.start_ms for record in records)
            end = max(record.end_ms for record in records)
            dwell_times.append(end - start)
        return mean(dwell_times)


# -- Popularity --------------------------------------------------------------


class NoUMetric(DistinctCountMetric):
    attribute = USER_ID

    def __init__(self):
        super().__init__(
            "Number of Users",
            "Number of distinct users using the application",
            "users",
            "NoU",
        )


class NoSMetric(DistinctCountMetric):
    """Number of Sessions; an explicit zero session count is rejected."""

    attribute = SESSION_ID

    def __init__(self):
        super().__init__(
            "Number of Sessions",
            "Number of distinct sessions of the application",
            "sessions",
            "NoS",
        )
        self._nb_sessions = 1

    @property
    def nb_sessions(self) -> int:
        return self._nb_sessions

    @nb_sessions.setter
    def nb_sessions(self, value: int) -> None:
        self._nb_sessions = int(_validate_session_count("NoS", value))

    def _compute(self, batch: TelemetryBatch) -> float:
        count = super()._compute(batch)
        self._nb_sessions = max(int(count), 1)
        return count

    def reset_value(self) -> None:
        super().reset_value()
        self._nb_sessions = 1


class NoVMetric(DistinctCountMetric):
    attribute = VISIT_ID

    def __init__(self):
        super().__init__(
            "Number of Visits",
            "Total number of visits to the application",
            "visits",
            "NoV",
        )


class NCPVMetric(LeafMetric):
    def __init__(self):
        super().__init__(
            "Number of Clicks for Page Views",
            "Total number of navigation clicks (page views) in the application",
            "clicks",
            "NCPV",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        return float(sum(1 for record in batch if is_navigation_click(record)))


class NoVuMetric(DistinctRatioMetric):
    numerator = "NoV"
    denominator = "NoU"

    def __init__(self):
        super().__init__(
            "Average Visits per User",
            "Average number of visits per user",
            "visits/user",
            "NoVu",
        )
        self.children["NoV"] = NoVMetric()
        self.children["NoU"] = NoUMetric()


class NoSuMetric(DistinctRatioMetric):
    numerator = "NoS"
    denominator = "NoU"

    def __init__(self):
        super().__init__(
            "Average Sessions per User",
            "Average number of sessions per user",
            "sessions/user",
            "NoSu",
        )
        self.children["NoS"] = NoSMetric()
        self.children["NoU"] = NoUMetric()


class NoSvMetric(DistinctRatioMetric):
    numerator = "NoS"
    denominator = "NoV"

    def __init__(self):
        super().__init__(
            "Average Sessions per Visit",
            "Average number of sessions per visit",
            "sessions/visit",
            "NoSv",
        )
        self.children["NoS"] = NoSMetric()
        self.children["NoV"] = NoVMetric()


# -- Loyalty -----------------------------------------------------------------


class ADMetric(LeafMetric):
    """Active Days: distinct UTC days with at least one record."""

    def __init__(self):
        super().__init__(
            "Active Days",
            "Number of distinct days users visited the application",
            "days",
            "AD",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        days = {utc_day(record.start_ms) for record in batch if record.start_time is not None}
        days.discard(None)
        return float(len(days))


class _PerUserMetric(CompositeMetric):
    """Per-user aggregate divided by the number of users (NoU child)."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.children["NoU"] = NoUMetric()
        self._user_total = 0.0

    def _compute(self, batch: TelemetryBatch) -> float:
        self._user_total = self.user_total(batch)
        return super()._compute(batch)

    def user_total(self, batch: TelemetryBatch) -> float:
        raise NotImplementedError

    def combine(self, values: Dict[str, float]) -> float:
        return safe_ratio(self._user_total, values["NoU"])


class ADuMetric(_PerUserMetric):
    def __init__(self):
        super().__init__(
            "Active Days per User",
            "Average number of active days per user on the application",
            "days/user",
            "ADu",
        )

    def user_total(self, batch: TelemetryBatch) -> float:
        return float(
            sum(
                len({utc_day(record.start_ms) for record in records} - {None})
                for records in batch.group_by(USER_ID).values()
            )
        )


class RRMetric(_PerUserMetric):
    """Return Rate: revisits after the first visit, per user."""

    def __init__(self):
        super().__init__(
            "Return Rate",
            "Average number of times a user revisited the application after their first visit",
            "returns/user",
            "RR",
        )

    def user_total(self, batch: TelemetryBatch) -> float:
        total = 0
        for records in batch.group_by(USER_ID).values():
            visits = {record.key(VISIT_ID) for record in records} - {ABSENT}
            if visits:
                total += len(visits) - 1
        return float(total)


class _DwellRetentionMetric(_PerUserMetric):
    group_key = ""

    def user_total(self, batch: TelemetryBatch) -> float:
        total = 0.0
        for records in batch.group_by(USER_ID).values():
            dwell_by_group: Dict[object, float] = defaultdict(float)
            for record in records:
                group = record.key(self.group_key)
                if group is ABSENT:
                    continue
                dwell_by_group[group] += record.end_ms - record.start_ms
            total += mean(list(dwell_by_group.values()))
        return total


class DTRvMetric(_DwellRetentionMetric):
    group_key = VISIT_ID

    def __init__(self):
        super().__init__(
            "Dwell Time Retention per Visit",
            "Average cumulative dwell time per user aggregated over visits",
            "ms/user",
            "DTRv",
        )


class DTRsMetric(_DwellRetentionMetric):
    group_key = SESSION_ID

    def __init__(self):
        super().__init__(
            "Dwell Time Retention per Session",
            "Average cumulative dwell time per user aggregated over sessions",
            "ms/user",
            "DTRs",
        )


# -- Mappers -----------------------------------------------------------------


class ActivityMapper(GoalMapper):
    goal_name = "Activity"
    application_type = "frontend"

    def build_metrics(self) -> List[Metric]:
        return [UIFMetric(), CDAMetric(), DTAMetric()]


class PopularityMapper(GoalMapper):
    goal_name = "Popularity"
    application_type = "frontend"

    def build_metrics(self) -> List[Metric]:
        return [
            NoUMetric(),
            NoSMetric(),
            NoVMetric(),
            NCPVMetric(),
            NoVuMetric(),
            NoSuMetric(),
            NoSvMetric(),
        ]


class LoyaltyMapper(GoalMapper):
    goal_name = "Loyalty"
    application_type = "frontend"

    def build_metrics(self) -> List[Metric]:
        return [ADMetric(), ADuMetric(), RRMetric(), DTRvMetric(), DTRsMetric()]
