# Security metrics: confidentiality and non-repudiation

import re
from collections import OrderedDict
from typing import Dict, List

from telemetry_quality.mappers import GoalMapper
from telemetry_quality.metrics import AttributeAverageMetric, LeafMetric, Metric, mean, safe_ratio
from telemetry_quality.performance_metrics import LoadavgMetric, NetworkMetric
from telemetry_quality.telemetry import ABSENT, TelemetryBatch, TelemetryRecord

HTTP_TARGET = "http.target"
HTTP_URL = "http.url"
HTTP_METHOD = "http.method"
STATUS_CODE = "http.status_code"
HOST_IP = "net.host.ip"
PEER_IP = "net.peer.ip"
DB_STATEMENT = "db.statement"
USER_ID = "app.user.id"
SESSION_ID = "app.session.id"

REFUSED_STATUSES = (401, 403)

XSS_PATTERNS = ("<script", "%3cscript", "onerror=", "javascript:")

SQL_INJECTION_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"(\bor\b|\band\b)\s+['\"]?\d+['\"]?\s*=\s*['\"]?\d+['\"]?",
        r"--|#|/\*",
        r"(;.*)",
        r"\b(UNION|SELECT|DROP|INSERT|DELETE|UPDATE|EXEC|XP_)\b",
    )
)

MODIFYING_KEYWORDS = ("INSERT", "UPDATE", "DELETE", "DROP", "ALTER")

# Thresholds for flagging an IP as an API scanner
SCAN_MIN_REQUESTS = 10
SCAN_NOT_FOUND_RATIO = 0.5
SCAN_DISTINCT_TARGETS = 20

LOGIN_MARKERS = ("login", "auth")


def status_code(record: TelemetryRecord):
    number = record.number(STATUS_CODE)
    return ABSENT if number is ABSENT else int(number)


def is_refused(record: TelemetryRecord) -> bool:
    return status_code(record) in REFUSED_STATUSES


def is_login_attempt(record: TelemetryRecord) -> bool:
    method = record.text(HTTP_METHOD)
    url = record.text(HTTP_URL)
    if method is ABSENT or url is ABSENT or method.upper() != "POST":
        return False
    url = url.lower()
    return any(marker in url for marker in LOGIN_MARKERS)


def login_success_ratio(records: List[TelemetryRecord]) -> float:
    attempts = [record for record in records if is_login_attempt(record)]
    succeeded = sum(1 for record in attempts if status_code(record) == 200)
    return safe_ratio(succeeded, len(attempts))


# -- Confidentiality ---------------------------------------------------------


class XSSMetric(LeafMetric):
    """Share of requests whose target carries a script injection marker."""

    def __init__(self):
        super().__init__(
            "Cross-Site Scripting Attempts",
            "Ratio of requests whose target contains an XSS payload",
            "ratio",
            "XSS",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        targets = [record.get(HTTP_TARGET) for record in batch]
        targets = [target.lower() for target in targets if isinstance(target, str)]
        suspicious = sum(
            1 for target in targets if any(marker in target for marker in XSS_PATTERNS)
        )
        return safe_ratio(suspicious, len(targets))


class ScanAPIMetric(LeafMetric):
    """
    Доля IP-адресов, сканирующих API.
    Share of client IPs that behave like API scanners.

    An IP is suspicious when it sent more than ``SCAN_MIN_REQUESTS`` requests
    and either most of them hit 404 or it probed many distinct targets.
    """

    def __init__(self):
        super().__init__(
            "API Scanning",
            "Ratio of IP addresses showing API scanning behaviour",
            "ratio",
            "ScanAPI",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        by_ip: "OrderedDict[object, List[TelemetryRecord]]" = OrderedDict()
        for record in batch:
            ip = record.key(HOST_IP)
            by_ip.setdefault("unknown" if ip is ABSENT else ip, []).append(record)

        suspicious = 0
        for records in by_ip.values():
            if len(records) <= SCAN_MIN_REQUESTS:
                continue
            not_found = sum(1 for record in records if status_code(record) == 404)
            targets = {record.key(HTTP_TARGET) for record in records} - {ABSENT}
            if (
                not_found / len(records) > SCAN_NOT_FOUND_RATIO
                or len(targets) > SCAN_DISTINCT_TARGETS
            ):
                suspicious += 1
        return safe_ratio(suspicious, len(by_ip))


class AuthRefusedMetric(LeafMetric):
    def __init__(self):
        super().__init__(
            "Refused Authorizations",
            "Ratio of requests refused with 401 or 403",
            "ratio",
            "AuthRefused",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        refused = sum(
            1 for record in batch if record.has(HTTP_TARGET) and is_refused(record)
        )
        return safe_ratio(refused, len(batch))


class SQLiMetric(LeafMetric):
    """Share of records whose database statement matches an injection pattern."""

    def __init__(self):
        super().__init__(
            "SQL Injection Attempts",
            "Ratio of database statements matching SQL injection patterns",
            "ratio",
            "SQLi",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        matched = 0
        for record in batch:
            statement = record.text(DB_STATEMENT)
            if statement is ABSENT:
                continue
            if any(pattern.search(statement) for pattern in SQL_INJECTION_PATTERNS):
                matched += 1
        return safe_ratio(matched, len(batch))


class SQLModMetric(LeafMetric):
    """Modifying statements issued without an authenticated user."""

    def __init__(self):
        super().__init__(
            "Unauthenticated SQL Modifications",
            "Ratio of data-modifying statements issued without authentication",
            "ratio",
            "SQLMod",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        modifying = 0
        unauthenticated = 0
        for record in batch:
            statement = record.text(DB_STATEMENT)
            if statement is ABSENT:
                continue
            statement = statement.upper()
            if not any(keyword in statement for keyword in MODIFYING_KEYWORDS):
                continue
            modifying += 1
            if not record.has(USER_ID) or is_refused(record):
                unauthenticated += 1
        return safe_ratio(unauthenticated, modifying)


# -- Non-repudiation ---------------------------------------------------------


class IpMetric(LeafMetric):
    def __init__(self):
        super().__init__(
            "Traced Client IPs",
            "Number of HTTP requests carrying the client IP address",
            "requests",
            "Ip",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        return float(sum(1 for record in batch if record.is_http and record.has(PEER_IP)))


class ProcCpuMetric(AttributeAverageMetric):
    attribute = "app.cpu.usage"

    def __init__(self):
        super().__init__(
            "Process CPU Usage",
            "Average CPU usage of the application process",
            "%",
            "ProcCpu",
        )


class ProcMemoryMetric(AttributeAverageMetric):
    attribute = "app.memory"

    def __init__(self):
        super().__init__(
            "Process Memory",
            "Average memory usage of the application process",
            "%",
            "ProcMemory",
        )


class MemoryFreeMetric(AttributeAverageMetric):
    attribute = "app.memory.free"

    def __init__(self):
        super().__init__(
            "Free Memory",
            "Average free memory reported by the application",
            "%",
            "MemoryFree",
        )


class LoginMetric(LeafMetric):
    """Share of login attempts (POST to a login/auth URL) answered with 200."""

    def __init__(self):
        super().__init__(
            "Login Success Rate",
            "Ratio of successful login attempts",
            "ratio",
            "Login",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        return login_success_ratio(list(batch))


class LoginSMetric(LeafMetric):
    """Login success rate computed per session, then averaged."""

    def __init__(self):
        super().__init__(
            "Login Success Rate per Session",
            "Average per-session ratio of successful login attempts",
            "ratio",
            "LoginS",
        )

    def _compute(self, batch: TelemetryBatch) -> float:
        ratios: Dict[object, float] = {}
        for session, records in batch.group_by(SESSION_ID).items():
            if any(is_login_attempt(record) for record in records):
                ratios[session] = login_success_ratio(records)
        return mean(list(ratios.values()))


# -- Mappers -----------------------------------------------------------------


class ConfidentialityMapper(GoalMapper):
    goal_name = "Confidentiality"
    application_type = "backend"

    def build_metrics(self) -> List[Metric]:
        return [
            XSSMetric(),
            ScanAPIMetric(),
            AuthRefusedMetric(),
            SQLiMetric(),
            SQLModMetric(),
        ]


class NonRepudiationMapper(GoalMapper):
    goal_name = "Non-repudiation"
    application_type = "backend"

    def build_metrics(self) -> List[Metric]:
        return [
            IpMetric(),
            ProcCpuMetric(),
            ProcMemoryMetric(),
            LoginMetric(),
            LoginSMetric(),
            LoadavgMetric("ProcLoadavg"),
            NetworkMetric("ProcNetwork", "app.network.interfaces"),
            MemoryFreeMetric(),
        ]
