from decimal import Decimal
from enum import Enum


class PlanType(Enum):
    SIP = "SIP"
    SWP = "SWP"
    STP = "STP"


class Frequency(Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"


class PlanStatus(Enum):
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


class ExecutionStatus(Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class RunStatus(Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class RunTrigger(Enum):
    SCHEDULE = "SCHEDULE"
    MANUAL = "MANUAL"
    CLI = "CLI"


class NotificationType(Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class PriceSource(Enum):
    LOCAL = "local"
    MFAPI = "mfapi"


# Allowed plan status transitions; CANCELLED is terminal
PLAN_STATUS_TRANSITIONS = {
    PlanStatus.PENDING: frozenset({PlanStatus.PENDING, PlanStatus.CANCELLED}),
    PlanStatus.CANCELLED: frozenset(),
}

MONEY_QUANTUM = Decimal("0.01")
UNITS_QUANTUM = Decimal("0.000001")

MIN_AMOUNT = Decimal("0")
MAX_AMOUNT = Decimal("99999999.99")

ALREADY_LOCKED_MESSAGE = "Already locked"
EXECUTED_MESSAGE = "Executed successfully"

DEFAULT_STALE_LOCK_MINUTES = 30
DEFAULT_FAILURES_LIMIT = 50
MAX_FAILURES_LIMIT = 500
DEFAULT_STATISTICS_DAYS = 30
DATE_FORMAT = "%Y-%m-%d"
