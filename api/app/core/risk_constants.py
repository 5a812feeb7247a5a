"""Canonical enumerations for the risk register.

Single source of truth for every status / category value the engine
accepts. Database CHECK constraints, request schemas and service-level
validation are all built from these enums.
"""
import enum

from app.core.exceptions import ValidationError


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskStatus(str, enum.Enum):
    IDENTIFIED = "identified"
    ANALYZING = "analyzing"
    TREATING = "treating"
    MONITORING = "monitoring"
    CLOSED = "closed"


class RiskCategory(str, enum.Enum):
    STRATEGIC = "strategic"
    OPERATIONAL = "operational"
    COMPLIANCE = "compliance"
    FINANCIAL = "financial"
    TECHNOLOGY = "technology"
    LEGAL = "legal"


class TreatmentStrategy(str, enum.Enum):
    ACCEPT = "accept"
    MITIGATE = "mitigate"
    TRANSFER = "transfer"
    AVOID = "avoid"


class TreatmentStatus(str, enum.Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MonitoringFrequency(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"


INITIAL_RISK_STATUS = RiskStatus.IDENTIFIED
TERMINAL_RISK_STATUSES = frozenset({RiskStatus.CLOSED})
INITIAL_TREATMENT_STATUS = TreatmentStatus.PLANNED

# Highest first, for dashboards and distribution output
RISK_LEVEL_ORDER = (
    RiskLevel.CRITICAL,
    RiskLevel.HIGH,
    RiskLevel.MEDIUM,
    RiskLevel.LOW,
)

# Assessment scale bounds
MIN_SCALE = 1
MAX_SCALE = 5
RESIDUAL_NOT_EVALUATED = 0


def enum_values(enum_cls) -> list:
    """Plain string values of an enum, in declaration order."""
    return [member.value for member in enum_cls]


def sql_in_list(enum_cls) -> str:
    """Render enum values for a CHECK constraint IN (...) clause."""
    return ", ".join(f"'{value}'" for value in enum_values(enum_cls))


def parse_enum(enum_cls, value, field: str):
    """Coerce a raw value to ``enum_cls`` or raise a field-level ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(enum_values(enum_cls))
        raise ValidationError(
            f"Invalid {field} '{value}'. Must be one of: {allowed}",
            field=field,
        )
