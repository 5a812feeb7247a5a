"""Risk scoring for the risk register.

Implements:
- Probability x impact score
- Score band lookup (low / medium / high / critical)
- Residual level, where a 0 on either axis means "not evaluated"
- Field-level range validation for assessment pairs

The bands are a business-rule calibration shared with existing reports and
must stay exactly as listed in SCORE_BANDS.
"""
from typing import Optional, Tuple

from app.core.exceptions import ValidationError
from app.core.risk_constants import (
    MAX_SCALE,
    MIN_SCALE,
    RESIDUAL_NOT_EVALUATED,
    RiskLevel,
)


# (lowest score, highest score, level), inclusive on both ends
SCORE_BANDS: Tuple[Tuple[int, int, RiskLevel], ...] = (
    (1, 4, RiskLevel.LOW),
    (5, 9, RiskLevel.MEDIUM),
    (10, 16, RiskLevel.HIGH),
    (17, 25, RiskLevel.CRITICAL),
)


def _check_axis(value, field: str, lower: int) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field)
    if value < lower or value > MAX_SCALE:
        raise ValidationError(
            f"{field} must be between {lower} and {MAX_SCALE}", field=field
        )
    return value


def validate_assessment(probability, impact, field_prefix: str = "") -> Tuple[int, int]:
    """Validate an inherent (probability, impact) pair, both in [1, 5]."""
    return (
        _check_axis(probability, f"{field_prefix}probability", MIN_SCALE),
        _check_axis(impact, f"{field_prefix}impact", MIN_SCALE),
    )


def validate_residual(
    residual_probability, residual_impact
) -> Tuple[Optional[int], Optional[int]]:
    """Validate a residual pair; each side is None or in [0, 5]."""
    if residual_probability is not None:
        _check_axis(residual_probability, "residual_probability", RESIDUAL_NOT_EVALUATED)
    if residual_impact is not None:
        _check_axis(residual_impact, "residual_impact", RESIDUAL_NOT_EVALUATED)
    return residual_probability, residual_impact


def calculate_risk_score(probability: int, impact: int) -> int:
    """Raw score: probability multiplied by impact."""
    return probability * impact


def risk_level(probability: int, impact: int) -> RiskLevel:
    """
    Map an inherent (probability, impact) pair to its risk level.

    Args:
        probability: Likelihood rating, 1-5
        impact: Consequence rating, 1-5

    Returns:
        RiskLevel for score = probability * impact:
        1-4 LOW, 5-9 MEDIUM, 10-16 HIGH, 17-25 CRITICAL

    Raises:
        ValidationError: If either input is outside [1, 5]
    """
    validate_assessment(probability, impact)
    score = calculate_risk_score(probability, impact)
    for lowest, highest, level in SCORE_BANDS:
        if lowest <= score <= highest:
            return level
    # Unreachable over [1,5] x [1,5]
    raise ValidationError(f"Score {score} falls outside the risk matrix")


def residual_risk_level(
    residual_probability: Optional[int], residual_impact: Optional[int]
) -> Optional[RiskLevel]:
    """
    Level of the residual pair, or None when residual risk is not evaluated.

    A residual pair is "not evaluated" when either side is None or 0; such
    pairs are never fed through the score bands.
    """
    if not residual_probability or not residual_impact:
        return None
    return risk_level(residual_probability, residual_impact)


def residual_risk_score(
    residual_probability: Optional[int], residual_impact: Optional[int]
) -> Optional[int]:
    """Residual score, or None when residual risk is not evaluated."""
    if not residual_probability or not residual_impact:
        return None
    return calculate_risk_score(residual_probability, residual_impact)
