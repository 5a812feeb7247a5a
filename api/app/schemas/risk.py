"""Pydantic schemas for the risk register API.

Enum-valued inputs are plain strings here; the services validate them
against ``app.core.risk_constants`` so every error carries the field name.
"""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict

from app.schemas.user import UserBrief


# ============================================================================
# Risk
# ============================================================================

class RiskCreate(BaseModel):
    """Schema for creating a risk. Level fields are derived, never accepted."""
    model_config = ConfigDict(extra="forbid")

    title: str
    description: str
    category: str
    probability: int
    impact: int
    residual_probability: Optional[int] = None
    residual_impact: Optional[int] = None
    treatment: Optional[str] = None
    treatment_plan: Optional[str] = None
    status: Optional[str] = None
    monitoring_frequency: Optional[str] = None
    next_review_date: Optional[datetime] = None
    risk_appetite: Optional[str] = None
    responsible_id: Optional[int] = None


class RiskUpdate(BaseModel):
    """Partial update; only fields present in the body are applied."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    probability: Optional[int] = None
    impact: Optional[int] = None
    residual_probability: Optional[int] = None
    residual_impact: Optional[int] = None
    treatment: Optional[str] = None
    treatment_plan: Optional[str] = None
    status: Optional[str] = None
    monitoring_frequency: Optional[str] = None
    next_review_date: Optional[datetime] = None
    risk_appetite: Optional[str] = None
    responsible_id: Optional[int] = None


class RiskSummary(BaseModel):
    """Risk row as shown in lists and dashboards."""
    model_config = ConfigDict(from_attributes=True)

    risk_id: int
    code: str
    title: str
    category: str
    probability: int
    impact: int
    risk_score: int
    risk_level: str
    residual_probability: Optional[int] = None
    residual_impact: Optional[int] = None
    residual_risk_score: Optional[int] = None
    residual_risk_level: Optional[str] = None
    treatment: Optional[str] = None
    status: str
    monitoring_frequency: Optional[str] = None
    last_review_date: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    responsible_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Treatments
# ============================================================================

class TreatmentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str
    control_implementation_id: Optional[int] = None


class TreatmentUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[str] = None
    description: Optional[str] = None


class TreatmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    treatment_id: int
    risk_id: int
    description: str
    status: str
    control_implementation_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Review history
# ============================================================================

class ReviewCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    probability: int
    impact: int
    status: str
    residual_probability: Optional[int] = None
    residual_impact: Optional[int] = None
    review_notes: Optional[str] = None


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_id: int
    risk_id: int
    probability: int
    impact: int
    risk_score: int
    risk_level: str
    residual_probability: Optional[int] = None
    residual_impact: Optional[int] = None
    residual_risk_level: Optional[str] = None
    status: str
    review_notes: Optional[str] = None
    reviewed_by_id: Optional[int] = None
    created_at: datetime


class TrendPoint(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_id: int
    reviewed_at: datetime
    probability: int
    impact: int
    risk_score: int
    risk_level: str
    residual_risk_score: Optional[int] = None
    residual_risk_level: Optional[str] = None
    status: str


# ============================================================================
# Detail and dashboard responses
# ============================================================================

class RiskDetail(RiskSummary):
    """Risk with its treatments and review history."""
    description: str
    treatment_plan: Optional[str] = None
    risk_appetite: Optional[str] = None
    created_by_id: Optional[int] = None
    responsible: Optional[UserBrief] = None
    treatments: List[TreatmentResponse] = []
    reviews: List[ReviewResponse] = []


class MatrixCell(BaseModel):
    probability: int
    impact: int
    score: int
    risk_level: str
    count: int


class MatrixResponse(BaseModel):
    total: int
    cells: List[MatrixCell]
    distribution: Dict[str, int]


class DeletedResponse(BaseModel):
    deleted: bool = True
