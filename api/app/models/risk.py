"""Risk register models.

Implements:
- Risk: current assessment, residual assessment, treatment intent, lifecycle
- RiskTreatment: remediation actions owned by a risk
- RiskReviewEntry: append-only review snapshots owned by a risk

Risk levels are stored for filtering and reporting but are always derived
from their (probability, impact) pair by ``app.core.risk_scoring``.
"""
from datetime import datetime
from typing import Optional, List
from sqlalchemy import (
    String, Integer, Text, ForeignKey, DateTime,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import Base
from app.core.time import utc_now
from app.core.risk_constants import (
    RiskCategory,
    RiskLevel,
    RiskStatus,
    TreatmentStatus,
    TreatmentStrategy,
    MonitoringFrequency,
    sql_in_list,
)
from app.core.risk_scoring import (
    calculate_risk_score,
    residual_risk_level,
    residual_risk_score,
)


class Risk(Base):
    """
    Tenant-scoped record of a potential adverse event.

    Treatments and review entries are owned by the risk and are deleted with
    it. ``responsible`` is an assignment, not an owner.
    """
    __tablename__ = "risks"

    risk_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(
        String(20), nullable=False,
        comment="Tenant-unique human readable code, e.g. R-001"
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)

    # Inherent assessment
    probability: Mapped[int] = mapped_column(Integer, nullable=False)
    impact: Mapped[int] = mapped_column(Integer, nullable=False)
    risk_level: Mapped[str] = mapped_column(
        String(10), nullable=False, index=True,
        comment="Derived from probability x impact on every write"
    )

    # Residual assessment (0 = not yet evaluated)
    residual_probability: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    residual_impact: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Treatment intent
    treatment: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    treatment_plan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RiskStatus.IDENTIFIED.value, index=True
    )

    # Monitoring
    monitoring_frequency: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    last_review_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    next_review_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    risk_appetite: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True,
        comment="Informational only"
    )

    responsible_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
    )
    created_by_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    # Relationships
    responsible = relationship("User", foreign_keys=[responsible_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    treatments: Mapped[List["RiskTreatment"]] = relationship(
        back_populates="risk", cascade="all, delete-orphan",
        order_by=lambda: [RiskTreatment.created_at, RiskTreatment.treatment_id]
    )
    reviews: Mapped[List["RiskReviewEntry"]] = relationship(
        back_populates="risk", cascade="all, delete-orphan",
        order_by=lambda: [RiskReviewEntry.created_at, RiskReviewEntry.review_id]
    )

    __table_args__ = (
        UniqueConstraint('tenant_id', 'code', name='uq_risk_tenant_code'),
        CheckConstraint("probability BETWEEN 1 AND 5", name='chk_risk_probability'),
        CheckConstraint("impact BETWEEN 1 AND 5", name='chk_risk_impact'),
        CheckConstraint(
            "residual_probability BETWEEN 0 AND 5 OR residual_probability IS NULL",
            name='chk_risk_residual_probability'
        ),
        CheckConstraint(
            "residual_impact BETWEEN 0 AND 5 OR residual_impact IS NULL",
            name='chk_risk_residual_impact'
        ),
        CheckConstraint(f"risk_level IN ({sql_in_list(RiskLevel)})", name='chk_risk_level'),
        CheckConstraint(f"status IN ({sql_in_list(RiskStatus)})", name='chk_risk_status'),
        CheckConstraint(f"category IN ({sql_in_list(RiskCategory)})", name='chk_risk_category'),
        CheckConstraint(
            f"treatment IN ({sql_in_list(TreatmentStrategy)}) OR treatment IS NULL",
            name='chk_risk_treatment'
        ),
        CheckConstraint(
            f"monitoring_frequency IN ({sql_in_list(MonitoringFrequency)}) "
            "OR monitoring_frequency IS NULL",
            name='chk_risk_monitoring_frequency'
        ),
    )

    @property
    def risk_score(self) -> int:
        return calculate_risk_score(self.probability, self.impact)

    @property
    def residual_risk_level(self) -> Optional[str]:
        level = residual_risk_level(self.residual_probability, self.residual_impact)
        return level.value if level else None

    @property
    def residual_risk_score(self) -> Optional[int]:
        return residual_risk_score(self.residual_probability, self.residual_impact)


class RiskTreatment(Base):
    """
    Remediation action for a risk.

    Status changes are unconstrained: any of the four statuses may follow any
    other. ``control_implementation_id`` is a reporting annotation only.
    """
    __tablename__ = "risk_treatments"

    treatment_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    risk_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("risks.risk_id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TreatmentStatus.PLANNED.value
    )
    control_implementation_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("control_implementations.control_implementation_id", ondelete="SET NULL"),
        nullable=True,
        comment="Lookup reference: the control this treatment implements"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    risk = relationship("Risk", back_populates="treatments")
    control_implementation = relationship("ControlImplementation")

    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in_list(TreatmentStatus)})", name='chk_treatment_status'),
    )


class RiskReviewEntry(Base):
    """
    Immutable snapshot of a periodic reassessment.

    ``risk_level`` is computed when the entry is written and never
    recomputed. Entries are only removed by the ownership cascade when their
    risk is deleted.
    """
    __tablename__ = "risk_review_entries"

    review_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    risk_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("risks.risk_id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    probability: Mapped[int] = mapped_column(Integer, nullable=False)
    impact: Mapped[int] = mapped_column(Integer, nullable=False)
    risk_level: Mapped[str] = mapped_column(String(10), nullable=False)
    residual_probability: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    residual_impact: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    risk = relationship("Risk", back_populates="reviews")
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])

    __table_args__ = (
        CheckConstraint("probability BETWEEN 1 AND 5", name='chk_review_probability'),
        CheckConstraint("impact BETWEEN 1 AND 5", name='chk_review_impact'),
        CheckConstraint(f"risk_level IN ({sql_in_list(RiskLevel)})", name='chk_review_level'),
        CheckConstraint(f"status IN ({sql_in_list(RiskStatus)})", name='chk_review_status'),
    )

    @property
    def risk_score(self) -> int:
        return calculate_risk_score(self.probability, self.impact)

    @property
    def residual_risk_level(self) -> Optional[str]:
        level = residual_risk_level(self.residual_probability, self.residual_impact)
        return level.value if level else None
