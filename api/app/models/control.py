"""Control implementation records (lookup target for risk treatments)."""
from typing import Optional
from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base


class ControlImplementation(Base):
    """
    Implementation of a standard's control inside a tenant
    (e.g. ISO 27001 A.8.13 Information backup).

    Owned by the controls module; risk treatments only reference it so reports
    can say "this treatment implements control X".
    """
    __tablename__ = "control_implementations"

    control_implementation_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    control_code: Mapped[str] = mapped_column(
        String(50), nullable=False,
        comment="Control reference, e.g. A.5.1"
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True,
        comment="Implementation status as tracked by the controls module"
    )
