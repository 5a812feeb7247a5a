"""Create risk register tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

RISK_LEVELS = "'low', 'medium', 'high', 'critical'"
RISK_STATUSES = "'identified', 'analyzing', 'treating', 'monitoring', 'closed'"
RISK_CATEGORIES = "'strategic', 'operational', 'compliance', 'financial', 'technology', 'legal'"
TREATMENT_STRATEGIES = "'accept', 'mitigate', 'transfer', 'avoid'"
TREATMENT_STATUSES = "'planned', 'in_progress', 'completed', 'cancelled'"
MONITORING_FREQUENCIES = "'monthly', 'quarterly', 'semi_annual', 'annual'"


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('tenant_id', sa.Integer(), primary_key=True),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('user_id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(),
                  sa.ForeignKey('tenants.tenant_id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='client_viewer'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])

    op.create_table(
        'control_implementations',
        sa.Column('control_implementation_id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(),
                  sa.ForeignKey('tenants.tenant_id', ondelete='CASCADE'), nullable=False),
        sa.Column('control_code', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', sa.String(50), nullable=True),
    )
    op.create_index('ix_control_implementations_tenant_id',
                    'control_implementations', ['tenant_id'])

    op.create_table(
        'risks',
        sa.Column('risk_id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(),
                  sa.ForeignKey('tenants.tenant_id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('probability', sa.Integer(), nullable=False),
        sa.Column('impact', sa.Integer(), nullable=False),
        sa.Column('risk_level', sa.String(10), nullable=False),
        sa.Column('residual_probability', sa.Integer(), nullable=True),
        sa.Column('residual_impact', sa.Integer(), nullable=True),
        sa.Column('treatment', sa.String(20), nullable=True),
        sa.Column('treatment_plan', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='identified'),
        sa.Column('monitoring_frequency', sa.String(20), nullable=True),
        sa.Column('last_review_date', sa.DateTime(), nullable=True),
        sa.Column('next_review_date', sa.DateTime(), nullable=True),
        sa.Column('risk_appetite', sa.Text(), nullable=True),
        sa.Column('responsible_id', sa.Integer(),
                  sa.ForeignKey('users.user_id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_by_id', sa.Integer(),
                  sa.ForeignKey('users.user_id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_risk_tenant_code'),
        sa.CheckConstraint("probability BETWEEN 1 AND 5", name='chk_risk_probability'),
        sa.CheckConstraint("impact BETWEEN 1 AND 5", name='chk_risk_impact'),
        sa.CheckConstraint(
            "residual_probability BETWEEN 0 AND 5 OR residual_probability IS NULL",
            name='chk_risk_residual_probability'),
        sa.CheckConstraint(
            "residual_impact BETWEEN 0 AND 5 OR residual_impact IS NULL",
            name='chk_risk_residual_impact'),
        sa.CheckConstraint(f"risk_level IN ({RISK_LEVELS})", name='chk_risk_level'),
        sa.CheckConstraint(f"status IN ({RISK_STATUSES})", name='chk_risk_status'),
        sa.CheckConstraint(f"category IN ({RISK_CATEGORIES})", name='chk_risk_category'),
        sa.CheckConstraint(
            f"treatment IN ({TREATMENT_STRATEGIES}) OR treatment IS NULL",
            name='chk_risk_treatment'),
        sa.CheckConstraint(
            f"monitoring_frequency IN ({MONITORING_FREQUENCIES}) OR monitoring_frequency IS NULL",
            name='chk_risk_monitoring_frequency'),
    )
    op.create_index('ix_risks_tenant_id', 'risks', ['tenant_id'])
    op.create_index('ix_risks_risk_level', 'risks', ['risk_level'])
    op.create_index('ix_risks_status', 'risks', ['status'])
    op.create_index('ix_risks_next_review_date', 'risks', ['next_review_date'])

    op.create_table(
        'risk_treatments',
        sa.Column('treatment_id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(),
                  sa.ForeignKey('tenants.tenant_id', ondelete='CASCADE'), nullable=False),
        sa.Column('risk_id', sa.Integer(),
                  sa.ForeignKey('risks.risk_id', ondelete='CASCADE'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='planned'),
        sa.Column('control_implementation_id', sa.Integer(),
                  sa.ForeignKey('control_implementations.control_implementation_id',
                                ondelete='SET NULL'),
                  nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(f"status IN ({TREATMENT_STATUSES})", name='chk_treatment_status'),
    )
    op.create_index('ix_risk_treatments_tenant_id', 'risk_treatments', ['tenant_id'])
    op.create_index('ix_risk_treatments_risk_id', 'risk_treatments', ['risk_id'])

    op.create_table(
        'risk_review_entries',
        sa.Column('review_id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(),
                  sa.ForeignKey('tenants.tenant_id', ondelete='CASCADE'), nullable=False),
        sa.Column('risk_id', sa.Integer(),
                  sa.ForeignKey('risks.risk_id', ondelete='CASCADE'), nullable=False),
        sa.Column('probability', sa.Integer(), nullable=False),
        sa.Column('impact', sa.Integer(), nullable=False),
        sa.Column('risk_level', sa.String(10), nullable=False),
        sa.Column('residual_probability', sa.Integer(), nullable=True),
        sa.Column('residual_impact', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by_id', sa.Integer(),
                  sa.ForeignKey('users.user_id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("probability BETWEEN 1 AND 5", name='chk_review_probability'),
        sa.CheckConstraint("impact BETWEEN 1 AND 5", name='chk_review_impact'),
        sa.CheckConstraint(f"risk_level IN ({RISK_LEVELS})", name='chk_review_level'),
        sa.CheckConstraint(f"status IN ({RISK_STATUSES})", name='chk_review_status'),
    )
    op.create_index('ix_risk_review_entries_tenant_id', 'risk_review_entries', ['tenant_id'])
    op.create_index('ix_risk_review_entries_risk_id', 'risk_review_entries', ['risk_id'])

    op.create_table(
        'audit_logs',
        sa.Column('log_id', sa.Integer(), primary_key=True, index=True),
        sa.Column('tenant_id', sa.Integer(),
                  sa.ForeignKey('tenants.tenant_id', ondelete='CASCADE'), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('user_id', sa.Integer(),
                  sa.ForeignKey('users.user_id', ondelete='SET NULL'), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_logs_tenant_id', 'audit_logs', ['tenant_id'])
    # Index for faster queries on entity
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])


def downgrade() -> None:
    op.drop_index('ix_audit_logs_entity', 'audit_logs')
    op.drop_index('ix_audit_logs_tenant_id', 'audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_risk_review_entries_risk_id', 'risk_review_entries')
    op.drop_index('ix_risk_review_entries_tenant_id', 'risk_review_entries')
    op.drop_table('risk_review_entries')
    op.drop_index('ix_risk_treatments_risk_id', 'risk_treatments')
    op.drop_index('ix_risk_treatments_tenant_id', 'risk_treatments')
    op.drop_table('risk_treatments')
    op.drop_index('ix_risks_next_review_date', 'risks')
    op.drop_index('ix_risks_status', 'risks')
    op.drop_index('ix_risks_risk_level', 'risks')
    op.drop_index('ix_risks_tenant_id', 'risks')
    op.drop_table('risks')
    op.drop_index('ix_control_implementations_tenant_id', 'control_implementations')
    op.drop_table('control_implementations')
    op.drop_index('ix_users_tenant_id', 'users')
    op.drop_table('users')
    op.drop_table('tenants')
