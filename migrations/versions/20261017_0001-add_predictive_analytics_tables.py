"""add_predictive_analytics_tables

Revision ID: 3f9c2a71d0e4
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c2a71d0e4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def _tenant():
    return sa.Column('tenant_id', sa.String(), nullable=False)


def _tenant_fk():
    return sa.ForeignKeyConstraint(['tenant_id'], ['organizations.id'], ondelete='CASCADE')


def upgrade() -> None:
    # Create organizations table
    op.create_table(
        'organizations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('base_currency', sa.String(), nullable=False, server_default='USD'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    # Historical data tables
    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('account_name', sa.String(), nullable=False),
        sa.Column('bank_name', sa.String(), nullable=True),
        sa.Column('account_type', sa.String(), nullable=True),
        sa.Column('current_balance', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bank_accounts_tenant_id', 'bank_accounts', ['tenant_id'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('category', sa.String(), nullable=False, server_default='Other'),
        sa.Column('vendor', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_expenses_tenant_id', 'expenses', ['tenant_id'])
    op.create_index('ix_expenses_date', 'expenses', ['date'])

    op.create_table(
        'revenues',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='Received'),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_revenues_tenant_id', 'revenues', ['tenant_id'])
    op.create_index('ix_revenues_date', 'revenues', ['date'])

    op.create_table(
        'kpi_snapshots',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('dau', sa.Integer(), nullable=True),
        sa.Column('mau', sa.Integer(), nullable=True),
        sa.Column('feature_usage', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('cohort_retention', postgresql.JSONB(), nullable=False, server_default='{}'),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'snapshot_date', name='uq_kpi_snapshots_tenant_date')
    )
    op.create_index('ix_kpi_snapshots_tenant_id', 'kpi_snapshots', ['tenant_id'])

    op.create_table(
        'headcount_members',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('department', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='Active'),
        sa.Column('start_date', sa.Date(), nullable=True),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_headcount_members_tenant_id', 'headcount_members', ['tenant_id'])

    # Create runway_scenarios table
    op.create_table(
        'runway_scenarios',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('scenario_type', sa.String(), nullable=False, server_default='Base'),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('initial_cash_balance', sa.Float(), nullable=False),
        sa.Column('initial_monthly_burn', sa.Float(), nullable=False),
        sa.Column('initial_monthly_revenue', sa.Float(), nullable=False),
        sa.Column('projection_months', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('assumptions', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('planned_fundraising_events', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('monthly_projections', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('total_runway_months', sa.Integer(), nullable=False),
        sa.Column('runway_is_floor', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('date_of_cash_out', sa.Date(), nullable=True),
        sa.Column('break_even_month', sa.Integer(), nullable=True),
        sa.Column('total_cash_burned', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_revenue_generated', sa.Float(), nullable=False, server_default='0'),
        sa.Column('simulation', postgresql.JSONB(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_runway_scenarios_tenant_id', 'runway_scenarios', ['tenant_id'])
    op.create_index('ix_runway_scenarios_tenant_active', 'runway_scenarios', ['tenant_id', 'is_active'])

    # Create fundraising_predictions table
    op.create_table(
        'fundraising_predictions',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('prediction_name', sa.String(), nullable=False),
        sa.Column('round_type', sa.String(), nullable=False),
        sa.Column('target_round_size', sa.Float(), nullable=False),
        sa.Column('target_valuation', sa.Float(), nullable=True),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('prediction_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('predicted_start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('predicted_close_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('confidence_interval_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('overall_probability', sa.Float(), nullable=False),
        sa.Column('timeline_probability', sa.Float(), nullable=False),
        sa.Column('amount_probability', sa.Float(), nullable=False),
        sa.Column('probability_factors', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('key_milestones', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('market_conditions', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('recommendations', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('readiness_metrics', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_fundraising_predictions_tenant_id', 'fundraising_predictions', ['tenant_id'])

    # Create cash_flow_forecasts table
    op.create_table(
        'cash_flow_forecasts',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('forecast_name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('forecast_type', sa.String(), nullable=False, server_default='Short-term'),
        sa.Column('granularity', sa.String(), nullable=False, server_default='weekly'),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('initial_cash_position', sa.Float(), nullable=False),
        sa.Column('outstanding_receivables', sa.Float(), nullable=False, server_default='0'),
        sa.Column('outstanding_payables', sa.Float(), nullable=False, server_default='0'),
        sa.Column('thresholds', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('category_forecasts', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('weekly_forecasts', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('scenario_analysis', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('alerts', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('minimum_cash_balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('minimum_cash_date', sa.Date(), nullable=True),
        sa.Column('requires_additional_funding', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('additional_funding_needed', sa.Float(), nullable=False, server_default='0'),
        sa.Column('additional_funding_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cash_flow_forecasts_tenant_id', 'cash_flow_forecasts', ['tenant_id'])
    op.create_index('ix_cash_flow_forecasts_tenant_active', 'cash_flow_forecasts', ['tenant_id', 'is_active'])

    # Create revenue_cohorts table
    op.create_table(
        'revenue_cohorts',
        sa.Column('id', sa.String(), nullable=False),
        _tenant(),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('cohort_name', sa.String(), nullable=False),
        sa.Column('cohort_type', sa.String(), nullable=False, server_default='monthly'),
        sa.Column('cohort_start_date', sa.Date(), nullable=False),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('acquisition_channel', sa.String(), nullable=True),
        sa.Column('initial_users', sa.Integer(), nullable=False),
        sa.Column('acquisition_cost', sa.Float(), nullable=False, server_default='0'),
        sa.Column('average_cac', sa.Float(), nullable=False, server_default='0'),
        sa.Column('metrics', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('projection_months', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('actual_ltv', sa.Float(), nullable=False, server_default='0'),
        sa.Column('projected_ltv', sa.Float(), nullable=False, server_default='0'),
        sa.Column('ltcac_ratio', sa.Float(), nullable=False, server_default='0'),
        sa.Column('payback_period', sa.Float(), nullable=True),
        sa.Column('insights', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('model_parameters', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        _tenant_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_revenue_cohorts_tenant_id', 'revenue_cohorts', ['tenant_id'])


def downgrade() -> None:
    op.drop_table('revenue_cohorts')
    op.drop_table('cash_flow_forecasts')
    op.drop_table('fundraising_predictions')
    op.drop_table('runway_scenarios')
    op.drop_table('headcount_members')
    op.drop_table('kpi_snapshots')
    op.drop_table('revenues')
    op.drop_table('expenses')
    op.drop_table('bank_accounts')
    op.drop_table('organizations')
