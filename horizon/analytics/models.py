"""Predictive analytics artifact models."""
from sqlalchemy import Column, String, DateTime, Date, Float, Integer, Boolean, ForeignKey, Index
from sqlalchemy.sql import func

from horizon.database import Base
from horizon.models.base import JSONType, generate_id


class RunwayScenario(Base):
    """A frozen runway projection plus its Monte Carlo summary."""
    __tablename__ = "runway_scenarios"

    id = Column(String, primary_key=True, default=lambda: generate_id("rwy"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(String, nullable=True)

    name = Column(String, nullable=False)
    description = Column(String)
    scenario_type = Column(String, nullable=False, default="Base")  # Conservative | Base | Optimistic | Custom
    currency = Column(String, nullable=False, default="USD")

    # Frozen inputs
    start_date = Column(Date, nullable=False)
    initial_cash_balance = Column(Float, nullable=False)
    initial_monthly_burn = Column(Float, nullable=False)
    initial_monthly_revenue = Column(Float, nullable=False)
    projection_months = Column(Integer, nullable=False, default=24)
    assumptions = Column(JSONType, nullable=False, default=list)
    planned_fundraising_events = Column(JSONType, nullable=False, default=list)

    # Results
    monthly_projections = Column(JSONType, nullable=False, default=list)
    total_runway_months = Column(Integer, nullable=False)
    runway_is_floor = Column(Boolean, nullable=False, default=False)
    date_of_cash_out = Column(Date, nullable=True)
    break_even_month = Column(Integer, nullable=True)  # months elapsed from start_date
    total_cash_burned = Column(Float, nullable=False, default=0)
    total_revenue_generated = Column(Float, nullable=False, default=0)
    simulation = Column(JSONType, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_runway_scenarios_tenant_active", "tenant_id", "is_active"),
    )


class FundraisingPrediction(Base):
    """Readiness scoring and timeline prediction for a planned round."""
    __tablename__ = "fundraising_predictions"

    id = Column(String, primary_key=True, default=lambda: generate_id("fpred"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(String, nullable=True)

    prediction_name = Column(String, nullable=False)
    round_type = Column(String, nullable=False)
    target_round_size = Column(Float, nullable=False)
    target_valuation = Column(Float, nullable=True)
    currency = Column(String, nullable=False, default="USD")

    prediction_date = Column(DateTime(timezone=True), nullable=False)
    predicted_start_date = Column(DateTime(timezone=True), nullable=False)
    predicted_close_date = Column(DateTime(timezone=True), nullable=False)
    confidence_interval_days = Column(Integer, nullable=False, default=0)

    overall_probability = Column(Float, nullable=False)
    timeline_probability = Column(Float, nullable=False)
    amount_probability = Column(Float, nullable=False)
    probability_factors = Column(JSONType, nullable=False, default=list)
    key_milestones = Column(JSONType, nullable=False, default=list)
    market_conditions = Column(JSONType, nullable=False, default=dict)
    recommendations = Column(JSONType, nullable=False, default=list)
    readiness_metrics = Column(JSONType, nullable=False, default=dict)  # frozen inputs

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CashFlowForecast(Base):
    """Weekly cash-flow forecast with scenario envelope and alerts."""
    __tablename__ = "cash_flow_forecasts"

    id = Column(String, primary_key=True, default=lambda: generate_id("cff"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(String, nullable=True)

    forecast_name = Column(String, nullable=False)
    description = Column(String)
    forecast_type = Column(String, nullable=False, default="Short-term")
    granularity = Column(String, nullable=False, default="weekly")  # daily | weekly | monthly
    currency = Column(String, nullable=False, default="USD")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # Frozen inputs
    initial_cash_position = Column(Float, nullable=False)
    outstanding_receivables = Column(Float, nullable=False, default=0)
    outstanding_payables = Column(Float, nullable=False, default=0)
    thresholds = Column(JSONType, nullable=False, default=dict)

    # Results
    category_forecasts = Column(JSONType, nullable=False, default=list)
    weekly_forecasts = Column(JSONType, nullable=False, default=list)
    scenario_analysis = Column(JSONType, nullable=False, default=dict)
    alerts = Column(JSONType, nullable=False, default=list)
    minimum_cash_balance = Column(Float, nullable=False, default=0)
    minimum_cash_date = Column(Date, nullable=True)
    requires_additional_funding = Column(Boolean, nullable=False, default=False)
    additional_funding_needed = Column(Float, nullable=False, default=0)
    additional_funding_date = Column(Date, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_cash_flow_forecasts_tenant_active", "tenant_id", "is_active"),
    )


class RevenueCohort(Base):
    """Acquisition cohort with per-period metrics and LTV analysis."""
    __tablename__ = "revenue_cohorts"

    id = Column(String, primary_key=True, default=lambda: generate_id("cohort"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(String, nullable=True)

    cohort_name = Column(String, nullable=False)
    cohort_type = Column(String, nullable=False, default="monthly")
    cohort_start_date = Column(Date, nullable=False)
    currency = Column(String, nullable=False, default="USD")
    acquisition_channel = Column(String, nullable=True)

    initial_users = Column(Integer, nullable=False)
    acquisition_cost = Column(Float, nullable=False, default=0)
    average_cac = Column(Float, nullable=False, default=0)

    # Historical periods first, then projected ones
    metrics = Column(JSONType, nullable=False, default=list)
    projection_months = Column(Integer, nullable=False, default=24)

    actual_ltv = Column(Float, nullable=False, default=0)
    projected_ltv = Column(Float, nullable=False, default=0)
    ltcac_ratio = Column(Float, nullable=False, default=0)
    payback_period = Column(Float, nullable=True)
    insights = Column(JSONType, nullable=False, default=list)
    model_parameters = Column(JSONType, nullable=False, default=dict)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
