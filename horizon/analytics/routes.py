"""Predictive analytics API routes."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from horizon.auth.dependencies import TenantContext, get_current_tenant
from horizon.config import settings
from horizon.database import get_db
from horizon.analytics import schemas
from horizon.analytics.clock import SystemClock
from horizon.analytics.market import build_provider
from horizon.analytics.repository import SqlAlchemyDataAccess
from horizon.analytics.service import AnalyticsService

router = APIRouter()


def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    """Build a service bound to the request's database session."""
    return AnalyticsService(
        port=SqlAlchemyDataAccess(db),
        clock=SystemClock(),
        config=settings,
        comparables=build_provider(
            settings.MARKET_DATA_URL,
            settings.MARKET_DATA_API_KEY,
            settings.MARKET_DATA_TIMEOUT_SECONDS,
        ),
    )


# ============================================================================
# RUNWAY SCENARIO ROUTES
# ============================================================================

@router.post("/runway-scenarios", response_model=schemas.RunwayScenarioResult, status_code=201)
async def create_runway_scenario(
    data: schemas.RunwayScenarioCreate,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Project runway from current cash and trailing burn, with Monte Carlo bands."""
    return await service.create_runway_scenario(tenant.tenant_id, data, user_id=tenant.user_id)


@router.get("/runway-scenarios", response_model=List[schemas.RunwayScenarioRecord])
async def list_runway_scenarios(
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """List active runway scenarios, newest first."""
    return await service.list_runway_scenarios(tenant.tenant_id)


@router.get("/runway-scenarios/compare", response_model=schemas.RunwayComparison)
async def compare_runway_scenarios(
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Compare the latest active scenarios by runway."""
    return await service.compare_runway_scenarios(tenant.tenant_id)


@router.get("/runway-scenarios/{scenario_id}", response_model=schemas.RunwayScenarioRecord)
async def get_runway_scenario(
    scenario_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_runway_scenario(tenant.tenant_id, scenario_id)


@router.delete("/runway-scenarios/{scenario_id}", response_model=schemas.DeleteResponse)
async def delete_runway_scenario(
    scenario_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Deactivate a runway scenario."""
    return await service.delete_runway_scenario(tenant.tenant_id, scenario_id)


# ============================================================================
# FUNDRAISING ROUTES
# ============================================================================

@router.get("/fundraising-readiness", response_model=schemas.ReadinessResponse)
async def get_fundraising_readiness(
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Score readiness to raise from trailing financials, growth and team."""
    return await service.get_fundraising_readiness(tenant.tenant_id, currency)


@router.get("/market-comparables", response_model=schemas.MarketConditionsOut)
async def get_market_comparables(
    round_type: str = Query(...),
    target_size: float = Query(...),
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Sector sentiment and comparable deals for a round."""
    return await service.get_market_comparables(tenant.tenant_id, round_type, target_size)


@router.post("/fundraising-predictions", response_model=schemas.FundraisingPredictionRecord, status_code=201)
async def create_fundraising_prediction(
    data: schemas.FundraisingPredictionCreate,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Predict success probability and timeline for a round."""
    return await service.create_fundraising_prediction(tenant.tenant_id, data, user_id=tenant.user_id)


@router.get("/fundraising-predictions", response_model=List[schemas.FundraisingPredictionRecord])
async def list_fundraising_predictions(
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.list_fundraising_predictions(tenant.tenant_id)


@router.get("/fundraising-predictions/{prediction_id}", response_model=schemas.FundraisingPredictionRecord)
async def get_fundraising_prediction(
    prediction_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_fundraising_prediction(tenant.tenant_id, prediction_id)


@router.delete("/fundraising-predictions/{prediction_id}", response_model=schemas.DeleteResponse)
async def delete_fundraising_prediction(
    prediction_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.delete_fundraising_prediction(tenant.tenant_id, prediction_id)


# ============================================================================
# CASH FLOW ROUTES
# ============================================================================

@router.get("/cash-position/current", response_model=schemas.CashPositionOut)
async def get_current_cash_position(
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Total cash across bank accounts in one currency."""
    return await service.get_current_cash_position(tenant.tenant_id, currency)


@router.get("/cash-flow-data/historical", response_model=schemas.HistoricalCashFlowData)
async def get_historical_cash_flow_data(
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Six months of monthly expense (by category) and revenue totals."""
    return await service.get_historical_cash_flow_data(tenant.tenant_id, currency)


@router.post("/cash-flow-forecasts", response_model=schemas.CashFlowForecastRecord, status_code=201)
async def create_cash_flow_forecast(
    data: schemas.CashFlowForecastCreate,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Weekly cash-flow forecast with scenarios, alerts and funding gap."""
    return await service.create_cash_flow_forecast(tenant.tenant_id, data, user_id=tenant.user_id)


@router.get("/cash-flow-forecasts", response_model=List[schemas.CashFlowForecastRecord])
async def list_cash_flow_forecasts(
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.list_cash_flow_forecasts(tenant.tenant_id)


@router.get("/cash-flow-forecasts/{forecast_id}", response_model=schemas.CashFlowForecastRecord)
async def get_cash_flow_forecast(
    forecast_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_cash_flow_forecast(tenant.tenant_id, forecast_id)


@router.delete("/cash-flow-forecasts/{forecast_id}", response_model=schemas.DeleteResponse)
async def delete_cash_flow_forecast(
    forecast_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Deactivate a cash-flow forecast."""
    return await service.delete_cash_flow_forecast(tenant.tenant_id, forecast_id)


# ============================================================================
# REVENUE COHORT ROUTES
# ============================================================================

@router.post("/revenue-cohorts", response_model=schemas.RevenueCohortRecord, status_code=201)
async def create_revenue_cohort(
    data: schemas.RevenueCohortCreate,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Create a cohort and compute LTV, payback and insights from its metrics."""
    return await service.create_revenue_cohort(tenant.tenant_id, data, user_id=tenant.user_id)


@router.get("/revenue-cohorts", response_model=List[schemas.RevenueCohortRecord])
async def list_revenue_cohorts(
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.list_revenue_cohorts(tenant.tenant_id)


@router.get("/revenue-cohorts/compare", response_model=schemas.CohortComparison)
async def compare_revenue_cohorts(
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Compare cohorts by LTV and current retention."""
    return await service.compare_revenue_cohorts(tenant.tenant_id)


@router.get("/revenue-cohorts/{cohort_id}", response_model=schemas.RevenueCohortRecord)
async def get_revenue_cohort(
    cohort_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_revenue_cohort(tenant.tenant_id, cohort_id)


@router.put("/revenue-cohorts/{cohort_id}/metrics", response_model=schemas.RevenueCohortRecord)
async def update_cohort_metrics(
    cohort_id: str,
    data: schemas.CohortMetricsUpdate,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Replace a cohort's metric vector and recompute its analysis."""
    return await service.update_cohort_metrics(tenant.tenant_id, cohort_id, data.metrics)


@router.post("/revenue-cohorts/{cohort_id}/projections", response_model=schemas.CohortProjectionResult)
async def generate_cohort_projections(
    cohort_id: str,
    data: schemas.CohortProjectionRequest = schemas.CohortProjectionRequest(),
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Append projected periods from the fitted retention curve."""
    return await service.generate_cohort_projections(
        tenant.tenant_id, cohort_id, data.projection_months
    )


@router.delete("/revenue-cohorts/{cohort_id}", response_model=schemas.DeleteResponse)
async def delete_revenue_cohort(
    cohort_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.delete_revenue_cohort(tenant.tenant_id, cohort_id)
