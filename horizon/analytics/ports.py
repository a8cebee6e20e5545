"""
Data access port for the analytics engine.

The engine reads historical financials and persists artifacts only through
this interface, always scoped to one tenant.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Type

from pydantic import BaseModel

from horizon.analytics.schemas import (
    CashFlowForecastRecord,
    FundraisingPredictionRecord,
    RevenueCohortRecord,
    RunwayScenarioRecord,
)


class ArtifactKind(str, Enum):
    RUNWAY_SCENARIO = "runway_scenario"
    FUNDRAISING_PREDICTION = "fundraising_prediction"
    CASH_FLOW_FORECAST = "cash_flow_forecast"
    REVENUE_COHORT = "revenue_cohort"

    @property
    def id_prefix(self) -> str:
        return ID_PREFIXES[self]

    @property
    def record_type(self) -> Type[BaseModel]:
        return RECORD_TYPES[self]

    @property
    def soft_deletable(self) -> bool:
        return self in (ArtifactKind.RUNWAY_SCENARIO, ArtifactKind.CASH_FLOW_FORECAST)


ID_PREFIXES = {
    ArtifactKind.RUNWAY_SCENARIO: "rwy",
    ArtifactKind.FUNDRAISING_PREDICTION: "fpred",
    ArtifactKind.CASH_FLOW_FORECAST: "cff",
    ArtifactKind.REVENUE_COHORT: "cohort",
}

RECORD_TYPES: Dict[ArtifactKind, Type[BaseModel]] = {
    ArtifactKind.RUNWAY_SCENARIO: RunwayScenarioRecord,
    ArtifactKind.FUNDRAISING_PREDICTION: FundraisingPredictionRecord,
    ArtifactKind.CASH_FLOW_FORECAST: CashFlowForecastRecord,
    ArtifactKind.REVENUE_COHORT: RevenueCohortRecord,
}


@dataclass
class BankAccountBalance:
    current_balance: float
    currency: str


@dataclass
class MonthlyTotal:
    year: int
    month: int
    total: float
    currency: str
    category: Optional[str] = None

    @property
    def period(self) -> date:
        return date(self.year, self.month, 1)


@dataclass
class KpiSnapshotView:
    snapshot_date: date
    dau: Optional[int] = None
    mau: Optional[int] = None


class DataAccessPort(ABC):
    """Tenant-scoped reads of history and CRUD on analytics artifacts."""

    # Historical data

    @abstractmethod
    async def list_bank_accounts(self, tenant_id: str) -> List[BankAccountBalance]:
        ...

    @abstractmethod
    async def aggregate_expenses(
        self, tenant_id: str, since: date, by_category: bool = False
    ) -> List[MonthlyTotal]:
        """Monthly expense totals since `since`, oldest first."""

    @abstractmethod
    async def aggregate_revenues(self, tenant_id: str, since: date) -> List[MonthlyTotal]:
        """Monthly revenue totals since `since`, oldest first."""

    @abstractmethod
    async def list_kpi_snapshots(self, tenant_id: str, limit: int) -> List[KpiSnapshotView]:
        """Most recent snapshots, newest first."""

    @abstractmethod
    async def count_active_headcount(self, tenant_id: str) -> int:
        ...

    # Artifacts

    @abstractmethod
    async def create_artifact(self, kind: ArtifactKind, record: BaseModel) -> BaseModel:
        ...

    @abstractmethod
    async def find_artifact(
        self,
        tenant_id: str,
        kind: ArtifactKind,
        artifact_id: str,
        include_inactive: bool = False,
    ) -> Optional[BaseModel]:
        ...

    @abstractmethod
    async def list_artifacts(
        self,
        tenant_id: str,
        kind: ArtifactKind,
        limit: int,
        active_only: bool = True,
        order_by: str = "created_at",
    ) -> List[BaseModel]:
        """Artifacts ordered by `order_by`, newest first."""

    @abstractmethod
    async def update_artifact(
        self, kind: ArtifactKind, record: BaseModel, expected_version: int
    ) -> BaseModel:
        """
        Replace the stored artifact if its version still equals
        `expected_version`; raises ConflictError otherwise. The stored
        version becomes expected_version + 1.
        """

    @abstractmethod
    async def soft_delete_artifact(self, tenant_id: str, kind: ArtifactKind, artifact_id: str) -> bool:
        ...

    @abstractmethod
    async def delete_artifact(self, tenant_id: str, kind: ArtifactKind, artifact_id: str) -> bool:
        ...
