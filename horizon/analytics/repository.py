"""SQLAlchemy implementation of the analytics data access port."""
import logging
from datetime import date
from enum import Enum
from typing import Dict, List, NoReturn, Optional, Type

from pydantic import BaseModel
from sqlalchemy import select, func, update, delete, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from horizon.analytics.errors import ConflictError, InternalError
from horizon.analytics.models import (
    CashFlowForecast,
    FundraisingPrediction,
    RevenueCohort,
    RunwayScenario,
)
from horizon.analytics.ports import (
    ArtifactKind,
    BankAccountBalance,
    DataAccessPort,
    KpiSnapshotView,
    MonthlyTotal,
)
from horizon.data.models import BankAccount, Expense, HeadcountMember, KpiSnapshot, Revenue

logger = logging.getLogger(__name__)

ARTIFACT_MODELS: Dict[ArtifactKind, Type] = {
    ArtifactKind.RUNWAY_SCENARIO: RunwayScenario,
    ArtifactKind.FUNDRAISING_PREDICTION: FundraisingPrediction,
    ArtifactKind.CASH_FLOW_FORECAST: CashFlowForecast,
    ArtifactKind.REVENUE_COHORT: RevenueCohort,
}

# Columns the repository owns; never copied from a record
_MANAGED_COLUMNS = {"created_at", "updated_at", "version"}

ACTIVE_HEADCOUNT_STATUS = "Active"


def _row_values(record: BaseModel) -> Dict:
    """Column values for a record; JSON columns are dumped in JSON mode."""
    json_fields = getattr(record, "json_fields", frozenset())
    values = {
        key: value.value if isinstance(value, Enum) else value
        for key, value in record.model_dump(exclude=set(json_fields) | _MANAGED_COLUMNS).items()
    }
    values.update(record.model_dump(mode="json", include=set(json_fields)))
    return values


class SqlAlchemyDataAccess(DataAccessPort):
    """Data access over an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, operation: str, tenant_id: str, error: SQLAlchemyError) -> NoReturn:
        logger.exception(f"Storage error during {operation} for tenant {tenant_id}: {error}")
        await self.db.rollback()
        raise InternalError(f"Storage failure during {operation}") from error

    # =========================================================================
    # Historical data
    # =========================================================================

    async def list_bank_accounts(self, tenant_id: str) -> List[BankAccountBalance]:
        try:
            result = await self.db.execute(
                select(BankAccount.current_balance, BankAccount.currency)
                .where(BankAccount.tenant_id == tenant_id)
            )
            return [
                BankAccountBalance(current_balance=float(balance or 0), currency=currency)
                for balance, currency in result.all()
            ]
        except SQLAlchemyError as e:
            await self._fail("list_bank_accounts", tenant_id, e)

    async def _aggregate(self, model, tenant_id: str, since: date, by_category: bool) -> List[MonthlyTotal]:
        year = func.extract("year", model.date).label("year")
        month = func.extract("month", model.date).label("month")
        columns = [year, month, model.currency]
        if by_category:
            columns.append(model.category)

        query = (
            select(*columns, func.sum(model.amount).label("total"))
            .where(model.tenant_id == tenant_id, model.date >= since)
            .group_by(*columns)
            .order_by(year, month)
        )
        result = await self.db.execute(query)
        totals = []
        for row in result.all():
            totals.append(MonthlyTotal(
                year=int(row.year),
                month=int(row.month),
                total=float(row.total or 0),
                currency=row.currency,
                category=row.category if by_category else None,
            ))
        return totals

    async def aggregate_expenses(
        self, tenant_id: str, since: date, by_category: bool = False
    ) -> List[MonthlyTotal]:
        try:
            return await self._aggregate(Expense, tenant_id, since, by_category)
        except SQLAlchemyError as e:
            await self._fail("aggregate_expenses", tenant_id, e)

    async def aggregate_revenues(self, tenant_id: str, since: date) -> List[MonthlyTotal]:
        try:
            return await self._aggregate(Revenue, tenant_id, since, by_category=False)
        except SQLAlchemyError as e:
            await self._fail("aggregate_revenues", tenant_id, e)

    async def list_kpi_snapshots(self, tenant_id: str, limit: int) -> List[KpiSnapshotView]:
        try:
            result = await self.db.execute(
                select(KpiSnapshot)
                .where(KpiSnapshot.tenant_id == tenant_id)
                .order_by(desc(KpiSnapshot.snapshot_date))
                .limit(limit)
            )
            return [
                KpiSnapshotView(
                    snapshot_date=s.snapshot_date,
                    dau=s.dau,
                    mau=s.mau,
                )
                for s in result.scalars().all()
            ]
        except SQLAlchemyError as e:
            await self._fail("list_kpi_snapshots", tenant_id, e)

    async def count_active_headcount(self, tenant_id: str) -> int:
        try:
            result = await self.db.execute(
                select(func.count(HeadcountMember.id))
                .where(
                    HeadcountMember.tenant_id == tenant_id,
                    HeadcountMember.status == ACTIVE_HEADCOUNT_STATUS,
                )
            )
            return int(result.scalar() or 0)
        except SQLAlchemyError as e:
            await self._fail("count_active_headcount", tenant_id, e)

    # =========================================================================
    # Artifacts
    # =========================================================================

    async def create_artifact(self, kind: ArtifactKind, record: BaseModel) -> BaseModel:
        model = ARTIFACT_MODELS[kind]
        row = model(**_row_values(record), version=1)
        try:
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self._fail(f"create {kind.value}", record.tenant_id, e)
        return kind.record_type.model_validate(row, from_attributes=True)

    async def find_artifact(
        self,
        tenant_id: str,
        kind: ArtifactKind,
        artifact_id: str,
        include_inactive: bool = False,
    ) -> Optional[BaseModel]:
        model = ARTIFACT_MODELS[kind]
        query = select(model).where(model.id == artifact_id, model.tenant_id == tenant_id)
        if kind.soft_deletable and not include_inactive:
            query = query.where(model.is_active.is_(True))
        try:
            result = await self.db.execute(query)
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self._fail(f"find {kind.value}", tenant_id, e)
        if row is None:
            return None
        return kind.record_type.model_validate(row, from_attributes=True)

    async def list_artifacts(
        self,
        tenant_id: str,
        kind: ArtifactKind,
        limit: int,
        active_only: bool = True,
        order_by: str = "created_at",
    ) -> List[BaseModel]:
        model = ARTIFACT_MODELS[kind]
        query = select(model).where(model.tenant_id == tenant_id)
        if kind.soft_deletable and active_only:
            query = query.where(model.is_active.is_(True))
        query = query.order_by(desc(getattr(model, order_by))).limit(limit)
        try:
            result = await self.db.execute(query)
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            await self._fail(f"list {kind.value}", tenant_id, e)
        return [kind.record_type.model_validate(row, from_attributes=True) for row in rows]

    async def update_artifact(
        self, kind: ArtifactKind, record: BaseModel, expected_version: int
    ) -> BaseModel:
        model = ARTIFACT_MODELS[kind]
        values = _row_values(record)
        values.pop("id", None)
        values.pop("tenant_id", None)
        values["version"] = expected_version + 1
        values["updated_at"] = func.now()

        try:
            result = await self.db.execute(
                update(model)
                .where(
                    model.id == record.id,
                    model.tenant_id == record.tenant_id,
                    model.version == expected_version,
                )
                .values(**values)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                raise ConflictError(
                    f"{kind.value} {record.id} was modified concurrently",
                    details={"id": record.id, "expected_version": expected_version},
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail(f"update {kind.value}", record.tenant_id, e)

        stored = await self.find_artifact(record.tenant_id, kind, record.id, include_inactive=True)
        if stored is None:
            raise InternalError(f"{kind.value} {record.id} vanished after update")
        return stored

    async def soft_delete_artifact(self, tenant_id: str, kind: ArtifactKind, artifact_id: str) -> bool:
        model = ARTIFACT_MODELS[kind]
        try:
            result = await self.db.execute(
                update(model)
                .where(
                    model.id == artifact_id,
                    model.tenant_id == tenant_id,
                    model.is_active.is_(True),
                )
                .values(is_active=False, version=model.version + 1, updated_at=func.now())
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail(f"soft delete {kind.value}", tenant_id, e)
        return result.rowcount > 0

    async def delete_artifact(self, tenant_id: str, kind: ArtifactKind, artifact_id: str) -> bool:
        model = ARTIFACT_MODELS[kind]
        try:
            result = await self.db.execute(
                delete(model).where(model.id == artifact_id, model.tenant_id == tenant_id)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail(f"delete {kind.value}", tenant_id, e)
        return result.rowcount > 0
