"""Historical data models read by the analytics engine.

These tables are owned by the CRUD side of the product; the analytics
engine only reads them through the data access port.
"""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Integer, ForeignKey, UniqueConstraint, Text
from sqlalchemy.sql import func

from horizon.database import Base
from horizon.models.base import JSONType, generate_id


class Organization(Base):
    """Tenant."""
    __tablename__ = "organizations"

    id = Column(String, primary_key=True, default=lambda: generate_id("org"))
    name = Column(String, nullable=False)
    base_currency = Column(String, nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class BankAccount(Base):
    """Bank account with its latest known balance."""
    __tablename__ = "bank_accounts"

    id = Column(String, primary_key=True, default=lambda: generate_id("acct"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    account_name = Column(String, nullable=False)
    bank_name = Column(String, nullable=True)
    account_type = Column(String, nullable=True)  # "checking" | "savings" | "credit"
    current_balance = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    currency = Column(String, nullable=False, default="USD")
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Expense(Base):
    """Cash outflow event."""
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=lambda: generate_id("exp"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    # "Tech Infrastructure" | "Marketing & Sales" | "Salaries & Wages" | "Legal & Professional"
    # | "Rent & Utilities" | "Software & Subscriptions" | "Travel & Entertainment"
    # | "Office Supplies" | "Other"
    category = Column(String, nullable=False, default="Other")
    vendor = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    currency = Column(String, nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Revenue(Base):
    """Cash inflow event."""
    __tablename__ = "revenues"

    id = Column(String, primary_key=True, default=lambda: generate_id("rev"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    source = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="Received")  # "Received" | "Pending" | "Overdue"
    currency = Column(String, nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class KpiSnapshot(Base):
    """Daily user metrics."""
    __tablename__ = "kpi_snapshots"

    id = Column(String, primary_key=True, default=lambda: generate_id("kpi"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    snapshot_date = Column(Date, nullable=False)
    dau = Column(Integer, nullable=True)
    mau = Column(Integer, nullable=True)
    feature_usage = Column(JSONType, nullable=False, default=dict)
    cohort_retention = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("tenant_id", "snapshot_date", name="uq_kpi_snapshots_tenant_date"),
    )


class HeadcountMember(Base):
    """Person on payroll."""
    __tablename__ = "headcount_members"

    id = Column(String, primary_key=True, default=lambda: generate_id("hc"))
    tenant_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False)
    department = Column(String, nullable=True)
    status = Column(String, nullable=False, default="Active")  # "Active" | "Open Requisition" | "Former"
    start_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
