"""
SQLAlchemy ORM persistence models for budget runs.

Responsibility
--------------
Provide database-backed persistence for the outputs of a calculation
run: ``BudgetRecordModel`` stores one row per brand budget request that
reached the store (distributed or raw), and
``VendorAdjustmentSnapshotModel`` stores each committed vendor
redistribution map of a run.

Architecture position
---------------------
**Services layer** -- ORM models consumed by ``BudgetStore``.  Inherits
from ``TrackedBase`` (kernel db layer).

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Status is stored as String(50): ``distributed`` or ``undistributed``.
* ``VendorAdjustmentSnapshotModel`` revisions are unique per run; the
  highest revision is the current vendor map.
* The vendor map payload keeps decimals as strings.

Audit relevance
---------------
* Every stored row carries the run id and the creating actor, so any
  budget can be traced back to the calculation run that produced it.
* Snapshots are append-only: a new commit adds a revision instead of
  rewriting the previous map.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase
from budget_kernel.domain.models import HistoricalBudget

STATUS_DISTRIBUTED = "distributed"
STATUS_UNDISTRIBUTED = "undistributed"


# ---------------------------------------------------------------------------
# BudgetRecordModel
# ---------------------------------------------------------------------------


class BudgetRecordModel(TrackedBase):
    """
    One brand budget of a calculation run.

    Guarantees:
        - ``distributed`` rows carry the historical average and the
          adjustment factor of their BrandDistributionResult.
        - ``undistributed`` rows (no historical sales) carry only the
          raw target amount.
    """

    __tablename__ = "budget_records"

    __table_args__ = (
        Index("idx_budget_record_run", "run_id"),
        Index("idx_budget_record_brand_company", "brand", "company"),
        Index("idx_budget_record_status", "status"),
    )

    run_id: Mapped[UUID]
    brand: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    target_amount: Mapped[Decimal]
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    historical_average: Mapped[Decimal | None] = mapped_column(nullable=True)
    adjustment_factor: Mapped[Decimal | None] = mapped_column(nullable=True)

    def to_historical(self) -> HistoricalBudget:
        return HistoricalBudget(
            brand=self.brand,
            company=self.company,
            amount=self.target_amount,
        )

    def __repr__(self) -> str:
        return (
            f"<BudgetRecordModel {self.brand}/{self.company} "
            f"{self.target_date} {self.target_amount} [{self.status}]>"
        )


# ---------------------------------------------------------------------------
# VendorAdjustmentSnapshotModel
# ---------------------------------------------------------------------------


class VendorAdjustmentSnapshotModel(TrackedBase):
    """
    A committed vendor redistribution map.

    ``payload`` is ``{vendor: {amount, percentage, locked_field}}``.
    """

    __tablename__ = "vendor_adjustment_snapshots"

    __table_args__ = (
        UniqueConstraint("run_id", "revision", name="uq_vendor_snapshot_run_revision"),
        Index("idx_vendor_snapshot_run", "run_id"),
    )

    run_id: Mapped[UUID]
    revision: Mapped[int]
    total: Mapped[Decimal]
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<VendorAdjustmentSnapshotModel run={self.run_id} rev={self.revision}>"
