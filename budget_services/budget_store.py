"""
budget_services.budget_store -- Persistence of budget runs.

Responsibility:
    Stores the brand budgets of calculation runs and the committed vendor
    redistribution maps, and reads back the history that brand
    suggestions and vendor sessions need.

Architecture position:
    Services -- the only component that touches the ORM models.  Works
    inside a caller-owned SQLAlchemy session; the caller decides the
    transaction boundary (see ``budget_kernel.db.engine.session_scope``).

Failure modes:
    - BudgetRecordNotFoundError: requested record id does not exist.

Usage:
    with session_scope() as session:
        store = BudgetStore(session)
        store.record_distributed(run_id, result, actor_id)
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from budget_kernel.domain.models import (
    BrandBudgetRequest,
    BrandDistributionResult,
    HistoricalBudget,
    normalize_name,
)
from budget_kernel.exceptions import BudgetRecordNotFoundError
from budget_kernel.logging_config import get_logger
from budget_services.orm import (
    STATUS_DISTRIBUTED,
    STATUS_UNDISTRIBUTED,
    BudgetRecordModel,
    VendorAdjustmentSnapshotModel,
)

logger = get_logger("services.budget_store")


class BudgetStore:
    """Budget records and vendor maps, scoped to one SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    # =========================================================================
    # Budget records
    # =========================================================================

    def record_distributed(
        self,
        run_id: UUID,
        result: BrandDistributionResult,
        actor_id: UUID,
    ) -> BudgetRecordModel:
        """Store a brand budget that received a full distribution."""
        record = BudgetRecordModel(
            run_id=run_id,
            brand=result.brand,
            company=result.company,
            target_date=result.target_date,
            target_amount=result.target_amount,
            status=STATUS_DISTRIBUTED,
            historical_average=result.historical_average,
            adjustment_factor=result.adjustment_factor,
            created_by_id=actor_id,
        )
        self.session.add(record)
        self.session.flush()
        return record

    def record_undistributed(
        self,
        run_id: UUID,
        request: BrandBudgetRequest,
        actor_id: UUID,
    ) -> BudgetRecordModel:
        """Store the raw amount of a request that had no historical sales."""
        record = BudgetRecordModel(
            run_id=run_id,
            brand=request.brand,
            company=request.company,
            target_date=request.target_date,
            target_amount=request.target_amount,
            status=STATUS_UNDISTRIBUTED,
            created_by_id=actor_id,
        )
        self.session.add(record)
        self.session.flush()
        return record

    def get_record(self, record_id: UUID) -> BudgetRecordModel:
        record = self.session.get(BudgetRecordModel, record_id)
        if record is None:
            raise BudgetRecordNotFoundError(str(record_id))
        return record

    def list_records(
        self,
        run_id: UUID | None = None,
        status: str | None = None,
    ) -> list[BudgetRecordModel]:
        stmt = select(BudgetRecordModel)
        if run_id is not None:
            stmt = stmt.where(BudgetRecordModel.run_id == run_id)
        if status is not None:
            stmt = stmt.where(BudgetRecordModel.status == status)
        stmt = stmt.order_by(BudgetRecordModel.target_date, BudgetRecordModel.brand)
        return list(self.session.scalars(stmt))

    def historical_budgets(self, company: str | None = None) -> list[HistoricalBudget]:
        """Every stored brand budget, optionally for one company."""
        budgets = [r.to_historical() for r in self.list_records()]
        if company is None:
            return budgets
        key = normalize_name(company)
        return [b for b in budgets if normalize_name(b.company) == key]

    # =========================================================================
    # Vendor maps
    # =========================================================================

    def save_vendor_map(
        self,
        run_id: UUID,
        total: Decimal,
        payload: Mapping[str, Mapping[str, Any]],
        actor_id: UUID,
    ) -> VendorAdjustmentSnapshotModel:
        """Append a new revision of the vendor map of ``run_id``."""
        current = self.session.scalar(
            select(func.max(VendorAdjustmentSnapshotModel.revision))
            .where(VendorAdjustmentSnapshotModel.run_id == run_id)
        )
        snapshot = VendorAdjustmentSnapshotModel(
            run_id=run_id,
            revision=(current or 0) + 1,
            total=total,
            payload={vendor: dict(entry) for vendor, entry in payload.items()},
            created_by_id=actor_id,
        )
        self.session.add(snapshot)
        self.session.flush()
        logger.info("vendor_map_saved", extra={
            "run_id": run_id,
            "revision": snapshot.revision,
            "vendor_count": len(payload),
        })
        return snapshot

    def latest_vendor_map(self, run_id: UUID) -> dict[str, dict[str, Any]] | None:
        """Payload of the highest revision of ``run_id``, or None."""
        snapshot = self.session.scalar(
            select(VendorAdjustmentSnapshotModel)
            .where(VendorAdjustmentSnapshotModel.run_id == run_id)
            .order_by(VendorAdjustmentSnapshotModel.revision.desc())
            .limit(1)
        )
        if snapshot is None:
            return None
        return dict(snapshot.payload)
