"""
budget_services.planning_service -- End-to-end budget planning runs.

Responsibility:
    Orchestrates one calculation run: resolves the reference window,
    distributes every brand budget request, records the outcome in the
    budget store, and opens/commits vendor redistribution sessions over
    the run's results.  Also serves brand suggestions from stored history.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes resolve_range/resolve_selection, BudgetDistributionCalculator,
    VendorRedistributionSession and suggest_brand_distribution (pure
    engines) with BudgetStore (I/O).

Invariants enforced:
    - An invalid reference period never raises out of ``run``: every
      request of the batch is reported as an INVALID_PERIOD error.
    - Requests with no historical sales are still recorded with their
      raw amount (status ``undistributed``); other failures are not.
    - A vendor map is persisted only after ``apply()`` succeeded.

Failure modes:
    - ReconciliationMismatchError from ``commit_vendor_session`` (nothing
      is persisted).
    - RuntimeError when a store-backed operation is called without a
      store.

Usage:
    with session_scope() as session:
        service = BudgetPlanningService(get_active_config(), BudgetStore(session))
        batch = service.run(requests, sales, catalog, brands, companies,
                            start="2025-01", end="2025-03", actor_id=actor)
        vendor_session = service.open_vendor_session(batch)
        vendor_session.set_amount("V1", Decimal("100"))
        service.commit_vendor_session(vendor_session, batch.run_id, actor)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from decimal import Decimal
from uuid import UUID, uuid4

from budget_config.schema import EngineSettings
from budget_engines.distribution import BudgetDistributionCalculator
from budget_engines.reconciliation import ReconciliationOutcome, VendorRedistributionSession
from budget_engines.reference import resolve_range, resolve_selection
from budget_engines.suggestion import suggest_brand_distribution
from budget_kernel.domain.models import (
    AllocationError,
    BrandBudgetRequest,
    BrandSuggestion,
    DistributionBatch,
    ErrorKind,
    SalesRecord,
)
from budget_kernel.exceptions import InvalidPeriodError
from budget_kernel.logging_config import LogContext, get_logger
from budget_services.budget_store import BudgetStore

logger = get_logger("services.planning")

# Actor recorded when a caller does not name one.
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000000")


class BudgetPlanningService:
    """
    Runs budget calculations and keeps their results.

    Contract:
        Given brand budget requests, the sales history, the period catalog
        and the master lists, produce a DistributionBatch and (when a store
        is configured) persist it under a run id.

    Non-goals:
        - Does NOT own master data or the sales feed; both are inputs.
        - Does NOT manage transactions; callers wrap calls in
          ``session_scope()``.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        store: BudgetStore | None = None,
    ):
        self.settings = settings or EngineSettings()
        self.store = store
        self.calculator = BudgetDistributionCalculator.from_settings(self.settings)

    # =========================================================================
    # Calculation runs
    # =========================================================================

    def run(
        self,
        requests: Sequence[BrandBudgetRequest],
        sales: Sequence[SalesRecord],
        catalog: Sequence[str],
        brands: Iterable[str],
        companies: Iterable[str],
        start: str | None = None,
        end: str | None = None,
        selected: Iterable[str] | None = None,
        run_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> DistributionBatch:
        """
        Resolve the reference window, distribute and record one batch.

        ``selected`` (an explicit checklist) wins over ``start``/``end``.

        Returns:
            DistributionBatch tagged with the run id.
        """
        run_id = run_id or uuid4()
        actor_id = actor_id or SYSTEM_ACTOR_ID

        with LogContext.bind(run_id=run_id, actor_id=actor_id):
            logger.info("planning_run_started", extra={
                "request_count": len(requests),
                "sales_count": len(sales),
            })

            try:
                if selected is not None:
                    periods = resolve_selection(catalog, selected)
                else:
                    periods = resolve_range(catalog, start, end)
            except InvalidPeriodError as e:
                logger.warning("planning_run_invalid_period", extra={
                    "period": e.period,
                    "reason": e.reason,
                })
                return DistributionBatch(
                    results=(),
                    errors=tuple(AllocationError.from_exception(e, r) for r in requests),
                    run_id=run_id,
                )

            batch = replace(
                self.calculator.calculate(
                    requests=requests,
                    sales=sales,
                    reference_periods=periods,
                    brands=brands,
                    companies=companies,
                ),
                run_id=run_id,
            )

            if self.store is not None:
                self._record(batch, requests, actor_id)

            logger.info("planning_run_completed", extra={
                "result_count": len(batch.results),
                "error_count": len(batch.errors),
                "overall_total": str(batch.overall_total),
            })
            return batch

    def _record(
        self,
        batch: DistributionBatch,
        requests: Sequence[BrandBudgetRequest],
        actor_id: UUID,
    ) -> None:
        for result in batch.results:
            self.store.record_distributed(batch.run_id, result, actor_id)

        undistributed = {
            (e.brand, e.company, e.target_date)
            for e in batch.errors_of(ErrorKind.NO_HISTORICAL_SALES)
        }
        for request in requests:
            if (request.brand, request.company, request.target_date) in undistributed:
                self.store.record_undistributed(batch.run_id, request, actor_id)

    # =========================================================================
    # Vendor redistribution
    # =========================================================================

    def open_vendor_session(
        self,
        batch: DistributionBatch,
        run_id: UUID | None = None,
    ) -> VendorRedistributionSession:
        """
        Open a vendor session over ``batch``.

        When a store is configured and the run already has a committed
        vendor map, its locked vendors are re-hydrated into the session.
        """
        run_id = run_id or batch.run_id
        payload = None
        if self.store is not None and run_id is not None:
            payload = self.store.latest_vendor_map(run_id)

        if payload:
            logger.info("vendor_session_rehydrated", extra={
                "run_id": run_id,
                "vendor_count": len(payload),
            })
            return VendorRedistributionSession.from_persisted(
                batch.results,
                payload,
                decimal_places=self.settings.currency_decimal_places,
                tolerance=self.settings.reconciliation_tolerance,
            )
        return VendorRedistributionSession.from_results(
            batch.results,
            decimal_places=self.settings.currency_decimal_places,
            tolerance=self.settings.reconciliation_tolerance,
        )

    def commit_vendor_session(
        self,
        session: VendorRedistributionSession,
        run_id: UUID,
        actor_id: UUID | None = None,
    ) -> ReconciliationOutcome:
        """
        Apply ``session`` and persist the resulting vendor map.

        Raises:
            ReconciliationMismatchError: If the session does not reconcile.
                Nothing is persisted.
        """
        store = self._require_store()
        actor_id = actor_id or SYSTEM_ACTOR_ID
        with LogContext.bind(run_id=run_id, actor_id=actor_id):
            outcome = session.apply()
            store.save_vendor_map(run_id, outcome.total, outcome.to_persisted(), actor_id)
        return outcome

    # =========================================================================
    # Suggestions
    # =========================================================================

    def suggest(
        self,
        total: Decimal,
        company: str,
        brands: Iterable[str] = (),
    ) -> list[BrandSuggestion]:
        """Suggest a brand split of ``total`` from the stored budgets."""
        store = self._require_store()
        return suggest_brand_distribution(
            total=total,
            company=company,
            historical_budgets=store.historical_budgets(company),
            brands=brands,
            decimal_places=self.settings.currency_decimal_places,
        )

    def _require_store(self) -> BudgetStore:
        if self.store is None:
            raise RuntimeError("BudgetPlanningService has no BudgetStore configured")
        return self.store
