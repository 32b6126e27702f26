"""
Module: budget_engines.distribution
Responsibility:
    Turn brand budget requests into full client/article breakdowns scaled
    from historical sales, collecting per-request failures instead of
    aborting the batch.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Orchestrates the sales aggregator and the ratio split from
    ``budget_engines.allocation``; consumed by
    ``budget_services.planning_service``.

Invariants enforced:
    - Period dilution: every average divides by the size of the requested
      reference window.
    - ``adjustment_factor = target_amount / historical_average`` and
      ``percent_change = (adjustment_factor - 1) * 100``.
    - Exact reconciliation: adjusted amounts are a ratio split of the
      target, so client subtotals sum to ``target_amount`` exactly.  The
      last article in encounter order absorbs the rounding residual.
    - A client's vendor is the vendor on its first matching sales record;
      an empty vendor is reported under ``unassigned_vendor``.
    - Result and error order follow request order, also when requests are
      processed in parallel.

Failure modes (collected as AllocationError, never raised out of a batch):
    - UNKNOWN_BRAND / UNKNOWN_COMPANY on master-list lookup failure.
    - NO_HISTORICAL_SALES when nothing matches brand + company + window.
    - ZERO_AVERAGE when the matching sales net to exactly zero.

Usage:
    calculator = BudgetDistributionCalculator(decimal_places=2)
    batch = calculator.calculate(
        requests=requests,
        sales=sales,
        reference_periods=ReferencePeriodSet(("2025-02", "2025-01")),
        brands=["Nike"],
        companies=["Alpha"],
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from decimal import Decimal

from budget_engines.aggregation import (
    by_client_article,
    filter_records,
    period_average,
    sum_by_key,
)
from budget_engines.allocation import split_by_ratio
from budget_engines.tracer import traced_engine
from budget_kernel.domain.models import (
    AllocationError,
    ArticleDistribution,
    BrandBudgetRequest,
    BrandDistributionResult,
    ClientDistribution,
    DistributionBatch,
    ReferencePeriodSet,
    SalesRecord,
    normalize_name,
)
from budget_kernel.domain.values import DEFAULT_DECIMAL_PLACES, HUNDRED, ZERO
from budget_kernel.exceptions import (
    DistributionError,
    MasterDataError,
    NoHistoricalSalesError,
    UnknownBrandError,
    UnknownCompanyError,
    ZeroAverageError,
)
from budget_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.distribution")

DEFAULT_UNASSIGNED_VENDOR = "UNASSIGNED"


class BudgetDistributionCalculator:
    """
    Scale historical sales into a client/article budget breakdown.

    Contract:
        Pure function of (requests, sales, reference_periods, master lists).
        No I/O, no database access, no clock.
    Guarantees:
        - One BrandDistributionResult per successful request.
        - One AllocationError per failed request; the batch always runs
          to completion.
    """

    def __init__(
        self,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
        distribution_tolerance: Decimal = Decimal("0.01"),
        unassigned_vendor: str = DEFAULT_UNASSIGNED_VENDOR,
        max_workers: int = 1,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.decimal_places = decimal_places
        self.distribution_tolerance = distribution_tolerance
        self.unassigned_vendor = unassigned_vendor
        self.max_workers = max_workers

    @classmethod
    def from_settings(cls, settings) -> BudgetDistributionCalculator:
        """Build a calculator from ``budget_config.EngineSettings``."""
        return cls(
            decimal_places=settings.currency_decimal_places,
            distribution_tolerance=settings.distribution_tolerance,
            unassigned_vendor=settings.unassigned_vendor,
            max_workers=settings.max_workers,
        )

    @traced_engine(
        "distribution", "1.0",
        fingerprint_fields=("requests", "reference_periods", "brands", "companies"),
    )
    def calculate(
        self,
        requests: Sequence[BrandBudgetRequest],
        sales: Sequence[SalesRecord],
        reference_periods: ReferencePeriodSet,
        brands: Iterable[str],
        companies: Iterable[str],
    ) -> DistributionBatch:
        """
        Distribute every request of a batch.

        Returns:
            DistributionBatch with results and errors in request order.
        """
        brand_keys = frozenset(normalize_name(b) for b in brands)
        company_keys = frozenset(normalize_name(c) for c in companies)

        logger.info("distribution_batch_started", extra={
            "request_count": len(requests),
            "sales_count": len(sales),
            "period_count": len(reference_periods),
            "max_workers": self.max_workers,
        })

        def process(request: BrandBudgetRequest):
            with LogContext.bind_request(request):
                try:
                    return self._calculate_request(
                        request, sales, reference_periods, brand_keys, company_keys,
                    ), None
                except (MasterDataError, DistributionError) as e:
                    logger.warning("distribution_request_failed", extra={
                        "error_code": e.code,
                    })
                    return None, AllocationError.from_exception(e, request)

        if self.max_workers > 1 and len(requests) > 1:
            # Workers start from the caller's context so run fields carry over.
            parent = copy_context()
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes = list(pool.map(lambda r: parent.copy().run(process, r), requests))
        else:
            outcomes = [process(request) for request in requests]

        results = tuple(r for r, _ in outcomes if r is not None)
        errors = tuple(e for _, e in outcomes if e is not None)

        logger.info("distribution_batch_completed", extra={
            "result_count": len(results),
            "error_count": len(errors),
        })
        return DistributionBatch(
            results=results,
            errors=errors,
            reference_periods=reference_periods,
        )

    def calculate_one(
        self,
        request: BrandBudgetRequest,
        sales: Sequence[SalesRecord],
        reference_periods: ReferencePeriodSet,
        brands: Iterable[str],
        companies: Iterable[str],
    ) -> BrandDistributionResult:
        """
        Distribute a single request, raising instead of collecting.

        Raises:
            UnknownBrandError, UnknownCompanyError, NoHistoricalSalesError,
            ZeroAverageError.
        """
        with LogContext.bind_request(request):
            return self._calculate_request(
                request,
                sales,
                reference_periods,
                frozenset(normalize_name(b) for b in brands),
                frozenset(normalize_name(c) for c in companies),
            )

    def _calculate_request(
        self,
        request: BrandBudgetRequest,
        sales: Sequence[SalesRecord],
        reference_periods: ReferencePeriodSet,
        brand_keys: frozenset[str],
        company_keys: frozenset[str],
    ) -> BrandDistributionResult:
        if normalize_name(request.brand) not in brand_keys:
            raise UnknownBrandError(request.brand)
        if normalize_name(request.company) not in company_keys:
            raise UnknownCompanyError(request.company)

        records = filter_records(sales, request.brand, request.company, reference_periods)
        if not records:
            raise NoHistoricalSalesError(
                request.brand, request.company, reference_periods.periods,
            )

        period_count = len(reference_periods)
        brand_total = sum((r.amount for r in records), ZERO)
        historical_average = period_average(brand_total, period_count)
        if historical_average == ZERO:
            raise ZeroAverageError(request.brand, request.company, len(records))

        adjustment_factor = request.target_amount / historical_average
        percent_change = (adjustment_factor - 1) * HUNDRED

        # client -> vendor of its first record, article sums grouped per client
        vendors: dict[str, str] = {}
        for record in records:
            if record.client not in vendors:
                vendors[record.client] = record.vendor.strip() or self.unassigned_vendor

        article_sums = sum_by_key(records, by_client_article)
        grouped: dict[str, list[tuple[str, Decimal]]] = {}
        for (client, article), amount in article_sums.items():
            grouped.setdefault(client, []).append((article, amount))

        ordered = [
            ((client, article), amount)
            for client, articles in grouped.items()
            for article, amount in articles
        ]
        adjusted = split_by_ratio(
            request.target_amount, ordered, self.decimal_places,
        ).as_dict()

        clients = tuple(
            ClientDistribution(
                client=client,
                vendor=vendors[client],
                company=request.company,
                articles=tuple(
                    ArticleDistribution(
                        article=article,
                        historical_average=period_average(amount, period_count),
                        adjusted_amount=adjusted[(client, article)],
                    )
                    for article, amount in articles
                ),
            )
            for client, articles in grouped.items()
        )

        result = BrandDistributionResult(
            brand=request.brand,
            company=request.company,
            target_date=request.target_date,
            target_amount=request.target_amount,
            historical_average=historical_average,
            adjustment_factor=adjustment_factor,
            percent_change=percent_change,
            clients=clients,
        )

        # INVARIANT: client subtotals reconcile to the target amount
        discrepancy = abs(result.distributed_total - request.target_amount)
        assert discrepancy <= self.distribution_tolerance, (
            f"Distribution for {request.brand!r} off by {discrepancy}"
        )

        logger.debug("distribution_request_completed", extra={
            "target_amount": str(request.target_amount),
            "historical_average": str(historical_average),
            "adjustment_factor": str(adjustment_factor),
            "client_count": len(clients),
        })
        return result
