"""
Module: budget_engines.reconciliation
Responsibility:
    Manual per-vendor budget overrides with proportional redistribution of
    whatever the overrides leave over.  One ``VendorRedistributionSession``
    holds the state of one interactive editing session.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Built from a calculation run's BrandDistributionResults; persisted and
    re-hydrated by ``budget_services`` through ``to_persisted`` /
    ``from_persisted``.

Invariants enforced:
    - The snapshot is taken once per session and never changes.
    - Exactly one of amount/percentage is authoritative per edited vendor;
      the other is derived by ``budget_engines.locked_field.resolve``.
    - ``apply()`` is all-or-nothing: on a mismatch beyond tolerance the
      session state is left exactly as it was before the call.
    - Unadjusted vendors absorb ``total - sum(adjusted)`` in proportion to
      their snapshot amounts; the last unadjusted vendor in snapshot order
      absorbs the rounding residual.
    - Unadjusted vendors are floored at zero, so locked amounts above the
      total fail the tolerance check.

Failure modes:
    - VendorNotFoundError when an operation names a vendor that is not
      in the snapshot.
    - ReconciliationMismatchError from ``apply()`` when the final vendor
      total deviates from the budget total by more than the tolerance.

Usage:
    session = VendorRedistributionSession.from_results(batch.results)
    session.set_amount("V1", Decimal("100"))
    outcome = session.apply()
    outcome.adjustments["V2"].amount  # the remainder, spread by history
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from budget_engines.allocation import ProportionalAllocator
from budget_engines.locked_field import resolve
from budget_kernel.domain.models import (
    BrandDistributionResult,
    LockedField,
    VendorAdjustment,
    VendorShare,
)
from budget_kernel.domain.values import (
    DEFAULT_DECIMAL_PLACES,
    ZERO,
    percentage_of,
    to_decimal,
)
from budget_kernel.exceptions import ReconciliationMismatchError, VendorNotFoundError
from budget_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")

DEFAULT_TOLERANCE = Decimal("1")


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Final per-vendor mapping produced by a successful ``apply()``."""

    total: Decimal
    adjustments: Mapping[str, VendorAdjustment]
    discrepancy: Decimal

    @property
    def final_total(self) -> Decimal:
        return sum((a.amount for a in self.adjustments.values()), ZERO)

    def to_persisted(self) -> dict[str, dict[str, Any]]:
        """``{vendor: {amount, percentage, locked_field}}`` with string decimals."""
        return {vendor: adj.to_dict() for vendor, adj in self.adjustments.items()}


def vendor_snapshot(
    results: Iterable[BrandDistributionResult],
    total: Decimal | None = None,
) -> tuple[tuple[VendorShare, ...], Decimal]:
    """
    Pre-adjustment amount and share of every vendor across ``results``.

    ``total`` defaults to the sum of the results' target amounts.
    Vendors keep first-encounter order.
    """
    results = tuple(results)
    if total is None:
        total = sum((r.target_amount for r in results), ZERO)
    total = to_decimal(total)

    amounts: dict[str, Decimal] = {}
    for result in results:
        for client in result.clients:
            amounts[client.vendor] = amounts.get(client.vendor, ZERO) + client.subtotal

    shares = tuple(
        VendorShare(vendor=v, amount=a, percentage=percentage_of(a, total))
        for v, a in amounts.items()
    )
    return shares, total


class VendorRedistributionSession:
    """
    One editing session over a run's vendor totals.

    The session is an explicit object: nothing about it lives at module
    level, and two sessions never share state.
    """

    def __init__(
        self,
        snapshot: Iterable[VendorShare],
        total: Decimal,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ):
        self._snapshot: dict[str, VendorShare] = {s.vendor: s for s in snapshot}
        self._total = to_decimal(total)
        self._decimal_places = decimal_places
        self._tolerance = to_decimal(tolerance)
        self._allocator = ProportionalAllocator(decimal_places)
        self._working: dict[str, VendorAdjustment] = {}
        self._applied: ReconciliationOutcome | None = None

    @classmethod
    def from_results(
        cls,
        results: Iterable[BrandDistributionResult],
        total: Decimal | None = None,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ) -> VendorRedistributionSession:
        """Open a session over the vendors of a calculation run."""
        snapshot, total = vendor_snapshot(results, total)
        logger.info("vendor_session_opened", extra={
            "vendor_count": len(snapshot),
            "total": str(total),
        })
        return cls(snapshot, total, decimal_places=decimal_places, tolerance=tolerance)

    @classmethod
    def from_persisted(
        cls,
        results: Iterable[BrandDistributionResult],
        payload: Mapping[str, Mapping[str, Any]],
        total: Decimal | None = None,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ) -> VendorRedistributionSession:
        """
        Re-hydrate a session from a persisted vendor map.

        Entries with a locked field re-enter the session as selected vendors
        with their locked value re-resolved against the current total.
        Derived entries are recomputed on the next ``apply()``.  Vendors
        no longer present in the run are skipped.
        """
        session = cls.from_results(
            results, total, decimal_places=decimal_places, tolerance=tolerance,
        )
        for vendor, data in payload.items():
            adjustment = VendorAdjustment.from_dict(vendor, data)
            if adjustment.locked_field is None:
                continue
            if vendor not in session._snapshot:
                logger.warning("persisted_vendor_not_in_run", extra={"vendor": vendor})
                continue
            value = (
                adjustment.amount
                if adjustment.locked_field == LockedField.AMOUNT
                else adjustment.percentage
            )
            session._lock(vendor, adjustment.locked_field, value)
        return session

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def total(self) -> Decimal:
        return self._total

    @property
    def tolerance(self) -> Decimal:
        return self._tolerance

    @property
    def snapshot(self) -> tuple[VendorShare, ...]:
        return tuple(self._snapshot.values())

    @property
    def vendors(self) -> tuple[str, ...]:
        return tuple(self._snapshot)

    @property
    def selected(self) -> tuple[str, ...]:
        return tuple(self._working)

    @property
    def last_outcome(self) -> ReconciliationOutcome | None:
        return self._applied

    def adjustment(self, vendor: str) -> VendorAdjustment | None:
        """Copy of the working adjustment of a selected vendor."""
        self._require(vendor)
        current = self._working.get(vendor)
        return replace(current) if current else None

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def select_vendor(self, vendor: str) -> VendorAdjustment:
        """Begin tracking ``vendor``, seeded with its snapshot values."""
        share = self._require(vendor)
        if vendor not in self._working:
            self._working[vendor] = VendorAdjustment(
                vendor=vendor,
                amount=share.amount,
                percentage=share.percentage,
                locked_field=None,
            )
        return replace(self._working[vendor])

    def set_amount(self, vendor: str, amount: Decimal) -> VendorAdjustment:
        """Lock ``vendor`` to an amount; its percentage is derived."""
        return self._lock(vendor, LockedField.AMOUNT, amount)

    def set_percentage(self, vendor: str, percentage: Decimal) -> VendorAdjustment:
        """Lock ``vendor`` to a percentage; its amount is derived."""
        return self._lock(vendor, LockedField.PERCENTAGE, percentage)

    def deselect_vendor(self, vendor: str) -> None:
        """Stop tracking ``vendor``; it is redistributed automatically again."""
        self._require(vendor)
        self._working.pop(vendor, None)

    def _lock(self, vendor: str, field: LockedField, value: Decimal) -> VendorAdjustment:
        self.select_vendor(vendor)
        resolved = resolve(self._total, field, value, self._decimal_places)
        adjustment = VendorAdjustment(
            vendor=vendor,
            amount=resolved.amount,
            percentage=resolved.percentage,
            locked_field=resolved.locked_field,
        )
        self._working[vendor] = adjustment
        logger.debug("vendor_adjustment_locked", extra={
            "vendor": vendor,
            "locked_field": field.value,
            "amount": str(adjustment.amount),
            "percentage": str(adjustment.percentage),
        })
        return replace(adjustment)

    def _require(self, vendor: str) -> VendorShare:
        try:
            return self._snapshot[vendor]
        except KeyError:
            raise VendorNotFoundError(vendor) from None

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def preview(self) -> ReconciliationOutcome:
        """
        Compute the final mapping without validating or committing it.
        """
        adjusted = {v: replace(a) for v, a in self._working.items()}
        # Unadjusted vendors never go below zero; an over-locked session
        # shows up as a discrepancy instead.
        remaining = max(self._total - sum((a.amount for a in adjusted.values()), ZERO), ZERO)

        # Negative snapshot amounts carry no weight in the redistribution.
        weights = [
            (vendor, max(share.amount, ZERO))
            for vendor, share in self._snapshot.items()
            if vendor not in adjusted
        ]
        redistributed = self._allocator.allocate(total=remaining, weights=weights).as_dict()

        final: dict[str, VendorAdjustment] = {}
        for vendor in self._snapshot:
            if vendor in adjusted:
                final[vendor] = adjusted[vendor]
            else:
                amount = redistributed[vendor]
                final[vendor] = VendorAdjustment(
                    vendor=vendor,
                    amount=amount,
                    percentage=percentage_of(amount, self._total),
                    locked_field=None,
                )

        final_total = sum((a.amount for a in final.values()), ZERO)
        return ReconciliationOutcome(
            total=self._total,
            adjustments=final,
            discrepancy=final_total - self._total,
        )

    def apply(self) -> ReconciliationOutcome:
        """
        Redistribute the remainder and commit the final vendor mapping.

        Raises:
            ReconciliationMismatchError: If the final total deviates from
                the budget total by more than the tolerance.  The session
                is left unchanged.
        """
        outcome = self.preview()
        if abs(outcome.discrepancy) > self._tolerance:
            logger.warning("vendor_reconciliation_mismatch", extra={
                "expected": str(self._total),
                "actual": str(outcome.final_total),
                "tolerance": str(self._tolerance),
                "selected_count": len(self._working),
            })
            raise ReconciliationMismatchError(
                expected=self._total,
                actual=outcome.final_total,
                tolerance=self._tolerance,
            )

        self._applied = outcome
        logger.info("vendor_reconciliation_applied", extra={
            "total": str(self._total),
            "selected_count": len(self._working),
            "vendor_count": len(outcome.adjustments),
            "discrepancy": str(outcome.discrepancy),
        })
        return outcome

    def to_persisted(self) -> dict[str, dict[str, Any]]:
        """
        Serializable vendor map.

        The last applied outcome when there is one, otherwise the vendors
        currently being edited.
        """
        if self._applied is not None:
            return self._applied.to_persisted()
        return {vendor: adj.to_dict() for vendor, adj in self._working.items()}
