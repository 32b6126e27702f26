"""
Engine settings schema.

Defines the typed, frozen form of the budget engine configuration.  YAML
documents are parsed into ``EngineSettings`` by the loader; callers only
ever see the frozen instance returned by ``get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from budget_kernel.domain.values import ZERO


@dataclass(frozen=True)
class EngineSettings:
    """
    Numeric and labelling knobs shared by every engine.

    Guarantees:
        - ``currency_decimal_places`` is non-negative.
        - Both tolerances are non-negative Decimals.
        - ``unassigned_vendor`` is a non-empty label.
        - ``max_workers`` is at least 1.
    """

    config_id: str = "budget-defaults"
    version: int = 1
    currency_decimal_places: int = 2
    reconciliation_tolerance: Decimal = Decimal("1")
    distribution_tolerance: Decimal = Decimal("0.01")
    unassigned_vendor: str = "UNASSIGNED"
    max_workers: int = 1
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.currency_decimal_places < 0:
            raise ValueError(
                f"currency_decimal_places cannot be negative: {self.currency_decimal_places}"
            )
        if self.reconciliation_tolerance < ZERO:
            raise ValueError(
                f"reconciliation_tolerance cannot be negative: {self.reconciliation_tolerance}"
            )
        if self.distribution_tolerance < ZERO:
            raise ValueError(
                f"distribution_tolerance cannot be negative: {self.distribution_tolerance}"
            )
        if not self.unassigned_vendor.strip():
            raise ValueError("unassigned_vendor cannot be empty")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1: {self.max_workers}")
