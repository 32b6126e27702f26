"""
Tests for client budget transfers.

Covers:
- TRANSFER keeps the brand total
- ADD grows the brand total and recomputes the factor
- Spreading over articles
- Validation
"""

from datetime import date
from decimal import Decimal

import pytest

from budget_engines.transfer import TransferMode, transfer_budget
from budget_kernel.domain.models import (
    ArticleDistribution,
    BrandDistributionResult,
    ClientDistribution,
)
from budget_kernel.exceptions import InvalidTransferError


def _client(name, *amounts):
    return ClientDistribution(
        client=name,
        vendor="V1",
        company="Alpha",
        articles=tuple(
            ArticleDistribution(f"ART-{i}", Decimal(a), Decimal(a))
            for i, a in enumerate(amounts)
        ),
    )


@pytest.fixture
def result():
    return BrandDistributionResult(
        brand="Nike",
        company="Alpha",
        target_date=date(2025, 6, 1),
        target_amount=Decimal("1000"),
        historical_average=Decimal("500"),
        adjustment_factor=Decimal("2"),
        percent_change=Decimal("100"),
        clients=(_client("A", "300", "100"), _client("B", "600")),
    )


class TestTransferMode:
    """Tests for moving budget between clients."""

    def test_transfer_keeps_total(self, result):
        updated = transfer_budget(result, "A", "B", Decimal("200"))

        assert updated.client("A").subtotal == Decimal("200")
        assert updated.client("B").subtotal == Decimal("800")
        assert updated.distributed_total == Decimal("1000")
        assert updated.target_amount == Decimal("1000")

    def test_delta_spread_over_articles(self, result):
        updated = transfer_budget(result, "A", "B", Decimal("200"))

        assert [a.adjusted_amount for a in updated.client("A").articles] == [
            Decimal("150.00"), Decimal("50.00"),
        ]

    def test_input_not_mutated(self, result):
        transfer_budget(result, "A", "B", Decimal("200"))

        assert result.client("A").subtotal == Decimal("400")

    def test_full_subtotal_can_move(self, result):
        updated = transfer_budget(result, "A", "B", Decimal("400"))

        assert updated.client("A").subtotal == Decimal("0")

    def test_exceeding_source_rejected(self, result):
        with pytest.raises(InvalidTransferError, match="exceeds"):
            transfer_budget(result, "A", "B", Decimal("400.01"))


class TestAddMode:
    """Tests for topping up a client."""

    def test_add_grows_total(self, result):
        updated = transfer_budget(result, "A", "B", Decimal("300"), mode="add")

        assert updated.client("A").subtotal == Decimal("400")
        assert updated.client("B").subtotal == Decimal("900")
        assert updated.target_amount == Decimal("1300")
        assert updated.adjustment_factor == Decimal("2.6")
        assert updated.percent_change == Decimal("160")
        assert updated.distributed_total == updated.target_amount

    def test_add_capped_by_source_budget(self, result):
        with pytest.raises(InvalidTransferError, match="exceeds"):
            transfer_budget(result, "A", "B", Decimal("400.01"), mode=TransferMode.ADD)

    def test_add_full_source_budget(self, result):
        updated = transfer_budget(result, "A", "B", Decimal("400"), mode=TransferMode.ADD)

        assert updated.client("A").subtotal == Decimal("400")
        assert updated.target_amount == Decimal("1400")


class TestValidation:
    """Tests for rejected transfers."""

    @pytest.mark.parametrize("amount", ["0", "-1"])
    def test_non_positive_amount(self, result, amount):
        with pytest.raises(InvalidTransferError, match="positive"):
            transfer_budget(result, "A", "B", Decimal(amount))

    def test_same_client(self, result):
        with pytest.raises(InvalidTransferError, match="differ"):
            transfer_budget(result, "A", "A", Decimal("1"))

    def test_unknown_client(self, result):
        with pytest.raises(InvalidTransferError) as exc_info:
            transfer_budget(result, "A", "Z", Decimal("1"))

        assert exc_info.value.code == "INVALID_TRANSFER"
        assert exc_info.value.target == "Z"

    def test_unknown_mode(self, result):
        with pytest.raises(ValueError):
            transfer_budget(result, "A", "B", Decimal("1"), mode="swap")
