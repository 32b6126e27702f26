"""Tests for transaction scoping on the kernel database engine."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from budget_kernel.db.engine import session_scope
from budget_services.orm import STATUS_UNDISTRIBUTED, BudgetRecordModel


def _record(actor_id):
    return BudgetRecordModel(
        run_id=uuid4(),
        brand="Nike",
        company="Alpha",
        target_date=date(2025, 6, 1),
        target_amount=Decimal("10"),
        status=STATUS_UNDISTRIBUTED,
        created_by_id=actor_id,
    )


class TestSessionScope:

    def test_commits_on_success(self, db_engine, test_actor_id):
        with session_scope() as session:
            session.add(_record(test_actor_id))

        with session_scope() as session:
            stored = session.scalars(select(BudgetRecordModel)).all()
        assert len(stored) == 1
        assert stored[0].created_at is not None

    def test_rolls_back_on_error(self, db_engine, test_actor_id):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                session.add(_record(test_actor_id))
                session.flush()
                raise RuntimeError("boom")

        with session_scope() as session:
            assert session.scalars(select(BudgetRecordModel)).all() == []
