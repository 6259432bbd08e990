# tests/unit/xero/test_pl_repository.py
"""
Tests for PLLineRepository.replace_lines.
"""
import uuid
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from app.integrations.xero.exceptions import PLPersistenceError
from app.integrations.xero.pl_repository import PLLineRepository
from app.models import XeroPLLine


def _line(business_id: uuid.UUID, name: str) -> dict:
    return {
        "business_id": business_id,
        "account_name": name,
        "account_type": "revenue",
        "section": "Income",
        "monthly_values": {"2024-01": 1.0},
    }


class TestReplaceLines:
    """Delete-then-insert replacement of a business's lines."""

    @pytest.mark.asyncio
    async def test_delete_is_committed_before_insert(self, mock_db: Mock) -> None:
        # Arrange
        business_id = uuid.uuid4()
        calls: list[str] = []
        mock_db.execute.side_effect = lambda *a, **k: calls.append("delete")
        mock_db.commit.side_effect = lambda: calls.append("commit")
        mock_db.add_all.side_effect = lambda rows: calls.append("insert")
        repository = PLLineRepository(mock_db)

        # Act
        stored = await repository.replace_lines(
            business_id, [_line(business_id, "Sales"), _line(business_id, "Fees")]
        )

        # Assert
        assert stored == 2
        assert calls == ["delete", "commit", "insert", "commit"]
        rows = mock_db.add_all.call_args.args[0]
        assert all(isinstance(row, XeroPLLine) for row in rows)
        assert [row.account_name for row in rows] == ["Sales", "Fees"]
        assert rows[0].monthly_values == {"2024-01": 1.0}

    @pytest.mark.asyncio
    async def test_empty_list_leaves_zero_lines(self, mock_db: Mock) -> None:
        """Nothing to insert is not an error."""
        repository = PLLineRepository(mock_db)

        stored = await repository.replace_lines(uuid.uuid4(), [])

        assert stored == 0
        mock_db.execute.assert_awaited_once()
        mock_db.add_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_failure_raises(self, mock_db: Mock) -> None:
        # Arrange
        business_id = uuid.uuid4()
        mock_db.commit.side_effect = [None, OperationalError("INSERT", {}, Exception("down"))]
        repository = PLLineRepository(mock_db)

        # Act / Assert
        with pytest.raises(PLPersistenceError) as exc_info:
            await repository.replace_lines(business_id, [_line(business_id, "Sales")])

        assert exc_info.value.message == "Database insert failed"
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_failure_raises(self, mock_db: Mock) -> None:
        mock_db.execute.side_effect = OperationalError("DELETE", {}, Exception("down"))
        repository = PLLineRepository(mock_db)

        with pytest.raises(PLPersistenceError) as exc_info:
            await repository.replace_lines(uuid.uuid4(), [])

        assert exc_info.value.message == "Database delete failed"
        mock_db.add_all.assert_not_called()
