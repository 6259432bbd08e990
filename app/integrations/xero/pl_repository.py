"""
P&L Line Repository
Storage for normalized P&L lines.
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.integrations.xero.exceptions import PLPersistenceError
from app.models.xero_pl_line import XeroPLLine

logger = logging.getLogger(__name__)


class PLLineRepository:
    """Replace-and-read access to a business's P&L lines."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def replace_lines(self, business_id: UUID, lines: Sequence[dict]) -> int:
        """
        Replace every stored line for the business.

        The delete is committed before the insert. If the insert fails the
        business is left with no lines until the next successful sync.

        Args:
            business_id: Business UUID
            lines: Normalized lines (may be empty)

        Returns:
            Number of lines stored

        Raises:
            PLPersistenceError: If the delete or the insert fails
        """
        try:
            await self.db.execute(
                delete(XeroPLLine).where(XeroPLLine.business_id == business_id)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to clear P&L lines for business %s: %s", business_id, e)
            raise PLPersistenceError("Database delete failed") from e

        if not lines:
            logger.info("No P&L lines to store for business %s", business_id)
            return 0

        try:
            self.db.add_all(
                [
                    XeroPLLine(
                        business_id=business_id,
                        account_name=line["account_name"],
                        account_type=line["account_type"],
                        section=line["section"],
                        monthly_values=dict(line["monthly_values"]),
                    )
                    for line in lines
                ]
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to insert P&L lines for business %s: %s", business_id, e)
            raise PLPersistenceError("Database insert failed") from e

        return len(lines)

    async def list_lines(self, business_id: UUID) -> list[XeroPLLine]:
        result = await self.db.execute(
            select(XeroPLLine)
            .where(XeroPLLine.business_id == business_id)
            .order_by(XeroPLLine.account_type, XeroPLLine.account_name)
        )
        return list(result.scalars().all())
