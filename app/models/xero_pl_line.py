"""
Xero P&L Line Model
Normalized Profit & Loss lines, one per business and account.

Lines for a business are replaced wholesale on every sync; there is no
merge with previously stored lines and no history.
"""

import uuid
from enum import Enum
from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base import Base, TimestampMixin, UUIDMixin


class AccountType(str, Enum):
    """Classification of a P&L line by its report section."""

    REVENUE = "revenue"
    COGS = "cogs"
    OPEX = "opex"
    OTHER_INCOME = "other_income"
    OTHER_EXPENSE = "other_expense"
    OTHER = "other"


class XeroPLLine(Base, UUIDMixin, TimestampMixin):
    """
    One account line from the monthly P&L report.

    Attributes:
        id: Unique identifier (UUID)
        business_id: Business the line belongs to
        account_name: Account name as shown in Xero
        account_type: revenue, cogs, opex, other_income, other_expense or other
        section: Title of the report section the account appeared under
        monthly_values: Month key (YYYY-MM) to amount
    """

    __tablename__ = "xero_pl_lines"

    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    account_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AccountType.OTHER.value,
    )

    section: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Xero report section title",
    )

    monthly_values: Mapped[dict[str, Any]] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=False,
        default=dict,
        comment="Month key (YYYY-MM) to amount",
    )

    __table_args__ = (
        Index("ix_xero_pl_lines_business_id", "business_id"),
    )

    def __repr__(self) -> str:
        return f"<XeroPLLine(business_id={self.business_id}, account={self.account_name!r}, type={self.account_type})>"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "account_name": self.account_name,
            "account_type": self.account_type,
            "section": self.section,
            "monthly_values": dict(self.monthly_values or {}),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
