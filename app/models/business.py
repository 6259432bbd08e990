"""
Business Model
Client businesses managed by coaches. Owned by the coaching platform;
mapped here for ownership checks and foreign keys.
"""

import uuid
from typing import Optional

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base import Base, TimestampMixin, UUIDMixin


class Business(Base, UUIDMixin, TimestampMixin):
    """
    A coached business.

    Attributes:
        id: Unique identifier (UUID)
        name: Business name
        owner_id: Auth user id of the business owner (client)
        assigned_coach_id: Auth user id of the coach working with the business
    """

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        index=True,
    )

    assigned_coach_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        index=True,
    )

    def has_member(self, user_id: uuid.UUID) -> bool:
        """Whether the user owns or coaches this business."""
        return user_id in (self.owner_id, self.assigned_coach_id)
