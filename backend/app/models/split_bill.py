"""
models/split_bill.py — SplitBill table definition.

One bill shared among people. Participants are stored as ordered child rows
(models/split_participant.py); their amounts always add up to total_amount.
That sum is enforced by services/split_calculator.py before the write, not
by a DB constraint.

Key design points:
  - `total_amount` uses Numeric(12, 2) — never Float.
  - `deleted_at` is NULL for active bills. Soft-deleted bills keep their
    participant rows but contribute nothing to balances.
  - After creation only participant settlement state and `deleted_at` change.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db
from backend.app.models.category import Category, enum_values


class SplitType(str, enum.Enum):
    EQUALLY       = "equally"
    EXACT_AMOUNTS = "exact_amounts"
    PERCENTAGES   = "percentages"
    SHARES        = "shares"
    ADJUSTMENTS   = "adjustments"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SplitBill(db.Model):
    __tablename__ = "split_bills"

    __table_args__ = (
        CheckConstraint("total_amount > 0", name="ck_split_bills_total_positive"),
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_split_bills_title_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    # The payer does not have to be a participant.
    paid_by_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    created_by_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
    )

    split_type: Mapped[SplitType] = mapped_column(
        Enum(
            SplitType,
            name="split_type_enum",
            values_callable=enum_values,
        ),
        nullable=False,
    )

    category: Mapped[Category] = mapped_column(
        Enum(
            Category,
            name="category_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=Category.OTHER,
    )

    # When the expense happened (user supplied); created_at is when it was recorded.
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    payer: Mapped["Person"] = relationship(  # noqa: F821
        "Person",
        foreign_keys=[paid_by_person_id],
    )

    # Ordered by position: remainder cents were assigned in this order.
    participants: Mapped[list["SplitParticipant"]] = relationship(  # noqa: F821
        "SplitParticipant",
        back_populates="split_bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SplitParticipant.position",
    )

    @property
    def is_deleted(self) -> bool:
        """True if this bill has been soft-deleted."""
        return self.deleted_at is not None

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SplitBill id={self.id} "
            f"total={self.total_amount} "
            f"type={self.split_type.value if self.split_type else None} "
            f"deleted={self.is_deleted}>"
        )
