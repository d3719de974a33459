"""
models/split_participant.py — One person's share of a SplitBill.

Key design points:
  - `amount` is authoritative for every money calculation.
  - `percentage` is set only on percentage splits and `shares` only on
    share splits; both stay NULL for the other split types.
  - Rows are created together with their bill and removed only by cascade.
    The only mutation is the has_paid / payment_date flip.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class SplitParticipant(db.Model):
    __tablename__ = "split_participants"

    __table_args__ = (
        UniqueConstraint(
            "split_bill_id", "person_id",
            name="uq_split_participants_bill_person",
        ),
        CheckConstraint("amount >= 0", name="ck_split_participants_amount_nonneg"),
        CheckConstraint(
            "percentage IS NULL OR shares IS NULL",
            name="ck_split_participants_one_basis",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    split_bill_id: Mapped[int] = mapped_column(
        ForeignKey("split_bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Order in which the participant was entered.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    percentage: Mapped[Decimal | None] = mapped_column(Numeric(7, 4), nullable=True)

    shares: Mapped[int | None] = mapped_column(Integer, nullable=True)

    has_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    payment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    split_bill: Mapped["SplitBill"] = relationship(  # noqa: F821
        "SplitBill",
        back_populates="participants",
    )

    person: Mapped["Person"] = relationship("Person")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SplitParticipant id={self.id} "
            f"bill={self.split_bill_id} "
            f"person={self.person_id} "
            f"amount={self.amount} "
            f"paid={self.has_paid}>"
        )
