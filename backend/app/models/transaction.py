"""
models/transaction.py — Direct person-to-person Transaction.

Sign convention for `amount`, seen from the owner (the person who recorded
it): positive means the counterparty owes the owner, negative means the
owner owes the counterparty. Zero is rejected by the schema.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
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


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Transaction(db.Model):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount <> 0", name="ck_transactions_amount_nonzero"),
        CheckConstraint(
            "owner_person_id <> counterparty_person_id",
            name="ck_transactions_no_self",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    owner_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    counterparty_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # Signed Numeric(12, 2).
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    category: Mapped[Category] = mapped_column(
        Enum(
            Category,
            name="category_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=Category.OTHER,
    )

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    is_settled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    counterparty: Mapped["Person"] = relationship(  # noqa: F821
        "Person",
        foreign_keys=[counterparty_person_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Transaction id={self.id} "
            f"owner={self.owner_person_id} "
            f"counterparty={self.counterparty_person_id} "
            f"amount={self.amount}>"
        )
