"""
models/group_expense.py — GroupExpense and its split_between rows.

The simple special case of a split bill: one payer, an equal split among a
fixed list of group members, and a single is_settled flag for the whole
expense (no per-person settlement).

Key design points:
  - `amount` uses Numeric(12, 2) — never Float.
  - split_between is stored as ordered GroupExpenseShare rows so the list
    order (and therefore who absorbs remainder cents) survives a round trip.
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
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db
from backend.app.models.category import Category, enum_values


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GroupExpense(db.Model):
    __tablename__ = "group_expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_group_expenses_amount_positive"),
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_group_expenses_title_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    paid_by_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
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

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="expenses",
    )

    shares: Mapped[list["GroupExpenseShare"]] = relationship(
        "GroupExpenseShare",
        back_populates="expense",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="GroupExpenseShare.position",
    )

    # ── Convenience properties ─────────────────────────────────────────────

    @property
    def split_between(self) -> list[int]:
        """Person ids sharing this expense, in entry order."""
        return [s.person_id for s in self.shares]

    @property
    def amount_per_person(self) -> Decimal:
        """amount / len(split_between), unrounded."""
        if not self.shares:
            return Decimal("0")
        return self.amount / Decimal(len(self.shares))

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<GroupExpense id={self.id} "
            f"group_id={self.group_id} "
            f"amount={self.amount} "
            f"settled={self.is_settled}>"
        )


class GroupExpenseShare(db.Model):
    __tablename__ = "group_expense_shares"

    __table_args__ = (
        UniqueConstraint(
            "group_expense_id", "person_id",
            name="uq_group_expense_shares_expense_person",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_expense_id: Mapped[int] = mapped_column(
        ForeignKey("group_expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    expense: Mapped["GroupExpense"] = relationship(
        "GroupExpense",
        back_populates="shares",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<GroupExpenseShare expense={self.group_expense_id} "
            f"person={self.person_id}>"
        )
