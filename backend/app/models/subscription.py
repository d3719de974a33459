"""
models/subscription.py — Recurring Subscription and who it is shared with.

Monthly-cost normalisation and billing-date arithmetic across billing cycles
live in services/subscription_service.py, not here.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db
from backend.app.models.category import Category, enum_values


class BillingCycle(str, enum.Enum):
    DAILY         = "daily"
    WEEKLY        = "weekly"
    BIWEEKLY      = "biweekly"
    MONTHLY       = "monthly"
    QUARTERLY     = "quarterly"
    SEMI_ANNUALLY = "semi_annually"
    YEARLY        = "yearly"
    ANNUALLY      = "annually"
    LIFETIME      = "lifetime"


class Subscription(db.Model):
    __tablename__ = "subscriptions"

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_subscriptions_price_nonneg"),
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_subscriptions_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    owner_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Price per billing cycle.
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    billing_cycle: Mapped[BillingCycle] = mapped_column(
        Enum(
            BillingCycle,
            name="billing_cycle_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=BillingCycle.MONTHLY,
    )

    category: Mapped[Category] = mapped_column(
        Enum(
            Category,
            name="category_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=Category.ENTERTAINMENT,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # None for lifetime purchases, which never renew.
    next_billing_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    shared_with: Mapped[list["SubscriptionShare"]] = relationship(
        "SubscriptionShare",
        back_populates="subscription",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SubscriptionShare.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Subscription id={self.id} name={self.name!r} "
            f"price={self.price} cycle={self.billing_cycle.value if self.billing_cycle else None}>"
        )


class SubscriptionShare(db.Model):
    __tablename__ = "subscription_shares"

    __table_args__ = (
        UniqueConstraint(
            "subscription_id", "person_id",
            name="uq_subscription_shares_subscription_person",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    subscription_id: Mapped[int] = mapped_column(
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
    )

    subscription: Mapped["Subscription"] = relationship(
        "Subscription",
        back_populates="shared_with",
    )
