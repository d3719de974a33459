"""
services/group_service.py — Groups, membership and group expenses.

Authorization rules:
  - Reading a group or its expenses: members only (FORBIDDEN 403).
  - Adding a member: any current member.
  - Adding an expense: any current member; the payer and everyone in
    split_between must also be members.
  - Settling an expense: any current member.

A group expense is always an equal split. Its per-person amounts come from
split_calculator.equal_shares(), so the remainder cents land on the same
people here as in balance_service.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app import signals
from backend.app.errors import AppError, ErrorCode
from backend.app.models.category import Category
from backend.app.models.group import Group
from backend.app.models.group_expense import GroupExpense, GroupExpenseShare
from backend.app.models.group_member import GroupMember
from backend.app.models.person import Person
from backend.app.services import person_service, split_calculator

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


def _member_ids(group_id: int, session: Session) -> list[int]:
    stmt = (
        select(GroupMember.person_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def _require_member(group_id: int, person_id: int, session: Session) -> None:
    """
    Raises FORBIDDEN (403) if person_id is not a member of group_id.
    Non-members receive 403, not 404.
    """
    if person_id not in _member_ids(group_id, session):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not a member of group {group_id}.",
            403,
        )


def _build_group_dict(group: Group, members: list[Person]) -> dict:
    """Serialises a Group with its member list to a plain dict."""
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "emoji": group.emoji,
        "created_at": group.created_at.isoformat(),
        "members": [
            {
                "id": m.id,
                "name": m.name,
            }
            for m in members
        ],
    }


def _members_of(group_id: int, session: Session) -> list[Person]:
    stmt = (
        select(Person)
        .join(GroupMember, Person.id == GroupMember.person_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def _get_expense_or_404(group_id: int, expense_id: int, session: Session) -> GroupExpense:
    expense = session.get(GroupExpense, expense_id)
    if expense is None or expense.group_id != group_id:
        raise AppError(
            ErrorCode.GROUP_EXPENSE_NOT_FOUND,
            f"Expense {expense_id} does not exist in group {group_id}.",
            404,
        )
    return expense


# ── Public service functions ───────────────────────────────────────────────

def create_group(caller_id: int, data: dict, session: Session) -> dict:
    """
    Creates a new group. The caller becomes the first member; any extra
    member_ids are added after them in the order given.

    Args:
        caller_id: The acting person (flask.g.person_id, passed by the route
                   as a plain int).
        data:      Validated dict from CreateGroupSchema.

    Raises:
        AppError(UNKNOWN_PERSON, 422) — a member id has no Person row.
    """
    extra_ids = [pid for pid in data.get("member_ids", []) if pid != caller_id]
    person_service.require_people_exist(extra_ids, session, field="member_ids")

    group = Group(
        name=data["name"].strip(),
        description=data.get("description") or "",
        emoji=data.get("emoji") or "",
    )
    session.add(group)
    session.flush()  # populate group.id before creating memberships

    for person_id in dict.fromkeys([caller_id, *extra_ids]):
        session.add(GroupMember(person_id=person_id, group_id=group.id))
    session.flush()
    session.refresh(group)

    logger.info("Created group %s with %s members", group.id, 1 + len(set(extra_ids)))
    return _build_group_dict(group, _members_of(group.id, session))


def list_groups(caller_id: int, session: Session) -> list[dict]:
    """
    Returns all groups the caller belongs to, ordered by creation date.

    Lightweight dicts (no member list). The full list comes from get_group().
    """
    stmt = (
        select(Group)
        .join(GroupMember, Group.id == GroupMember.group_id)
        .where(GroupMember.person_id == caller_id)
        .order_by(Group.created_at.asc(), Group.id.asc())
    )
    groups = session.execute(stmt).scalars().all()

    return [
        {
            "id": g.id,
            "name": g.name,
            "description": g.description,
            "emoji": g.emoji,
            "created_at": g.created_at.isoformat(),
        }
        for g in groups
    ]


def get_group(group_id: int, caller_id: int, session: Session) -> dict:
    """Full group details including current member list. Members only."""
    group = _get_group_or_404(group_id, session)
    _require_member(group_id, caller_id, session)
    return _build_group_dict(group, _members_of(group_id, session))


def add_member(group_id: int, person_id: int, caller_id: int, session: Session) -> dict:
    """
    Adds an existing person to a group.

    Raises:
        AppError(GROUP_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403)       — caller is not a member.
        AppError(UNKNOWN_PERSON, 422)  — person_id has no Person row.
        AppError(ALREADY_MEMBER, 409)
    """
    group = _get_group_or_404(group_id, session)
    _require_member(group_id, caller_id, session)
    person_service.require_people_exist([person_id], session, field="person_id")

    if person_id in _member_ids(group_id, session):
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            f"Person {person_id} is already a member of group {group_id}.",
            409,
            field="person_id",
        )

    session.add(GroupMember(person_id=person_id, group_id=group_id))
    session.flush()
    logger.info("Person %s joined group %s", person_id, group_id)
    return _build_group_dict(group, _members_of(group_id, session))


def add_group_expense(
        group_id: int,
        caller_id: int,
        data: dict,
        session: Session,
) -> GroupExpense:
    """
    Records an expense split equally among split_between.

    Raises:
        AppError(PAYER_NOT_MEMBER, 422)
        AppError(SPLIT_PERSON_NOT_MEMBER, 422)
        InvalidSplitError (422) — amount or split_between unusable.
    """
    _get_group_or_404(group_id, session)
    _require_member(group_id, caller_id, session)

    members = set(_member_ids(group_id, session))
    paid_by = data["paid_by_person_id"]
    split_between: list[int] = data["split_between"]

    if paid_by not in members:
        raise AppError(
            ErrorCode.PAYER_NOT_MEMBER,
            f"Person {paid_by} is not a member of group {group_id}.",
            422,
            field="paid_by_person_id",
        )
    for person_id in split_between:
        if person_id not in members:
            raise AppError(
                ErrorCode.SPLIT_PERSON_NOT_MEMBER,
                f"Person {person_id} is not a member of group {group_id}.",
                422,
                field="split_between",
            )

    # Rejects an empty list, duplicates and a non-positive amount.
    split_calculator.equal_shares(data["amount"], split_between)

    expense = GroupExpense(
        group_id=group_id,
        title=data["title"].strip(),
        amount=data["amount"],
        paid_by_person_id=paid_by,
        category=data.get("category", Category.OTHER),
        notes=data.get("notes") or "",
        is_settled=False,
    )
    if data.get("date") is not None:
        expense.date = data["date"]
    expense.shares = [
        GroupExpenseShare(person_id=pid, position=position)
        for position, pid in enumerate(split_between)
    ]

    session.add(expense)
    session.flush()
    session.refresh(expense)

    logger.info(
        "Added expense %s to group %s (amount %s, %s people)",
        expense.id, group_id, expense.amount, len(split_between),
    )
    signals.balances_changed.send(__name__, person_ids={paid_by, *split_between})
    return expense


def list_group_expenses(group_id: int, caller_id: int, session: Session) -> list[GroupExpense]:
    """All expenses of a group, newest first. Members only."""
    _get_group_or_404(group_id, session)
    _require_member(group_id, caller_id, session)

    stmt = (
        select(GroupExpense)
        .where(GroupExpense.group_id == group_id)
        .order_by(GroupExpense.date.desc(), GroupExpense.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def settle_group_expense(
        group_id: int,
        expense_id: int,
        caller_id: int,
        session: Session,
) -> GroupExpense:
    """Marks a group expense settled. Settling twice is a no-op."""
    _get_group_or_404(group_id, session)
    _require_member(group_id, caller_id, session)
    expense = _get_expense_or_404(group_id, expense_id, session)

    if not expense.is_settled:
        expense.is_settled = True
        session.flush()
        logger.info("Settled expense %s in group %s", expense_id, group_id)
        signals.group_expense_settled.send(__name__, group_expense=expense)
        signals.balances_changed.send(
            __name__,
            person_ids={expense.paid_by_person_id, *expense.split_between},
        )

    return expense
