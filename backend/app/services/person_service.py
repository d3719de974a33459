"""
services/person_service.py — People: the counterparties of every balance.

Layer rules:
  - No Flask imports. Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.person import Person

logger = logging.getLogger(__name__)


def get_person_or_404(person_id: int, session: Session) -> Person:
    """Returns the Person or raises PERSON_NOT_FOUND (404)."""
    person = session.get(Person, person_id)
    if person is None:
        raise AppError(
            ErrorCode.PERSON_NOT_FOUND,
            f"Person {person_id} does not exist.",
            404,
        )
    return person


def require_people_exist(
        person_ids: Iterable[int],
        session: Session,
        field: str,
) -> None:
    """
    Raises UNKNOWN_PERSON (422) for the first id with no Person row.
    422 rather than 404: the request is well-formed, but refers to someone
    who is not on record.
    """
    wanted = list(dict.fromkeys(person_ids))
    if not wanted:
        return

    found = set(
        session.execute(select(Person.id).where(Person.id.in_(wanted))).scalars().all()
    )
    for person_id in wanted:
        if person_id not in found:
            raise AppError(
                ErrorCode.UNKNOWN_PERSON,
                f"Person {person_id} does not exist.",
                422,
                field=field,
            )


def get_names(person_ids: Iterable[int], session: Session) -> dict[int, str]:
    """{person_id: name} for the given ids. Missing ids are simply absent."""
    wanted = list(set(person_ids))
    if not wanted:
        return {}
    rows = session.execute(
        select(Person.id, Person.name).where(Person.id.in_(wanted))
    ).all()
    return {row.id: row.name for row in rows}


def create_person(data: dict, session: Session) -> Person:
    """
    Records a new person.

    Args:
        data: Validated dict from CreatePersonSchema.
    """
    person = Person(
        name=data["name"].strip(),
        email=data.get("email"),
        phone=data.get("phone"),
        notes=data.get("notes"),
    )
    session.add(person)
    session.flush()
    session.refresh(person)
    logger.info("Created person %s", person.id)
    return person


def list_people(session: Session) -> list[Person]:
    """All people, alphabetically."""
    stmt = select(Person).order_by(Person.name.asc(), Person.id.asc())
    return list(session.execute(stmt).scalars().all())
