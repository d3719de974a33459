"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against in-memory SQLite (TestingConfig).
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order (children first)
    so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - make_person(client, ...)       → person dict
  - as_person(person_id)           → {"X-Person-Id": "<id>"}
  - make_split_bill(client, ...)   → HTTP response
  - make_group(client, ...)        → group dict
  - make_group_expense(...)        → HTTP response
  - make_transaction(...)          → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest

from backend.app import create_app
from backend.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.
    Tables are created up front and dropped at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test.

    sorted_tables is parent-first, so reversing it deletes children before
    the rows they reference.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test
        for table in reversed(_db.metadata.sorted_tables):
            _db.session.execute(table.delete())
        _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def as_person(person_id: int) -> dict:
    """Returns the acting-person header dict for use in test requests."""
    return {"X-Person-Id": str(person_id)}


def make_person(client, name: str = "Alice", **extra) -> dict:
    """Creates a person and returns the person data dict."""
    resp = client.post("/api/v1/people", json={"name": name, **extra})
    assert resp.status_code == 201, f"make_person failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_split_bill(
    client,
    caller_id: int,
    paid_by_person_id: int,
    total_amount: str,
    participants: list[dict],
    split_type: str = "equally",
    title: str = "Dinner",
    category: str = "dining",
):
    """
    Creates a split bill and returns the HTTP response.
    participants is a list of {"person_id", ...per-type input} dicts.
    """
    return client.post(
        "/api/v1/split-bills",
        json={
            "title": title,
            "total_amount": total_amount,
            "paid_by_person_id": paid_by_person_id,
            "split_type": split_type,
            "category": category,
            "participants": participants,
        },
        headers=as_person(caller_id),
    )


def make_group(client, caller_id: int, name: str = "Trip", member_ids=None) -> dict:
    """Creates a group and returns the group data dict. The caller is the first member."""
    payload: dict = {"name": name}
    if member_ids is not None:
        payload["member_ids"] = member_ids
    resp = client.post("/api/v1/groups", json=payload, headers=as_person(caller_id))
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_group_expense(
    client,
    caller_id: int,
    group_id: int,
    paid_by_person_id: int,
    amount: str,
    split_between: list[int],
    title: str = "Groceries",
):
    """Creates a group expense and returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/expenses",
        json={
            "title": title,
            "amount": amount,
            "paid_by_person_id": paid_by_person_id,
            "split_between": split_between,
        },
        headers=as_person(caller_id),
    )


def make_transaction(client, caller_id: int, counterparty_id: int, amount: str, title: str = "Loan"):
    """Records a transaction owned by caller_id and returns the HTTP response."""
    return client.post(
        "/api/v1/transactions",
        json={
            "counterparty_person_id": counterparty_id,
            "title": title,
            "amount": amount,
        },
        headers=as_person(caller_id),
    )
