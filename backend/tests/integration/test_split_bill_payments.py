"""
tests/integration/test_split_bill_payments.py — Marking split bill participants paid.

Endpoints covered:
  POST   /split-bills/:id/participants/:pid/payment → 200
  DELETE /split-bills/:id/participants/:pid/payment → 200

Verified:
  - The payer's own share is paid from the start
  - Progress, totals and is_fully_settled follow the paid flags
  - Marking paid twice keeps the first payment_date
  - Only the payer, creator or the participant themself may change the flag
  - Deleted bills cannot be settled (422)
"""

from __future__ import annotations

from decimal import Decimal

from .conftest import as_person, make_person, make_split_bill


def _bill_with_three(client):
    alice = make_person(client, "Alice")
    bob = make_person(client, "Bob")
    cara = make_person(client, "Cara")
    bill = make_split_bill(
        client, alice["id"], alice["id"], "90.00",
        [{"person_id": alice["id"]}, {"person_id": bob["id"]}, {"person_id": cara["id"]}],
    ).get_json()["data"]
    return alice, bob, cara, bill


def _payment_url(bill: dict, participant: dict) -> str:
    return f"/api/v1/split-bills/{bill['id']}/participants/{participant['id']}/payment"


def test_mark_paid_updates_progress(client):
    alice, bob, _, bill = _bill_with_three(client)
    bob_row = bill["participants"][1]

    resp = client.post(_payment_url(bill, bob_row), headers=as_person(alice["id"]))
    assert resp.status_code == 200
    data = resp.get_json()["data"]

    assert data["participants"][1]["has_paid"] is True
    assert data["participants"][1]["payment_date"] is not None
    assert data["settled_count"] == 2
    assert data["pending_count"] == 1
    assert abs(data["settlement_progress"] - 2 / 3) < 1e-9
    assert Decimal(data["total_settled"]) == Decimal("60.00")
    assert Decimal(data["total_pending"]) == Decimal("30.00")
    assert data["is_fully_settled"] is False


def test_payer_share_starts_paid(client):
    _, _, _, bill = _bill_with_three(client)
    assert bill["participants"][0]["has_paid"] is True
    assert bill["settled_count"] == 1
    assert Decimal(bill["total_pending"]) == Decimal("60.00")


def test_payer_outside_the_split_starts_with_nothing_paid(client):
    alice = make_person(client, "Alice")
    bob = make_person(client, "Bob")
    bill = make_split_bill(
        client, alice["id"], alice["id"], "40.00", [{"person_id": bob["id"]}],
    ).get_json()["data"]
    assert bill["settled_count"] == 0
    assert Decimal(bill["total_pending"]) == Decimal("40.00")


def test_fully_settled_once_everyone_else_paid(client):
    alice, _, _, bill = _bill_with_three(client)
    for row in bill["participants"][1:]:
        resp = client.post(_payment_url(bill, row), headers=as_person(alice["id"]))
        assert resp.status_code == 200

    data = resp.get_json()["data"]
    assert data["is_fully_settled"] is True
    assert data["settlement_progress"] == 1.0
    assert Decimal(data["total_pending"]) == Decimal("0")


def test_mark_paid_twice_is_a_no_op(client):
    alice, _, _, bill = _bill_with_three(client)
    row = bill["participants"][2]

    first = client.post(_payment_url(bill, row), headers=as_person(alice["id"])).get_json()["data"]
    second = client.post(_payment_url(bill, row), headers=as_person(alice["id"])).get_json()["data"]

    assert first["participants"][2]["payment_date"] == second["participants"][2]["payment_date"]
    assert second["settled_count"] == 2


def test_mark_unpaid_reverts(client):
    alice, _, _, bill = _bill_with_three(client)
    row = bill["participants"][1]
    client.post(_payment_url(bill, row), headers=as_person(alice["id"]))

    resp = client.delete(_payment_url(bill, row), headers=as_person(alice["id"]))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["participants"][1]["has_paid"] is False
    assert data["participants"][1]["payment_date"] is None
    assert data["settled_count"] == 1


def test_participant_may_mark_themself_paid(client):
    _, bob, _, bill = _bill_with_three(client)
    resp = client.post(_payment_url(bill, bill["participants"][1]), headers=as_person(bob["id"]))
    assert resp.status_code == 200


def test_other_participant_cannot_mark_someone_paid(client):
    _, bob, _, bill = _bill_with_three(client)
    resp = client.post(_payment_url(bill, bill["participants"][2]), headers=as_person(bob["id"]))
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "FORBIDDEN"


def test_unknown_participant_is_404(client):
    alice, _, _, bill = _bill_with_three(client)
    resp = client.post(
        f"/api/v1/split-bills/{bill['id']}/participants/99999/payment",
        headers=as_person(alice["id"]),
    )
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "PARTICIPANT_NOT_FOUND"


def test_deleted_bill_cannot_be_settled(client):
    alice, _, _, bill = _bill_with_three(client)
    client.delete(f"/api/v1/split-bills/{bill['id']}", headers=as_person(alice["id"]))

    resp = client.post(_payment_url(bill, bill["participants"][1]), headers=as_person(alice["id"]))
    assert resp.status_code == 422
    assert resp.get_json()["error"]["code"] == "SPLIT_BILL_DELETED"
