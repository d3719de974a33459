"""
routes/people.py — Person route handlers.

Creating and listing people needs no acting person: the first person has to
be created before anyone can identify as them.

Endpoints (base url_prefix=/api/v1/people):
  POST   /people        → 201  create person
  GET    /people        → 200  list people
  GET    /people/:id    → 200  get person
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.app.extensions import db
from backend.app.models.person import Person
from backend.app.schemas.person_schema import CreatePersonSchema
from backend.app.services import person_service

people_bp = Blueprint("people", __name__)


def _serialize_person(person: Person) -> dict:
    return {
        "id": person.id,
        "name": person.name,
        "email": person.email,
        "phone": person.phone,
        "notes": person.notes,
        "created_at": person.created_at.isoformat() if person.created_at else None,
    }


@people_bp.route("", methods=["POST"])
def create_person():
    """POST /people — Record a new person."""
    data = CreatePersonSchema().load(request.get_json(force=True) or {})
    person = person_service.create_person(data=data, session=db.session)
    db.session.commit()
    return jsonify({"data": _serialize_person(person), "warnings": []}), 201


@people_bp.route("", methods=["GET"])
def list_people():
    """GET /people — Everyone on record, alphabetically."""
    people = person_service.list_people(session=db.session)
    return jsonify({
        "data": [_serialize_person(p) for p in people],
        "warnings": [],
    }), 200


@people_bp.route("/<int:person_id>", methods=["GET"])
def get_person(person_id: int):
    """GET /people/:id"""
    person = person_service.get_person_or_404(person_id=person_id, session=db.session)
    return jsonify({"data": _serialize_person(person), "warnings": []}), 200
