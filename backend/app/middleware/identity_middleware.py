"""
middleware/identity_middleware.py — Acting-person decorator.

The @require_person decorator:
  1. Reads the acting-person header (config PERSON_HEADER, default X-Person-Id)
  2. Parses it as a positive integer
  3. Checks that a Person with that id exists
  4. Attaches person_id (int) to flask.g for the duration of the request
  5. Raises the appropriate 401 error if any step fails

Strict responsibility boundary:
  - This middleware identifies the caller ONLY. It does NOT decide whether
    the caller may touch a given bill, group or transaction. That belongs in
    the service layer. Middleware = identity (401). Service = authorization (403).
  - Services receive person_id as a plain integer argument, with no knowledge
    of HTTP headers.

Error codes:
  PERSON_HEADER_MISSING (401) — header absent or empty
  PERSON_HEADER_INVALID (401) — header is not a positive integer
  PERSON_NOT_FOUND      (401) — no Person with that id
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import current_app, g, request

from backend.app.errors import AppError, ErrorCode
from backend.app.extensions import db
from backend.app.models.person import Person


def require_person(f: Callable) -> Callable:
    """
    Route decorator that resolves the acting person.

    Usage:
        @bp.route("/balances")
        @require_person
        def list_balances():
            person_id = g.person_id  # always an int when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _identify_request()
        return f(*args, **kwargs)

    return decorated


def _identify_request() -> None:
    """
    Resolves the acting person and sets flask.g.person_id.

    Separated from the decorator wrapper so tests can call it directly inside
    a request context.
    """
    header_name = current_app.config.get("PERSON_HEADER", "X-Person-Id")
    raw = request.headers.get(header_name, "").strip()

    if not raw:
        raise AppError(
            ErrorCode.PERSON_HEADER_MISSING,
            f"Identify the acting person with the {header_name} header.",
            401,
        )

    try:
        person_id = int(raw)
    except ValueError:
        raise AppError(
            ErrorCode.PERSON_HEADER_INVALID,
            f"{header_name} must be a positive integer person id.",
            401,
        )
    if person_id < 1:
        raise AppError(
            ErrorCode.PERSON_HEADER_INVALID,
            f"{header_name} must be a positive integer person id.",
            401,
        )

    if db.session.get(Person, person_id) is None:
        raise AppError(
            ErrorCode.PERSON_NOT_FOUND,
            f"Person {person_id} from {header_name} does not exist.",
            401,
        )

    g.person_id = person_id
