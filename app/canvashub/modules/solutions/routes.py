from __future__ import annotations

import json
from typing import Any

from flask import Blueprint, abort, current_app, g, redirect, render_template, request, url_for

from app.canvashub.audit import record_event
from app.canvashub.contexts import HomeContext, PageContext, SolutionContext, SolutionsContext
from app.canvashub.db import db_session
from app.canvashub.errors import DecodeError
from app.canvashub.models import User
from app.canvashub.modules.solutions.codec import SolutionJsonError
from app.canvashub.modules.solutions.repository import SqlSolutionRepository
from app.canvashub.modules.solutions.service import (
    create_solution,
    delete_solution,
    solutions_for_user,
    update_solution,
)
from app.canvashub.rbac import require_capability
from app.canvashub.utils import decode_payload, optional_str, require_int

bp = Blueprint("solutions", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _repo() -> SqlSolutionRepository:
    return SqlSolutionRepository(db_session())


def _payload_json(payload: dict[str, Any]) -> str:
    """The `json` field as text. JSON request bodies may send the document as an object."""
    value = payload.get("json")
    if value is None:
        raise DecodeError("Missing required field: json.")
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    if not isinstance(value, str):
        raise DecodeError("Field json must be a string or a JSON document.")
    return value


def _json_mode() -> str:
    return current_app.config.get("SOLUTION_JSON_MODE", "strip")


def _enforce_ownership() -> bool:
    return bool(current_app.config.get("ENFORCE_SOLUTION_OWNERSHIP"))


# ---------- Views ----------
@bp.get("/")
@require_capability("solutions.view")
def index():
    u = _current_user()
    ctx = HomeContext(user=u, user_solutions=solutions_for_user(_repo(), u))
    return render_template("children/index.html", **ctx.as_template_kwargs())


@bp.get("/solutions")
@require_capability("solutions.view")
def solutions_list():
    ctx = SolutionsContext(solutions=_repo().list_all(), user=_current_user())
    return render_template("children/list_solutions.html", **ctx.as_template_kwargs())


@bp.get("/solution/<int:solution_id>")
@require_capability("solutions.view")
def solution_detail(solution_id: int):
    solution = _repo().get(solution_id)
    if not solution:
        abort(404)
    ctx = SolutionContext(solution=solution, user=_current_user())
    return render_template("canvas.html", **ctx.as_template_kwargs())


@bp.get("/newSolution")
@require_capability("solutions.create")
def solution_new_get():
    ctx = PageContext(title="Add Solution", user=_current_user())
    return render_template("children/add_solution.html", **ctx.as_template_kwargs())


# ---------- Mutations ----------
@bp.post("/newSolution")
@require_capability("solutions.create")
def solution_new_post():
    s = db_session()
    u = _current_user()
    payload = decode_payload(request)

    try:
        solution = create_solution(
            SqlSolutionRepository(s),
            u,
            _payload_json(payload),
            name=optional_str(payload, "name"),
            mode=_json_mode(),
        )
    except SolutionJsonError as e:
        raise DecodeError(str(e)) from e

    record_event(
        s,
        actor=u,
        action="solution.create",
        entity_type="Solution",
        entity_id=str(solution.id),
        metadata={"name": solution.name},
    )
    s.commit()
    current_app.logger.info("Solution created id=%s author=%s", solution.id, u.username)
    return redirect(url_for("solutions.index"))


@bp.post("/updateSolution")
@require_capability("solutions.edit")
def solution_update_post():
    s = db_session()
    u = _current_user()
    payload = decode_payload(request)
    solution_id = require_int(payload, "id")
    raw_json = _payload_json(payload)

    repo = SqlSolutionRepository(s)
    solution = repo.get(solution_id)
    if not solution:
        abort(404)

    try:
        solution, changes = update_solution(
            repo,
            solution,
            u,
            raw_json,
            name=optional_str(payload, "name"),
            mode=_json_mode(),
            enforce_ownership=_enforce_ownership(),
        )
    except SolutionJsonError as e:
        raise DecodeError(str(e)) from e

    record_event(
        s,
        actor=u,
        action="solution.edit",
        entity_type="Solution",
        entity_id=str(solution.id),
        metadata={"name": solution.name, "changes": changes},
    )
    s.commit()
    return redirect(url_for("solutions.index"))


@bp.post("/deleteSolution")
@require_capability("solutions.delete")
def solution_delete_post():
    s = db_session()
    u = _current_user()
    payload = decode_payload(request)
    solution_id = require_int(payload, "id")

    repo = SqlSolutionRepository(s)
    solution = repo.get(solution_id)
    if not solution:
        abort(404)

    meta = delete_solution(repo, solution, u, enforce_ownership=_enforce_ownership())
    record_event(
        s,
        actor=u,
        action="solution.delete",
        entity_type="Solution",
        entity_id=str(solution_id),
        metadata=meta,
    )
    s.commit()
    current_app.logger.info("Solution deleted id=%s by=%s", solution_id, u.username)
    return redirect(url_for("solutions.index"))
