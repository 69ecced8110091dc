from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from app.canvashub.errors import AuthorizationError
from app.canvashub.modules.solutions.codec import transform_solution_json

if TYPE_CHECKING:
    from app.canvashub.models import User
    from app.canvashub.modules.solutions.models import Solution
    from app.canvashub.modules.solutions.repository import SolutionRepository

logger = logging.getLogger(__name__)

DEFAULT_SOLUTION_NAME = "Untitled"


def solutions_for_user(repo: "SolutionRepository", user: "User") -> list["Solution"]:
    """The principal's own solutions (home page)."""
    return repo.list_by_author(user.username)


def check_author(solution: "Solution", actor: "User", *, enforce_ownership: bool) -> bool:
    """
    Returns True when the actor authored the solution.
    Raises AuthorizationError for non-authors only when ownership is enforced.
    """
    is_author = solution.author_name == actor.username
    if is_author:
        return True
    if enforce_ownership:
        raise AuthorizationError(f"Solution {solution.id} belongs to another user.")
    logger.warning(
        "Non-author change to solution id=%s author=%s actor=%s",
        solution.id,
        solution.author_name,
        actor.username,
    )
    return False


def create_solution(
    repo: "SolutionRepository",
    author: "User",
    raw_json: str,
    *,
    name: str | None = None,
    mode: str = "strip",
) -> "Solution":
    from app.canvashub.modules.solutions.models import Solution

    now = datetime.utcnow()
    solution = Solution(
        name=(name or "").strip() or DEFAULT_SOLUTION_NAME,
        author_name=author.username,
        json=transform_solution_json(raw_json, mode),
        created_at=now,
        updated_at=now,
    )
    return repo.save(solution)


def update_solution(
    repo: "SolutionRepository",
    solution: "Solution",
    actor: "User",
    raw_json: str,
    *,
    name: str | None = None,
    mode: str = "strip",
    enforce_ownership: bool = False,
) -> tuple["Solution", dict]:
    """Apply a new payload (and optionally a new name). Returns the solution and a change summary."""
    is_author = check_author(solution, actor, enforce_ownership=enforce_ownership)
    changes: dict = {}

    new_json = transform_solution_json(raw_json, mode)
    if new_json != solution.json:
        changes["json"] = {"old_length": len(solution.json or ""), "new_length": len(new_json)}
        solution.json = new_json

    new_name = (name or "").strip()
    if new_name and new_name != solution.name:
        changes["name"] = {"old": solution.name, "new": new_name}
        solution.name = new_name

    if not is_author:
        changes["non_author"] = True

    solution.updated_at = datetime.utcnow()
    repo.save(solution)
    return solution, changes


def delete_solution(
    repo: "SolutionRepository",
    solution: "Solution",
    actor: "User",
    *,
    enforce_ownership: bool = False,
) -> dict:
    """Delete the solution. Returns metadata for the audit trail."""
    is_author = check_author(solution, actor, enforce_ownership=enforce_ownership)
    meta = {"name": solution.name, "author_name": solution.author_name}
    if not is_author:
        meta["non_author"] = True
    repo.delete(solution)
    return meta
