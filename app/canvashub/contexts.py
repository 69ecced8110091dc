"""
Typed template contexts. Each view renders one of these; `as_template_kwargs`
hands the fields to Jinja without copying the ORM objects.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.canvashub.models import User
    from app.canvashub.modules.solutions.models import Solution


@dataclass(frozen=True)
class _Context:
    def as_template_kwargs(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class PageContext(_Context):
    title: str
    user: "User | None" = None


@dataclass(frozen=True)
class HomeContext(_Context):
    user: "User"
    user_solutions: list["Solution"] = field(default_factory=list)
    title: str = "Home"


@dataclass(frozen=True)
class SolutionsContext(_Context):
    solutions: list["Solution"]
    user: "User"
    title: str = "Solutions"


@dataclass(frozen=True)
class SolutionContext(_Context):
    solution: "Solution"
    user: "User"
    title: str = "Solution"
