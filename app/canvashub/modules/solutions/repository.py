from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.canvashub.modules.solutions.models import Solution


class SolutionRepository:
    def get(self, solution_id: int) -> Solution | None:
        raise NotImplementedError

    def list_all(self) -> list[Solution]:
        raise NotImplementedError

    def list_by_author(self, author_name: str) -> list[Solution]:
        raise NotImplementedError

    def save(self, solution: Solution) -> Solution:
        raise NotImplementedError

    def delete(self, solution: Solution) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class SqlSolutionRepository(SolutionRepository):
    session: Session

    def get(self, solution_id: int) -> Solution | None:
        return self.session.get(Solution, solution_id)

    def list_all(self) -> list[Solution]:
        return self.session.query(Solution).order_by(Solution.id.asc()).all()

    def list_by_author(self, author_name: str) -> list[Solution]:
        return (
            self.session.query(Solution)
            .filter(Solution.author_name == author_name)
            .order_by(Solution.id.asc())
            .all()
        )

    def save(self, solution: Solution) -> Solution:
        self.session.add(solution)
        self.session.flush()
        return solution

    def delete(self, solution: Solution) -> None:
        self.session.delete(solution)
        self.session.flush()
