from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.canvashub.models import User


class UserRepository:
    def get(self, user_id: int) -> User | None:
        raise NotImplementedError

    def find_by_username(self, username: str) -> User | None:
        raise NotImplementedError

    def save(self, user: User) -> User:
        raise NotImplementedError


@dataclass(frozen=True)
class SqlUserRepository(UserRepository):
    session: Session

    def get(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def find_by_username(self, username: str) -> User | None:
        return self.session.query(User).filter(User.username == username).one_or_none()

    def save(self, user: User) -> User:
        # flush so the id is assigned; the request handler commits
        self.session.add(user)
        self.session.flush()
        return user
