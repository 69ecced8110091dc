"""
Service-level tests against in-memory repositories (no database, no app).
"""
import pytest
from werkzeug.security import check_password_hash

from app.canvashub.accounts import authenticate, register_user
from app.canvashub.errors import AuthorizationError, DecodeError
from app.canvashub.models import User
from app.canvashub.modules.profile.service import profile_to_dict, update_profile
from app.canvashub.modules.solutions.models import Solution
from app.canvashub.modules.solutions.repository import SolutionRepository
from app.canvashub.modules.solutions.service import (
    create_solution,
    delete_solution,
    solutions_for_user,
    update_solution,
)
from app.canvashub.repositories import UserRepository


class InMemoryUserRepository(UserRepository):
    def __init__(self):
        self.rows: dict[int, User] = {}
        self.saves = 0

    def get(self, user_id):
        return self.rows.get(user_id)

    def find_by_username(self, username):
        return next((u for u in self.rows.values() if u.username == username), None)

    def save(self, user):
        if user.id is None:
            user.id = max(self.rows, default=0) + 1
        self.rows[user.id] = user
        self.saves += 1
        return user


class InMemorySolutionRepository(SolutionRepository):
    def __init__(self):
        self.rows: dict[int, Solution] = {}

    def get(self, solution_id):
        return self.rows.get(solution_id)

    def list_all(self):
        return [self.rows[k] for k in sorted(self.rows)]

    def list_by_author(self, author_name):
        return [s for s in self.list_all() if s.author_name == author_name]

    def save(self, solution):
        if solution.id is None:
            solution.id = max(self.rows, default=0) + 1
        self.rows[solution.id] = solution
        return solution

    def delete(self, solution):
        self.rows.pop(solution.id, None)


@pytest.fixture()
def users():
    repo = InMemoryUserRepository()
    register_user(repo, "alice", "pw")
    register_user(repo, "bob", "pw")
    return repo


@pytest.fixture()
def solutions():
    return InMemorySolutionRepository()


class TestAccounts:
    def test_register_hashes_password(self, users):
        alice = users.find_by_username("alice")
        assert alice.password_hash != "pw"
        assert check_password_hash(alice.password_hash, "pw")

    def test_register_duplicate_returns_none(self, users):
        saves = users.saves
        assert register_user(users, "alice", "other") is None
        assert users.saves == saves
        assert check_password_hash(users.find_by_username("alice").password_hash, "pw")

    def test_register_trims_username(self, users):
        assert register_user(users, "  alice  ", "x") is None
        carol = register_user(users, " carol ", "x")
        assert carol.username == "carol"

    def test_register_requires_credentials(self, users):
        with pytest.raises(ValueError):
            register_user(users, "", "pw")
        with pytest.raises(ValueError):
            register_user(users, "dave", "")

    def test_authenticate(self, users):
        assert authenticate(users, "alice", "pw").username == "alice"
        assert authenticate(users, "alice", "nope") is None
        assert authenticate(users, "nobody", "pw") is None

    def test_authenticate_inactive(self, users):
        users.find_by_username("bob").is_active = False
        assert authenticate(users, "bob", "pw") is None


class TestProfile:
    def test_mismatched_id_raises_and_changes_nothing(self, users):
        alice = users.find_by_username("alice")
        bob = users.find_by_username("bob")
        saves = users.saves

        with pytest.raises(AuthorizationError):
            update_profile(users, alice, bob.id, {"city": "Elsewhere"})

        assert alice.city is None
        assert bob.city is None
        assert users.saves == saves

    def test_applies_only_writable_fields(self, users):
        alice = users.find_by_username("alice")
        user, changes = update_profile(
            users, alice, alice.id, {"city": " Austin ", "username": "mallory", "id": 99}
        )
        assert user.city == "Austin"
        assert user.username == "alice"
        assert set(changes) == {"city"}

    def test_no_changes_skips_save(self, users):
        alice = users.find_by_username("alice")
        saves = users.saves
        _, changes = update_profile(users, alice, alice.id, {"city": ""})
        assert changes == {}
        assert users.saves == saves

    def test_bad_zip(self, users):
        alice = users.find_by_username("alice")
        with pytest.raises(DecodeError):
            update_profile(users, alice, alice.id, {"zip": "1234"})
        _, changes = update_profile(users, alice, alice.id, {"zip": "12345-6789"})
        assert changes["zip"]["new"] == "12345-6789"

    def test_profile_dict_hides_hash(self, users):
        data = profile_to_dict(users.find_by_username("alice"))
        assert data["username"] == "alice"
        assert "password_hash" not in data


class TestSolutions:
    def test_create_strips_quotes_and_sets_author(self, users, solutions):
        alice = users.find_by_username("alice")
        s = create_solution(solutions, alice, '{"a":1}', name="  ")
        assert s.json == "{a:1}"
        assert s.author_name == "alice"
        assert s.name == "Untitled"

    def test_create_raw_mode(self, users, solutions):
        s = create_solution(solutions, users.find_by_username("alice"), '{"a":1}', mode="raw")
        assert s.json == '{"a":1}'

    def test_solutions_for_user_filters_by_author(self, users, solutions):
        alice = users.find_by_username("alice")
        bob = users.find_by_username("bob")
        create_solution(solutions, alice, "{}", name="a1")
        create_solution(solutions, bob, "{}", name="b1")
        create_solution(solutions, alice, "{}", name="a2")
        assert [s.name for s in solutions_for_user(solutions, alice)] == ["a1", "a2"]

    def test_update_records_changes(self, users, solutions):
        alice = users.find_by_username("alice")
        s = create_solution(solutions, alice, "{}", name="Draft")
        s, changes = update_solution(solutions, s, alice, '{"x":2}', name="Final")
        assert s.json == "{x:2}"
        assert s.name == "Final"
        assert changes["name"] == {"old": "Draft", "new": "Final"}
        assert "non_author" not in changes

    def test_non_author_update_flagged_or_refused(self, users, solutions):
        alice = users.find_by_username("alice")
        bob = users.find_by_username("bob")
        s = create_solution(solutions, alice, "{}", name="Draft")

        _, changes = update_solution(solutions, s, bob, "{y:1}")
        assert changes["non_author"] is True

        with pytest.raises(AuthorizationError):
            update_solution(solutions, s, bob, "{z:1}", enforce_ownership=True)
        assert s.json == "{y:1}"

    def test_delete(self, users, solutions):
        alice = users.find_by_username("alice")
        bob = users.find_by_username("bob")
        s = create_solution(solutions, alice, "{}")

        with pytest.raises(AuthorizationError):
            delete_solution(solutions, s, bob, enforce_ownership=True)
        assert solutions.get(s.id) is s

        meta = delete_solution(solutions, s, alice)
        assert meta["author_name"] == "alice"
        assert solutions.get(s.id) is None
