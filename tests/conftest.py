import os
from itertools import count
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

_user_seq = count(1)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db_url():
    test_db = Path("./test.db")
    if test_db.exists():
        test_db.unlink()
    os.environ["DATABASE_URL"] = "sqlite:///./test.db"
    os.environ["ENV"] = "test"
    os.environ["JWT_SECRET"] = "test-secret"
    os.environ["OBSERVABILITY_ENABLED"] = "false"
    os.environ["SITE_URL"] = "https://reviews.example.com"

    from app.core.config import get_settings
    from app.db.session import reset_session_for_tests

    get_settings.cache_clear()
    reset_session_for_tests()

    yield

    reset_session_for_tests()
    if test_db.exists():
        test_db.unlink()


@pytest.fixture
def client(setup_test_db_url):
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client):
    """Create a user directly in the store and return (user_id, auth headers)."""
    from app.core.auth import create_access_token, hash_password
    from app.db.session import get_session_maker
    from app.models.entities import Role, User

    def factory(role: str = "reader", active: bool = True, name: str | None = None):
        seq = next(_user_seq)
        db = get_session_maker()()
        try:
            user = User(
                email=f"{role}-{seq}@example.com",
                name=name or f"{role.title()} {seq}",
                password_hash=hash_password("correct-horse"),
                role=Role(role),
                active=active,
            )
            db.add(user)
            db.commit()
            token = create_access_token(user)
            return user.id, {"Authorization": f"Bearer {token}"}
        finally:
            db.close()

    return factory


@pytest.fixture
def post_payload():
    seq = count(1)

    def factory(**overrides):
        n = next(seq)
        payload = {
            "title": f"The Night Circus {os.urandom(4).hex()} {n}",
            "book_author": "Erin Morgenstern",
            "content": "A dreamlike story about a magical competition held inside a travelling circus. " * 2,
            "rating": 4.5,
            "genres": ["Fantasy", "Romance"],
        }
        payload.update(overrides)
        return payload

    return factory
