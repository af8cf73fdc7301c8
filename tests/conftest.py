from datetime import datetime
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from spaceforum.auth import PasswordHasher, TokenService
from spaceforum.config import Settings
from spaceforum.database import create_db_engine
from spaceforum.errors import StoreError
from spaceforum.main import create_app
from spaceforum.store import SqlStore

# In-memory SQLite; create_db_engine shares one connection via StaticPool.
TEST_DATABASE_URL = "sqlite://"
TEST_SECRET_KEY = "test-secret-key"


class MemoryStore:
    """In-memory stand-in for SqlStore, used to prove the app only needs the
    store interface."""

    def __init__(self, categories: Optional[List[dict]] = None):
        self.users: List[dict] = []
        self.questions: List[dict] = []
        self.categories = categories if categories is not None else [
            {"id": 1, "name": "Astrophysics", "description": "Stars and black holes."},
            {"id": 2, "name": "Rocketry", "description": "Getting to orbit."},
        ]

    def create_user(self, username: str, email: str, password_hash: str) -> None:
        if any(u["username"] == username for u in self.users):
            raise StoreError("UNIQUE constraint failed: users.username")
        self.users.append(
            {
                "id": len(self.users) + 1,
                "username": username,
                "email": email,
                "password_hash": password_hash,
            }
        )

    def get_user_by_username(self, username: str) -> Optional[dict]:
        return next((dict(u) for u in self.users if u["username"] == username), None)

    def list_categories(self) -> List[dict]:
        return [dict(c) for c in self.categories]

    def category_exists(self, category_id: int) -> bool:
        return any(c["id"] == category_id for c in self.categories)

    def list_questions(self) -> List[dict]:
        names = {c["id"]: c["name"] for c in self.categories}
        authors = {u["id"]: u["username"] for u in self.users}
        rows = [
            {**q, "category_name": names[q["category_id"]], "author": authors[q["user_id"]]}
            for q in self.questions
        ]
        return sorted(rows, key=lambda q: (q["created_at"], q["id"]), reverse=True)

    def create_question(self, title: str, content: str, category_id: int, user_id: int) -> None:
        self.questions.append(
            {
                "id": len(self.questions) + 1,
                "title": title,
                "content": content,
                "category_id": category_id,
                "user_id": user_id,
                "created_at": datetime.utcnow(),
            }
        )

    def list_exploration_data(self) -> Dict[str, List[dict]]:
        return {"planets": [], "stars": [], "galaxies": []}

    def ping(self) -> None:
        return None


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        secret_key=TEST_SECRET_KEY,
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest.fixture()
def engine(settings):
    """A fresh in-memory database for every test."""
    engine = create_db_engine(settings.database_url)
    yield engine
    engine.dispose()


@pytest.fixture()
def store(engine) -> SqlStore:
    return SqlStore(engine)


@pytest.fixture()
def client(settings, store):
    """TestClient over the SQL store; startup creates the schema and seeds
    reference data."""
    app = create_app(settings=settings, store=store)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def memory_client(settings, memory_store):
    app = create_app(settings=settings, store=memory_store)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def token_service(settings) -> TokenService:
    return TokenService(secret_key=settings.secret_key)


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture()
def register_user(client):
    """Factory fixture registering an account through the API."""

    def _register(username: str = "pilot", password: str = "pilot-pass", email: str = None):
        return client.post(
            "/register",
            json={
                "username": username,
                "email": email or f"{username}@example.com",
                "password": password,
            },
        )

    return _register


@pytest.fixture()
def login_user(client, register_user):
    """Factory fixture: register + login, returning the login response body."""

    def _login(username: str = "pilot", password: str = "pilot-pass") -> dict:
        register_user(username=username, password=password)
        response = client.post("/login", json={"username": username, "password": password})
        assert response.status_code == 200
        return response.json()

    return _login


@pytest.fixture()
def auth_headers(login_user) -> Dict[str, str]:
    body = login_user()
    return {"Authorization": f"Bearer {body['token']}"}
