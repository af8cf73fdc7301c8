from datetime import datetime
from typing import Dict, List, Optional, Protocol

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import StoreError


class Store(Protocol):
    """Persistence operations the API layer depends on."""

    def create_user(self, username: str, email: str, password_hash: str) -> None: ...

    def get_user_by_username(self, username: str) -> Optional[dict]: ...

    def list_categories(self) -> List[dict]: ...

    def category_exists(self, category_id: int) -> bool: ...

    def list_questions(self) -> List[dict]: ...

    def create_question(self, title: str, content: str, category_id: int, user_id: int) -> None: ...

    def list_exploration_data(self) -> Dict[str, List[dict]]: ...

    def ping(self) -> None: ...


_INSERT_USER = text(
    "INSERT INTO users (username, email, password_hash) "
    "VALUES (:username, :email, :password_hash)"
)

_SELECT_USER = text(
    "SELECT id, username, email, password_hash FROM users WHERE username = :username"
)

_SELECT_CATEGORIES = text("SELECT id, name, description FROM categories ORDER BY id")

_CATEGORY_EXISTS = text("SELECT 1 FROM categories WHERE id = :category_id")

_SELECT_QUESTIONS = text(
    "SELECT q.id, q.title, q.content, q.category_id, q.user_id, q.created_at, "
    "c.name AS category_name, u.username AS author "
    "FROM questions q "
    "JOIN categories c ON c.id = q.category_id "
    "JOIN users u ON u.id = q.user_id "
    "ORDER BY q.created_at DESC, q.id DESC"
).columns(created_at=DateTime)

_INSERT_QUESTION = text(
    "INSERT INTO questions (title, content, category_id, user_id, created_at) "
    "VALUES (:title, :content, :category_id, :user_id, :created_at)"
).bindparams(bindparam("created_at", type_=DateTime))

_EXPLORATION_QUERIES = {
    "planets": text("SELECT id, name, type, moons, distance_au FROM planets ORDER BY distance_au"),
    "stars": text(
        "SELECT id, name, spectral_type, constellation, distance_ly FROM stars ORDER BY distance_ly"
    ),
    "galaxies": text("SELECT id, name, type, distance_mly FROM galaxies ORDER BY distance_mly"),
}


class SqlStore:
    """Store backed by parameterized SQL over a pooled SQLAlchemy engine.

    Every public method opens its own connection from the pool, so a store
    instance is safe to share between concurrent requests. Driver errors are
    wrapped into StoreError with the driver error kept as ``__cause__``.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def _fetch_all(self, statement, **params) -> List[dict]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(statement, params).all()
        except SQLAlchemyError as exc:
            raise StoreError("Database query failed") from exc
        return [dict(row._mapping) for row in rows]

    def _execute(self, statement, **params) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(statement, params)
        except SQLAlchemyError as exc:
            raise StoreError("Database write failed") from exc

    def create_user(self, username: str, email: str, password_hash: str) -> None:
        self._execute(
            _INSERT_USER, username=username, email=email, password_hash=password_hash
        )

    def get_user_by_username(self, username: str) -> Optional[dict]:
        rows = self._fetch_all(_SELECT_USER, username=username)
        return rows[0] if rows else None

    def list_categories(self) -> List[dict]:
        return self._fetch_all(_SELECT_CATEGORIES)

    def category_exists(self, category_id: int) -> bool:
        return bool(self._fetch_all(_CATEGORY_EXISTS, category_id=category_id))

    def list_questions(self) -> List[dict]:
        return self._fetch_all(_SELECT_QUESTIONS)

    def create_question(self, title: str, content: str, category_id: int, user_id: int) -> None:
        self._execute(
            _INSERT_QUESTION,
            title=title,
            content=content,
            category_id=category_id,
            user_id=user_id,
            created_at=datetime.utcnow(),
        )

    def list_exploration_data(self) -> Dict[str, List[dict]]:
        return {name: self._fetch_all(query) for name, query in _EXPLORATION_QUERIES.items()}

    def ping(self) -> None:
        self._fetch_all(text("SELECT 1"))
