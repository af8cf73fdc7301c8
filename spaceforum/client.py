import json
import logging
import os
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import requests

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

TOKEN_KEY = "token"
USER_KEY = "user"

AUTH_PAGE = "/"
DASHBOARD_PAGE = "/dashboard"


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    PENDING = "pending"
    AUTHENTICATED = "authenticated"


class FileStorage(MutableMapping):
    """String key/value storage persisted as a JSON file.

    Survives restarts the way browser local storage does. Every write
    rewrites the whole file.
    """

    def __init__(self, path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open(encoding="utf-8") as fh:
            return json.load(fh)

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)

    def __getitem__(self, key: str) -> str:
        return self._load()[key]

    def __setitem__(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def __delitem__(self, key: str) -> None:
        data = self._load()
        del data[key]
        self._save(data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._load())

    def __len__(self) -> int:
        return len(self._load())


@dataclass
class Outcome:
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    redirect: Optional[str] = None


class SessionClient:
    """Holds the bearer token and user record for one user session.

    State moves UNAUTHENTICATED -> PENDING -> AUTHENTICATED on a successful
    login and back to UNAUTHENTICATED on failure or logout. A 401/403 from a
    protected endpoint is reported as an error only; the stored token is kept
    until the user logs out.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        storage: Optional[MutableMapping] = None,
        http=None,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage = storage if storage is not None else {}
        self.http = http or requests.Session()
        self.is_submitting = False
        self.field_errors = {"username": "", "password": ""}
        self.message = ""
        self.message_type = ""

    @property
    def token(self) -> Optional[str]:
        return self.storage.get(TOKEN_KEY)

    @property
    def user(self) -> Dict[str, Any]:
        return json.loads(self.storage.get(USER_KEY) or "{}")

    @property
    def state(self) -> SessionState:
        if self.is_submitting:
            return SessionState.PENDING
        if self.token:
            return SessionState.AUTHENTICATED
        return SessionState.UNAUTHENTICATED

    def clear_feedback(self, field_name: Optional[str] = None) -> None:
        """Drop the banner, and the error label of ``field_name`` if given."""
        self.message = ""
        self.message_type = ""
        if field_name in self.field_errors:
            self.field_errors[field_name] = ""

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def _send(self, method: str, path: str, **kwargs):
        """Return ``(status_code, body)``; raise RequestException if unreachable."""
        response = getattr(self.http, method)(self._url(path), **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        return response.status_code, body

    def _fail(self, text: str) -> None:
        self.message = text
        self.message_type = "danger"

    # Auth form

    def login(self, username: str, password: str) -> Outcome:
        self.is_submitting = True
        self.field_errors = {"username": "", "password": ""}
        self.clear_feedback()
        try:
            status, body = self._send(
                "post", "/login", json={"username": username, "password": password}
            )
        except requests.RequestException:
            logger.warning("Login request failed to reach %s", self.base_url)
            self._fail("Unable to connect to server")
            return Outcome(ok=False, error=self.message)
        finally:
            self.is_submitting = False

        if 200 <= status < 300:
            self.storage[TOKEN_KEY] = body["token"]
            self.storage[USER_KEY] = json.dumps(body["user"])
            self.message = body.get("message", "")
            self.message_type = "success"
            return Outcome(ok=True, data=body, redirect=DASHBOARD_PAGE)

        self.field_errors = {
            "username": "Invalid" if body.get("field") == "username" else "",
            "password": "Incorrect" if body.get("field") == "password" else "",
        }
        self._fail(body.get("error") or "Invalid credentials")
        return Outcome(ok=False, data=body, error=self.message)

    def register(self, username: str, email: str, password: str) -> Outcome:
        self.is_submitting = True
        self.field_errors = {"username": "", "password": ""}
        self.clear_feedback()
        try:
            status, body = self._send(
                "post",
                "/register",
                json={"username": username, "email": email, "password": password},
            )
        except requests.RequestException:
            logger.warning("Register request failed to reach %s", self.base_url)
            self._fail("Unable to connect to server")
            return Outcome(ok=False, error=self.message)
        finally:
            self.is_submitting = False

        if 200 <= status < 300:
            self.message = "Account created. Please sign in."
            self.message_type = "success"
            return Outcome(ok=True, data=body)

        self._fail(body.get("error") or "Registration failed")
        return Outcome(ok=False, data=body, error=self.message)

    def logout(self) -> Outcome:
        self.storage.pop(TOKEN_KEY, None)
        self.storage.pop(USER_KEY, None)
        self.clear_feedback()
        return Outcome(ok=True, redirect=AUTH_PAGE)

    # Protected content

    def _protected(self, method: str, path: str, fallback: str, **kwargs) -> Outcome:
        if not self.token:
            return Outcome(ok=False, redirect=AUTH_PAGE)
        try:
            status, body = self._send(method, path, headers=self._auth_headers(), **kwargs)
        except requests.RequestException:
            logger.warning("Request to %s failed", path)
            return Outcome(ok=False, error="Mission Control: Connection lost")

        if 200 <= status < 300:
            return Outcome(ok=True, data=body)
        return Outcome(ok=False, data=body, error=body.get("error") or fallback)

    def fetch_forum(self) -> Outcome:
        outcome = self._protected("get", "/data", "Failed to fetch mission data")
        if outcome.ok:
            outcome.data = {
                "categories": outcome.data.get("categories") or [],
                "questions": outcome.data.get("questions") or [],
            }
        return outcome

    def fetch_exploration(self) -> Outcome:
        outcome = self._protected("get", "/exploration-data", "Failed to fetch celestial data")
        if outcome.ok:
            outcome.data = {
                name: outcome.data.get(name) or [] for name in ("planets", "stars", "galaxies")
            }
        return outcome

    def post_question(self, title: str, content: str, category_id: int) -> Outcome:
        self.is_submitting = True
        try:
            return self._protected(
                "post",
                "/questions",
                "Failed to post question",
                json={"title": title, "content": content, "category_id": category_id},
            )
        finally:
            self.is_submitting = False
