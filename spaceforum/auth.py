import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .errors import ForbiddenError, NotFoundError, UnauthorizedError
from .schemas import require_fields
from .store import Store

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer"


@dataclass(frozen=True)
class Claims:
    id: int
    username: str
    issued_at: datetime
    expires_at: datetime


@dataclass
class LoginResult:
    token: str
    user: dict
    message: str


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self.context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        return self.context.verify(plain_password, hashed_password)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies signed, stateless identity tokens.

    Nothing is stored server-side: a token stays valid until its ``exp``
    claim passes, whatever happens to the account in the meantime.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=2),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock

    def issue(self, user_id: int, username: str) -> str:
        issued_at = self.clock()
        claims = {
            "id": user_id,
            "username": username,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def decode(self, token: str) -> Claims:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require_exp": True},
            )
        except ExpiredSignatureError:
            logger.info("Rejected expired token")
            raise ForbiddenError("Invalid or expired token")
        except JWTError as exc:
            logger.info("Rejected token: %s", exc)
            raise ForbiddenError("Invalid or expired token")

        user_id = payload.get("id")
        username = payload.get("username")
        if not isinstance(user_id, int) or not isinstance(username, str):
            raise ForbiddenError("Invalid or expired token")

        return Claims(
            id=user_id,
            username=username,
            issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


def parse_bearer(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise UnauthorizedError("Access denied. No token provided.")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != BEARER_PREFIX.lower():
        raise UnauthorizedError("Access denied. Malformed authorization header.")
    return parts[1]


class AuthService:
    def __init__(self, store: Store, hasher: PasswordHasher, tokens: TokenService):
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    def register(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> None:
        """Create an account.

        Uniqueness of ``username`` is left to the store's constraint; a
        duplicate surfaces as a StoreError like any other write failure.
        """
        require_fields(username=username, email=email, password=password)
        password_hash = self.hasher.hash(password)
        self.store.create_user(username.strip(), email.strip(), password_hash)
        logger.info("Registered user %s", username.strip())

    def login(self, username: Optional[str], password: Optional[str]) -> LoginResult:
        require_fields(username=username, password=password)
        user = self.store.get_user_by_username(username.strip())
        if user is None:
            logger.info("Login failed: unknown username %s", username.strip())
            raise NotFoundError("Username not found", field="username")

        if not self.hasher.verify(password, user["password_hash"]):
            logger.info("Login failed: wrong password for %s", user["username"])
            raise UnauthorizedError("Incorrect password", field="password")

        token = self.tokens.issue(user["id"], user["username"])
        logger.info("User %s logged in", user["username"])
        return LoginResult(
            token=token,
            user={"id": user["id"], "username": user["username"]},
            message=f"Welcome back, {user['username']}!",
        )

    def verify(self, authorization: Optional[str]) -> Claims:
        return self.tokens.decode(parse_bearer(authorization))


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def require_claims(
    request: Request, auth: AuthService = Depends(get_auth_service)
) -> Claims:
    return auth.verify(request.headers.get("Authorization"))
