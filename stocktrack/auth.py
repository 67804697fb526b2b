import threading
import time
from typing import Any, Dict, Optional, Tuple

import jwt
from passlib.context import CryptContext

from stocktrack.errors import Conflict, Forbidden, InvalidArgument, NotFound, Unauthorized
from stocktrack.logging import get_logger
from stocktrack.models import User
from stocktrack.store import EntityStore

logger = get_logger("stocktrack.auth")

JWT_ALG = "HS256"
MIN_PASSWORD_LENGTH = 6

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return _pwd_context.verify(plain_password, password_hash)
    except ValueError:
        return False


class AuthProvider:
    """
    Users, passwords and bearer tokens.

    A token authenticates only while its login session is open; logout
    closes it even though the JWT itself has not expired.
    """

    def __init__(self, store: EntityStore, secret: str, expire_minutes: int = 24 * 60):
        self.store = store
        self.secret = secret
        self.expire_minutes = expire_minutes
        # token -> (user id, exp)
        self._sessions: Dict[str, Tuple[int, int]] = {}
        self._sessions_lock = threading.Lock()

    def register(self, username: Optional[str], password: Optional[str]) -> User:
        if not username or not password:
            raise InvalidArgument("Username and password required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidArgument(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if self.store.find_user_by_username(username) is not None:
            raise Conflict("Username already exists")

        user = self.store.add_user(username, hash_password(password))
        logger.info("User registered", extra={"user_id": user.id})
        return user

    def login(self, username: Optional[str], password: Optional[str]) -> Tuple[str, User]:
        if not username or not password:
            raise InvalidArgument("Username and password required")

        user = self.store.find_user_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login rejected", extra={"username": username})
            raise Unauthorized("Invalid credentials")

        token, exp = self._issue(user)
        with self._sessions_lock:
            self._prune_expired()
            self._sessions[token] = (user.id, exp)
        logger.info("User logged in", extra={"user_id": user.id})
        return token, user

    def logout(self, token: str) -> None:
        with self._sessions_lock:
            session = self._sessions.pop(token, None)
        logger.info("User logged out", extra={"user_id": session[0] if session else None})

    def _prune_expired(self) -> None:
        """Drop sessions whose token has expired. Caller holds the sessions lock."""
        now = int(time.time())
        for token in [t for t, (_, exp) in self._sessions.items() if exp <= now]:
            del self._sessions[token]

    def issue_token(self, user: User) -> str:
        return self._issue(user)[0]

    def _issue(self, user: User) -> Tuple[str, int]:
        now = int(time.time())
        exp = now + 60 * self.expire_minutes
        payload: Dict[str, Any] = {
            "sub": str(user.id),
            "username": user.username,
            "iat": now,
            "exp": exp,
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALG), exp

    def authenticate(self, token: Optional[str]) -> int:
        """Return the user id behind a bearer token."""
        if not token:
            raise Unauthorized("Access token required")

        try:
            payload = jwt.decode(token, self.secret, algorithms=[JWT_ALG])
        except jwt.ExpiredSignatureError:
            with self._sessions_lock:
                self._sessions.pop(token, None)
            raise Forbidden("Invalid or expired token") from None
        except jwt.PyJWTError:
            raise Forbidden("Invalid or expired token") from None

        with self._sessions_lock:
            session = self._sessions.get(token)
        if session is None or str(session[0]) != payload.get("sub"):
            raise Forbidden("Invalid or expired token")
        return session[0]

    def session_count(self) -> int:
        with self._sessions_lock:
            return len(self._sessions)

    def get_user(self, user_id: int) -> User:
        user = self.store.users.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return user
