"""Password hashing and bearer-token helpers."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from werkzeug.security import check_password_hash, generate_password_hash

from calorie_tracker.domain.models import UserAccount
from calorie_tracker.errors import AuthenticationError, TokenExpiredError


def hash_password(password: str) -> str:
    """Return a salted hash for storage."""
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Return true when the password matches the stored hash."""
    return check_password_hash(password_hash, password)


@dataclass
class TokenService:
    """Issues and verifies signed JWT bearer tokens."""

    secret: str
    algorithm: str = "HS256"
    expire_minutes: int = 60 * 24 * 7

    def issue(self, user: UserAccount, now: datetime | None = None) -> str:
        """Return a signed token identifying the user."""
        issued_at = now or datetime.now(tz=UTC)
        payload = {
            "sub": str(user.id),
            "username": user.username,
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> UUID:
        """Return the user id carried by a valid token."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except InvalidTokenError as exc:
            raise AuthenticationError("Invalid token") from exc
        try:
            return UUID(str(claims["sub"]))
        except (KeyError, ValueError) as exc:
            raise AuthenticationError("Invalid token") from exc
