"""Token issuing/verification and the FastAPI authorization dependency.

`TokenIssuer` signs and checks HS256 JWTs carrying a `user_id` claim.
`require_user` is the gate every protected route depends on: it reads
the bearer token, verifies it, loads the user and returns an explicit
`RequestContext`. All failures raise `AuthenticationFailure` with one of
two fixed messages: one for token problems, one for everything else.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories
from .database import get_session
from .errors import AuthenticationFailure

AUTH_REQUIRED = "Authentication required"
INVALID_TOKEN = "Invalid or expired token"

bearer_scheme = HTTPBearer(auto_error=False)


def _utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class InvalidToken(Exception):
    """Raised for any malformed, tampered or expired token."""


class TokenIssuer:
    """Create and verify signed, time-limited bearer tokens.

    `clock` returns an aware UTC datetime and exists so tests can move
    time around the expiry boundary.
    """
    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=30),
                 clock: Optional[Callable[[], datetime]] = None):
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl
        self._clock = clock or _utc_clock

    def issue(self, user_id: str) -> str:
        now = self._clock()
        payload = {
            "user_id": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        """Return the embedded user id or raise `InvalidToken`.

        The signature is checked by PyJWT first; expiry is then compared
        against our own clock rather than PyJWT's.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["user_id", "iat", "exp"]},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidToken() from exc
        user_id = payload.get("user_id")
        exp = payload.get("exp")
        if not isinstance(user_id, str) or not user_id or not isinstance(exp, (int, float)):
            raise InvalidToken()
        if self._clock().timestamp() >= exp:
            raise InvalidToken()
        return user_id


@dataclass(frozen=True)
class RequestContext:
    """The authenticated caller, handed to every protected route."""
    user: models.User
    request_id: str = ""

    @property
    def user_id(self) -> str:
        return self.user.id


def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> RequestContext:
    """FastAPI dependency that returns the authenticated caller.

    The user is loaded through the request's own session so routes can
    modify and save it directly.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationFailure(AUTH_REQUIRED)
    tokens: TokenIssuer = request.app.state.context.tokens
    try:
        user_id = tokens.verify(credentials.credentials)
    except InvalidToken:
        raise AuthenticationFailure(INVALID_TOKEN)
    user = repositories.UserRepository(session).get(user_id)
    if user is None or not user.is_active:
        raise AuthenticationFailure(AUTH_REQUIRED)
    return RequestContext(user=user, request_id=getattr(request.state, "request_id", ""))
