"""Process-wide collaborators built once by `create_app`.

The settings, database engine, token issuer, password context and rate
limiter are constructed explicitly and stored on `app.state.context`;
request dependencies read them from there instead of module globals.
"""

from dataclasses import dataclass

from fastapi import Request
from passlib.context import CryptContext
from sqlalchemy.engine import Engine

from .auth import TokenIssuer
from .config import Settings
from .utils.rate_limit import InMemoryRateLimiter


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    tokens: TokenIssuer
    pwd_ctx: CryptContext
    rate_limiter: InMemoryRateLimiter


def get_app_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context of the serving app."""
    return request.app.state.context
