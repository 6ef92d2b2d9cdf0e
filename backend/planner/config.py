"""Application settings and validation."""

import os

DEFAULT_JWT_SECRET = "change_me_for_prod"
DEFAULT_CORS_ORIGINS = (
    "https://planity-frontend.vercel.app,"
    "http://localhost:5173,"
    "http://localhost:5174,"
    "http://localhost:3000"
)


class Settings:
    """Runtime configuration built from environment variables.

    Keyword overrides take precedence over the environment, which keeps
    tests from having to mutate `os.environ`.
    """
    ENV: str
    DATABASE_URL: str
    API_PREFIX: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_DAYS: int
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    CORS_ORIGINS: list
    LOG_LEVEL: str
    PORT: int
    RATE_LIMIT_WINDOW_SECONDS: int
    RATE_LIMIT_MAX_REQUESTS: int

    def __init__(self, **overrides):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./planner.db")
        self.API_PREFIX = os.getenv("API_PREFIX", "/api").rstrip("/")
        self.JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "30"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if o.strip()]
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.PORT = int(os.getenv("PORT", "5000"))
        self.RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))  # 15 minutes
        self.RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"unknown setting: {key}")
            setattr(self, key, value)
        self._validate()

    @property
    def is_dev(self) -> bool:
        return self.ENV == "dev"

    def _validate(self):
        if not self.is_dev and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.JWT_EXPIRE_DAYS <= 0:
            raise RuntimeError("JWT_EXPIRE_DAYS must be a positive number of days")
        if self.RATE_LIMIT_MAX_REQUESTS <= 0 or self.RATE_LIMIT_WINDOW_SECONDS <= 0:
            raise RuntimeError("rate limit window and max requests must be positive")
