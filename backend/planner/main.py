"""FastAPI application factory and cross-cutting HTTP concerns.

`create_app` wires settings, the database engine, the token issuer and
the password context into an `AppContext`, registers the resource
routers under `Settings.API_PREFIX` and installs:

- a request middleware (request id, rate limit, security headers,
  one JSON log line per request)
- exception handlers that render every failure as the
  `{success: false, message, errors?}` envelope
- `GET {prefix}/health`

Run locally with `planner-api` or `uvicorn planner.main:create_app --factory`.
"""

import json
import logging
import time
import uuid
from datetime import timedelta
from typing import Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import TokenIssuer
from .config import Settings
from .context import AppContext
from .database import build_engine, create_db_and_tables
from .errors import PlannerError
from .routes import auth, progress, reminders, study_sessions, subjects, tasks, timetable
from .services import build_password_context
from .utils.dates import iso, utcnow
from .utils.rate_limit import InMemoryRateLimiter

logger = logging.getLogger("planner.api")

ROUTERS = (auth, tasks, subjects, timetable, progress, reminders, study_sessions)


def _error(status_code: int, message: str, errors=None, headers=None) -> JSONResponse:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _validation_items(exc: RequestValidationError) -> Tuple[list, set]:
    """Flatten pydantic errors into `{field, message}` items.

    Messages raised by our own validators are used verbatim, without
    pydantic's "Value error, " prefix. Also returns the set of request
    locations (body, query, path) that failed.
    """
    items, locations = [], set()
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        if loc:
            locations.add(loc[0])
        field = ".".join(loc[1:]) or (loc[0] if loc else "")
        cause = (err.get("ctx") or {}).get("error")
        message = str(cause) if err.get("type") == "value_error" and cause else err.get("msg", "Invalid value")
        items.append({"field": field, "message": message})
    return items, locations


def _install_exception_handlers(app: FastAPI):
    @app.exception_handler(PlannerError)
    async def planner_error_handler(request: Request, exc: PlannerError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return _error(exc.status_code, exc.message, exc.errors, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        items, locations = _validation_items(exc)
        only_query = bool(locations) and locations <= {"query", "path"}
        return _error(400, "Invalid query parameters" if only_query else "Validation failed", items)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(404, "API endpoint not found")
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error request_id=%s", getattr(request.state, "request_id", ""))
        # detail stays in the server log only
        return _error(500, "Something went wrong!")


def _install_request_middleware(app: FastAPI, settings: Settings, limiter: InMemoryRateLimiter):
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        request.state.request_id = req_id
        client = request.client.host if request.client else "unknown"
        started = time.perf_counter()
        response: Response
        if request.url.path.startswith(settings.API_PREFIX + "/") and request.method != "OPTIONS":
            allowed, retry_after = limiter.allow(client)
            if not allowed:
                response = _error(429, "Too many requests from this IP, please try again later.",
                                  headers={"Retry-After": str(retry_after)})
                response.headers["X-Request-ID"] = req_id
                return response
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
            logger.exception(
                "request_failed %s",
                json.dumps({"request_id": req_id, "path": request.url.path, "method": request.method,
                            "duration_ms": elapsed_ms, "client": client}, ensure_ascii=True),
            )
            raise
        response.headers["X-Request-ID"] = req_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.info(
            "request_done %s",
            json.dumps({"request_id": req_id, "path": request.url.path, "method": request.method,
                        "status_code": response.status_code, "duration_ms": elapsed_ms, "client": client},
                       ensure_ascii=True),
        )
        return response


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build a fully wired application for `settings` (env-based by default)."""
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    engine = build_engine(settings)
    create_db_and_tables(engine)
    limiter = InMemoryRateLimiter(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)

    app = FastAPI(title="Student Study Planner API")
    app.state.context = AppContext(
        settings=settings,
        engine=engine,
        tokens=TokenIssuer(settings.JWT_SECRET, settings.JWT_ALGORITHM, timedelta(days=settings.JWT_EXPIRE_DAYS)),
        pwd_ctx=build_password_context(),
        rate_limiter=limiter,
    )

    _install_request_middleware(app, settings, limiter)
    # dev: any origin without credentials; otherwise only CORS_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.ALLOW_DEV_CORS else settings.CORS_ORIGINS,
        allow_credentials=not settings.ALLOW_DEV_CORS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["Content-Type", "Authorization", "Origin", "X-Requested-With", "Accept", "X-Request-ID"],
        max_age=600,
    )
    _install_exception_handlers(app)

    for module in ROUTERS:
        app.include_router(module.router, prefix=settings.API_PREFIX)

    @app.get(settings.API_PREFIX + "/health")
    def health():
        """Lightweight health check for uptime monitoring."""
        return {"success": True, "message": "Server is running successfully", "timestamp": iso(utcnow())}

    logger.info("app ready env=%s prefix=%s", settings.ENV, settings.API_PREFIX or "/")
    return app


def main():
    """Console entrypoint: serve the app with uvicorn."""
    import uvicorn

    settings = Settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT)
