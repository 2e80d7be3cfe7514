import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.audit.recorder import AuditRecorder
from app.config import Settings
from app.database import get_session_factory, init_db
from app.enrollment.router import router as enrollment_router
from app.rate_limit import limiter
from app.registry.directory import UserDirectory
from app.waitlist.router import router as waitlist_router
from shared.middleware.error_handler import error_envelope_middleware
from shared.middleware.request_id import RequestIdLogFilter, request_id_middleware


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## Enrollment Service

Course capacity management for the LMS: enrollment, waitlisting and promotion.

* **Enrollment** — students claim a seat in an ACTIVE course inside its enrollment
  window, provided every prerequisite course is COMPLETED. A full course puts the
  student on the waitlist instead (`202 Accepted`).
* **Drop** — an ACTIVE enrollment becomes DROPPED and the freed seat goes to the
  head of the waitlist in the same step.
* **Waitlist** — strict first-come, first-served line per course. Students can
  leave the line at any time; instructors and admins can view it.
* **Roster management** — course instructors and admins can enroll or remove
  students on their behalf.

Every state transition is written to an append-only audit log.

### Authentication
All endpoints require:
```
Authorization: Bearer <access_token>
```
Roster endpoints additionally require the `teacher` (assigned to the course) or
`admin` role.

### Error shape
Errors return `{ "detail": "Human-readable message" }`. Unexpected failures are
wrapped as `{ "error": { "code", "message" }, "request_id" }`.

### Rate limits
Enroll and drop are rate limited per client; `429 Too Many Requests` is returned
when the limit is exceeded.
"""

_TAGS_METADATA = [
    {
        "name": "enrollment",
        "description": (
            "Enroll, drop, eligibility preview and capacity summary for students; "
            "enroll-on-behalf and unenroll for instructors/admins."
        ),
    },
    {
        "name": "waitlist",
        "description": (
            "The caller's waitlist entries, voluntary withdrawal, and the ordered "
            "course waitlist for instructors/admins."
        ),
    },
]


# ── Health schema ─────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    service: str


# ── App factory ───────────────────────────────────────────────────────────────

def get_settings() -> Settings:
    return Settings()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s:%(name)s: [%(request_id)s] %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIdLogFilter())


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    _configure_logging(settings.log_level)
    init_db(settings.enrollment_database_url)
    app.state.audit = AuditRecorder(get_session_factory())
    app.state.user_directory = UserDirectory(
        settings.identity_service_url,
        timeout=settings.identity_service_timeout_secs,
    )
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="LMS Enrollment Service",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Attach rate limiter state before middleware
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Middleware is applied in reverse-registration order (last added = outermost).
    # CORS must be outermost so ALL responses (including 429s) carry CORS headers.
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    app.include_router(enrollment_router, prefix="/api/v1")
    app.include_router(waitlist_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["health"], include_in_schema=True)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="enrollment")

    return app


app = create_app()
