import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from app.accounts.router import admin_router as admin_users_router
from app.accounts.router import router as accounts_router
from app.certificates.router import admin_router as admin_certificates_router
from app.certificates.router import router as certificates_router
from app.config import Settings
from app.database import init_db
from app.dependencies import get_settings
from app.enrollment.router import router as learning_router
from app.lms.router import router as lms_router
from app.moderation.router import router as moderation_router
from shared.middleware.error_handler import error_envelope_middleware
from shared.middleware.request_id import request_id_middleware

logging.basicConfig(
    level=Settings().log_level.upper(),
    format="%(levelname)s:%(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    service: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    from app import task_queue

    settings = get_settings()
    init_db(settings.course_database_url)
    if settings.task_queue_enabled:
        try:
            await task_queue.init_pool(settings.redis_url, settings.task_queue_name)
        except Exception:
            # Certificate retries also run on the next certificate download
            logger.warning("Redis unavailable; certificate retry jobs disabled", exc_info=True)
    yield
    await task_queue.close_pool()


SWAGGER_DESCRIPTION = """\
## MicroCourses Learning Service

Short video courses: authoring, moderation, enrollment, progress
tracking and verifiable completion certificates.

### Domain Tags

| Tag | Description |
|-----|-------------|
| **LMS** | Course and lesson authoring, thumbnails, public catalog |
| **Moderation** | Admin review queue, approve and reject |
| **Learning** | Enroll, complete lessons, progress, certificate PDF |
| **Certificates** | My certificates, public verification, admin invalidation |
| **Accounts** | Profile, account status, per-course restrictions |

### Authentication

All endpoints except the catalog, health check and certificate
verification require a JWT Bearer token in the `Authorization` header.
Token structure: `{"sub": "<user_uuid>", "email": "...", "name": "...", "roles": [...]}`.

### Course Status Transitions

```
DRAFT ──submit──▶ SUBMITTED ──approve──▶ PUBLISHED ──edit──▶ PENDING_REVIEW
  ▲                   │                      ▲                    │
  │                reject                    └──────approve───────┤
  └──edit── REJECTED ◀┴──────────────────────────reject───────────┘
```
"""


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="MicroCourses Learning Service",
        version="0.1.0",
        description=SWAGGER_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Middleware (applied in reverse-registration order: last added = outermost)
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

    app.include_router(lms_router, prefix="/api/v1")
    app.include_router(moderation_router, prefix="/api/v1")
    app.include_router(learning_router, prefix="/api/v1")
    app.include_router(certificates_router, prefix="/api/v1")
    app.include_router(admin_certificates_router, prefix="/api/v1")
    app.include_router(accounts_router, prefix="/api/v1")
    app.include_router(admin_users_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="course")

    return app


app = create_app()
