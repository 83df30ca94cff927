from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import httpx
import structlog

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.config import settings
from api.database import init_db, close_db, get_db
from api.logging_config import setup_logging
from api.services.cache import cache
from api.middleware.correlation import CorrelationIdMiddleware
from api.middleware.idempotency import IdempotencyMiddleware

# Import models so they are registered with Base.metadata
import api.models  # noqa: F401

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_procurement", env=settings.ENVIRONMENT, demo_mode=settings.DEMO_MODE)
    await init_db()
    yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers: normalize all errors to
# {"error": {"code": "...", "message": "..."}}
# ---------------------------------------------------------------------------

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        detail = {"error": {"code": "HTTP_ERROR", "message": detail}}
    elif isinstance(detail, dict) and "error" not in detail:
        detail = {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            }
        },
    )


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # Unique constraints back the one-RFQ-per-request and bid revision rules
    # when two writers race past the service checks.
    logger.warning("integrity_conflict", path=request.url.path, error=str(exc.orig))
    return JSONResponse(
        status_code=409,
        content={"error": {"code": "CONFLICT", "message": "The record was changed by another request, retry"}},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=503,
        content={"error": {"code": "STORE_UNAVAILABLE", "message": "The data store is unavailable"}},
    )


app.add_middleware(IdempotencyMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Idempotency-Key", "X-Requested-With", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
@app.get("/api/v1/health", tags=["System"], include_in_schema=False)
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except SQLAlchemyError as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"

    if cache.enabled:
        try:
            await cache.ping()
            health_status["checks"]["redis"] = "ok"
        except httpx.HTTPError as e:
            logger.error("health_check_redis_failed", error=str(e))
            health_status["checks"]["redis"] = "error"
            health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from api.routes.projects import router as projects_router  # noqa: E402
from api.routes.vendors import router as vendors_router  # noqa: E402
from api.routes.material_requests import router as material_requests_router  # noqa: E402
from api.routes.rfqs import router as rfqs_router  # noqa: E402
from api.routes.bids import router as bids_router  # noqa: E402

app.include_router(projects_router, prefix="/api/v1/projects", tags=["Projects"])
app.include_router(vendors_router, prefix="/api/v1/vendors", tags=["Vendors"])
app.include_router(material_requests_router, prefix="/api/v1/material-requests", tags=["Material Requests"])
app.include_router(rfqs_router, prefix="/api/v1/rfqs", tags=["RFQs"])
app.include_router(bids_router, prefix="/api/v1/bids", tags=["Bids"])
