# aishe_portal/main.py

from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from aishe_portal.core.config import settings
from aishe_portal.core.database import AsyncSessionLocal, init_db, ping, test_connection
from aishe_portal.core.errors import PortalError
from aishe_portal.core.logging import configure_logging, request_logging_middleware
from aishe_portal.core.maintenance import DEFAULT_MESSAGE, MaintenanceGate
from aishe_portal.core.rate_limiter import limiter
from aishe_portal.core.retry import is_db_timeout
from aishe_portal.models.user import UserRole
from aishe_portal.schemas.user import UserCreate
from aishe_portal.services.settings_service import get_maintenance_status
from aishe_portal.services.user_service import create_user, get_user_by_username

# Routers
from aishe_portal.api.endpoints import (
    admins as admins_router,
    auth as auth_router,
    department_users as department_users_router,
    maintenance as maintenance_router,
    office_users as office_users_router,
)

configure_logging()

# ------------------------------------------------------------
# FASTAPI APP INIT
# ------------------------------------------------------------
app = FastAPI(
    title="AISHE Portal Backend",
    version="1.0.0",
    description="Data submission and reporting portal for admin, department, office and principal users.",
)

app.state.limiter = limiter


# ------------------------------------------------------------
# MAINTENANCE GATE
# ------------------------------------------------------------
async def load_maintenance_status():
    async with AsyncSessionLocal() as session:
        return await get_maintenance_status(session)


app.state.maintenance_gate = MaintenanceGate(
    load_maintenance_status,
    ttl_seconds=settings.MAINTENANCE_CACHE_SECONDS,
)


@app.middleware("http")
async def maintenance_middleware(request: Request, call_next):
    gate: MaintenanceGate = request.app.state.maintenance_gate
    if gate.is_exempt(request.url.path):
        return await call_next(request)

    state = await gate.current()
    if state.enabled:
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "maintenance": True,
                "message": state.message or DEFAULT_MESSAGE,
            },
        )
    return await call_next(request)


app.middleware("http")(request_logging_middleware)


# ------------------------------------------------------------
# CORS CONFIGURATION
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Authorization", "Content-Type"],
)


# ------------------------------------------------------------
# ERROR ENVELOPES
# ------------------------------------------------------------
def error_response(status_code: int, message: str, exc: Exception | None = None) -> JSONResponse:
    content = {"success": False, "message": message}
    if exc is not None and not settings.is_production:
        content["error"] = str(exc)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = "request body"
    if errors:
        loc = [str(part) for part in errors[0].get("loc", ()) if part != "body"]
        field = ".".join(loc) or field
    return error_response(400, f"Missing or invalid field: {field}", exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return error_response(429, "Too many requests. Please try again later.")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    if is_db_timeout(exc):
        logger.error(f"Database timeout on {request.method} {request.url.path}: {exc}")
        return error_response(503, "Database timeout. Please try again.", exc)

    logger.exception(f"Server error on {request.method} {request.url.path}")
    return error_response(500, "Internal server error", exc)


# ------------------------------------------------------------
# REGISTER ROUTERS (maintenance before admin's /{admin_id})
# ------------------------------------------------------------
app.include_router(auth_router.router)
app.include_router(maintenance_router.router)
app.include_router(admins_router.router)
app.include_router(department_users_router.router)
app.include_router(office_users_router.router)


# ------------------------------------------------------------
# APPLICATION STARTUP EVENTS
# ------------------------------------------------------------
async def seed_super_admin():
    if not (settings.SUPER_ADMIN_USERNAME and settings.SUPER_ADMIN_EMAIL and settings.SUPER_ADMIN_PASSWORD):
        logger.warning("Missing Super Admin credentials in settings. Skipping seed.")
        return

    async with AsyncSessionLocal() as session:
        existing = await get_user_by_username(session, UserRole.Admin, settings.SUPER_ADMIN_USERNAME)
        if existing:
            logger.info("Super Admin already exists. Skipping.")
            return

        logger.info(f"Seeding Super Admin: {settings.SUPER_ADMIN_USERNAME}")
        await create_user(
            session,
            UserRole.Admin,
            UserCreate(
                username=settings.SUPER_ADMIN_USERNAME,
                email=settings.SUPER_ADMIN_EMAIL,
                name=settings.SUPER_ADMIN_NAME or "Nodal Officer",
                mobile="",
                role="Nodal Officer",
                password=settings.SUPER_ADMIN_PASSWORD,
            ),
        )
        logger.success("Super Admin created successfully.")


@app.on_event("startup")
async def on_startup():
    logger.info("Starting AISHE Portal Backend...")

    # 1) Database connection test
    if not await test_connection():
        logger.error("Startup continuing without database; /health will report it.")
        return

    # 2) Initialize database tables
    try:
        await init_db()
        logger.success("Database tables ready.")
    except Exception as e:
        logger.warning(f"Table initialization encountered an issue: {e}")

    # 3) Seed Super Admin
    try:
        await seed_super_admin()
    except Exception:
        logger.exception("Super Admin seeding failed.")

    logger.success("Backend startup completed successfully.")


# ------------------------------------------------------------
# HEALTH CHECKS
# ------------------------------------------------------------
@app.get("/health", tags=["System"])
async def health():
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        await ping()
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "ERROR", "timestamp": timestamp, "database": "Disconnected"},
        )
    return {"status": "OK", "timestamp": timestamp, "database": "Connected"}


@app.get("/", tags=["System"])
async def root():
    return {
        "success": True,
        "service": "AISHE Portal Backend",
        "version": app.version,
        "message": "Backend running successfully",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("aishe_portal.main:app", host="0.0.0.0", port=settings.PORT)
