"""
Main.py works as a main function for the application
Api app starts from here
"""

from contextlib import asynccontextmanager
from logging import getLogger
from logging.config import dictConfig
import asyncio

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from soulseer.core.config import settings
from soulseer.database import close_db, get_async_session_context, init_db
from soulseer.models.user import User, UserRole, UserStatus
from soulseer.routers import (admin_analytics_router, admin_content_router,
                              admin_finance_router,
                              admin_readers_router, admin_review_router,
                              admin_session_router, admin_support_router,
                              admin_user_router, auth_router,
                              availability_router, cart_router, chat_router,
                              gift_router, notification_router,
                              payouts_router, products_router,
                              purchases_router, reader_router, review_router,
                              session_router, support_router, user_router,
                              wallet_router, websocket as websocket_router)
from soulseer.services.reminder_scheduler import get_reminder_scheduler
from soulseer.utils.dependencies import get_current_user
from soulseer.utils.logger import build_logging_config
from soulseer.utils.seed_data import init_seed_data


# ----------------------------------------------------------------------
# Lifespan: database setup and background tasks
# ----------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    if settings.SEED_ON_STARTUP:
        async with get_async_session_context() as session:
            try:
                await init_seed_data(session)
            except Exception as e:
                logger.error(f"Seeding failed: {e}", exc_info=True)

    tasks = []

    if settings.ENABLE_REMINDER_SCHEDULER:
        scheduler = get_reminder_scheduler()
        tasks.append(asyncio.create_task(scheduler.run()))
        logger.info("Reminder scheduler task created")

    yield

    logger.info("Stopping background tasks...")
    for task in tasks:
        task.cancel()

    await asyncio.gather(*tasks, return_exceptions=True)
    await close_db()
    logger.info("Shutdown complete")


logger = getLogger(__name__)

# ----------------------------------------------------------------------
# FastAPI application
# ----------------------------------------------------------------------
app = FastAPI(
    title="SoulSeer",
    description="Psychic reading marketplace backend API",
    version="1.0.0",
    docs_url=(
        "/api/docs"
        if settings.DEPLOY_PHASE in ("dev", "local")
        else None
    ),
    lifespan=lifespan,
)

# ----------------------------------------------------------------------
# Auth bypass for local development
# ----------------------------------------------------------------------
def dev_user() -> User:
    """Unsaved admin account served to every request when SKIP_AUTH is on"""
    return User(user_id=1, email="dev@example.com", name="Dev User",
                role=UserRole.ADMIN, status=UserStatus.ACTIVE, timezone="UTC")


if settings.SKIP_AUTH and settings.DEPLOY_PHASE in ("dev", "local"):
    app.dependency_overrides[get_current_user] = dev_user

# ----------------------------------------------------------------------
# Logging
# ----------------------------------------------------------------------
dictConfig(build_logging_config(settings.LOG_LEVEL, settings.SQL_ECHO))

# ----------------------------------------------------------------------
# Exception handlers
# ----------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    error_messages = []

    for error in errors:
        field = error.get("loc", [])[-1] if error.get("loc") else "unknown"
        msg = error.get("msg", "")

        if "at least" in msg and "characters" in msg:
            min_length = error.get("ctx", {}).get("min_length", "")
            error_messages.append(f"{field} must be at least {min_length} characters.")
        elif "valid email" in msg.lower():
            error_messages.append(f"{field} must be a valid email address.")
        elif "missing" in msg.lower():
            error_messages.append(f"{field} is required.")
        else:
            error_messages.append(f"{field}: {msg}")

    for message in error_messages:
        logger.warning(f"{request.method} {request.url.path}: {message}")

    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(errors)}
    )


# ----------------------------------------------------------------------
# CORS
# ----------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------------------------------------------------------
# Routers
# ----------------------------------------------------------------------
app.include_router(auth_router)
app.include_router(user_router)
app.include_router(reader_router)
app.include_router(availability_router)
app.include_router(session_router)
app.include_router(chat_router)
app.include_router(notification_router)
app.include_router(products_router)
app.include_router(cart_router)
app.include_router(purchases_router)
app.include_router(review_router)
app.include_router(gift_router)
app.include_router(wallet_router)
app.include_router(support_router)
app.include_router(payouts_router)
app.include_router(admin_user_router)
app.include_router(admin_readers_router)
app.include_router(admin_session_router)
app.include_router(admin_review_router)
app.include_router(admin_analytics_router)
app.include_router(admin_finance_router)
app.include_router(admin_support_router)
app.include_router(admin_content_router)
app.include_router(websocket_router.router)

# ----------------------------------------------------------------------
# Health check
# ----------------------------------------------------------------------


@app.get("/")
async def root():
    return {"message": "SoulSeer API", "phase": settings.DEPLOY_PHASE}
