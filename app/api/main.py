"""FastAPI application for the newsletter service."""
from contextlib import asynccontextmanager
from typing import Optional
import logging
import sys
import time

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import redis.asyncio as redis

from app.core.config import Settings, get_settings
from app.core.database import create_engine_from_settings, create_session_factory
from app.core.errors import LoginRequired, NewsletterError, error_chain
from app.core.redis import close_redis, create_redis
from app.core.session import RedisSessionStore, session_middleware
from app.providers import EmailProvider
from app.providers.postmark import PostmarkEmailClient
from app.services.auth_service import AuthService

# Import routers
from app.api.routes import admin, health, home, login, subscriptions

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


async def seed_admin(app: FastAPI) -> None:
    """Create the configured admin account if it does not exist yet."""
    settings: Settings = app.state.settings
    if not (settings.admin_username and settings.admin_password):
        logger.info("No admin account configured (ADMIN_USERNAME/ADMIN_PASSWORD not set)")
        return

    logger.info(f"Checking for admin account: {settings.admin_username}")
    async with app.state.session_factory() as db:
        try:
            user = await AuthService.create_user(settings.admin_username, settings.admin_password, db)
            logger.info(f"✓ Admin account ready: {user.username} (ID: {user.user_id})")
        except Exception as e:
            logger.error(f"✗ Failed to create admin account: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed the admin on startup and release pooled resources on shutdown."""
    logger.info("Application starting up...")
    await seed_admin(app)
    logger.info("Application startup complete")

    yield

    logger.info("Application shutting down...")
    await app.state.email_client.aclose()
    await close_redis(app.state.redis)
    await app.state.engine.dispose()
    logger.info("Application shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    *,
    redis_client: Optional[redis.Redis] = None,
    email_client: Optional[EmailProvider] = None
) -> FastAPI:
    """
    Build the application and its shared resources.

    Args:
        settings: Configuration; read from the environment when omitted
        redis_client: Session store backend; built from ``settings.redis_url`` when omitted
        email_client: Email gateway; a Postmark client when omitted

    Returns:
        The configured FastAPI app
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="Newsletter Service", version="1.0.0", lifespan=lifespan)

    engine = create_engine_from_settings(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.redis = redis_client if redis_client is not None else create_redis(settings.redis_url)
    app.state.session_store = RedisSessionStore(app.state.redis, settings.session_ttl_seconds)
    app.state.email_client = email_client if email_client is not None else PostmarkEmailClient.from_settings(settings)

    # Rate limiting; enabled and sized per request from app.state.settings
    app.state.limiter = login.limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Registered first so it runs innermost, after the session is resolved
    app.middleware("http")(session_middleware)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming requests and responses."""
        start_time = time.time()

        # Log request
        logger.info(f"→ {request.method} {request.url.path}")
        logger.debug(f"  Query params: {dict(request.query_params)}")

        try:
            response = await call_next(request)
            process_time = time.time() - start_time

            # Log response
            logger.info(f"← {request.method} {request.url.path} - Status: {response.status_code} - Time: {process_time:.3f}s")

            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(f"← {request.method} {request.url.path} - ERROR after {process_time:.3f}s: {str(e)}")
            raise

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired):
        logger.debug(f"Redirecting anonymous request for {request.url.path} to /login")
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())}
        )

    @app.exception_handler(NewsletterError)
    async def newsletter_error_handler(request: Request, exc: NewsletterError):
        """Map the error taxonomy onto status codes; details stay in the log."""
        if exc.status_code < 500:
            logger.warning(f"{request.method} {request.url.path} failed: {error_chain(exc)}")
            detail = str(exc)
        else:
            logger.error(f"{request.method} {request.url.path} failed: {error_chain(exc)}")
            detail = "Internal server error"
        return JSONResponse(status_code=exc.status_code, content={"detail": detail})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions."""
        logger.error(f"Unhandled exception in {request.method} {request.url.path}")
        logger.error(f"Exception type: {type(exc).__name__}")
        logger.error(f"Exception message: {str(exc)}", exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "error": str(exc) if settings.log_level == "DEBUG" else "Internal server error"
            }
        )

    # Include routers
    app.include_router(health.router)
    app.include_router(home.router)
    app.include_router(subscriptions.router)
    app.include_router(login.router)
    app.include_router(admin.router)

    return app


if __name__ == "__main__":
    import uvicorn

    app_settings = get_settings()
    uvicorn.run(create_app(app_settings), host=app_settings.app_host, port=app_settings.app_port)
