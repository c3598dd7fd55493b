"""
FastAPI Application Entry Point.
Initializes the FastAPI app with middleware, CORS, and routes.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from offgrid.config import settings
from offgrid.core.database import engine
from offgrid.core.websocket import connection_manager

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"OffGrid server starting ({settings.environment})")
    yield
    connection_manager.refreshes.cancel_prefix("")
    await engine.dispose()


# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


# Initialize FastAPI application
app = FastAPI(
    title="OffGrid Server",
    description="Friends, direct chats, ephemeral media and discovery for the OffGrid app",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter state and error handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# CORS Middleware
# WebSocket CORS is handled by Socket.IO itself (via cors_allowed_origins)
cors_origins = settings.get_allowed_origins_list()
logger.info(f"CORS allowed origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health Check Endpoints
@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "environment": settings.environment,
        }
    )


@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness check endpoint.
    Verifies database connectivity.
    """
    checks = {"database": False}

    try:
        from sqlalchemy import text
        from offgrid.core.database import AsyncSessionLocal

        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
            checks["database"] = True
    except Exception as e:
        logger.warning(f"Readiness check: database unavailable: {e}")

    healthy = checks["database"]
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ready" if healthy else "not ready",
            "checks": checks,
        }
    )


@app.get("/health/websocket", tags=["Health"])
async def websocket_health_check():
    """
    WebSocket configuration health check.
    Returns WebSocket endpoint information for debugging.
    """
    return JSONResponse(
        status_code=200,
        content={
            "status": "configured",
            "websocket_endpoint": "/socket.io/",
            "active_connections": len(connection_manager.connections),
            "active_users": len(connection_manager.user_sessions),
            "active_conversations": len(connection_manager.conversation_rooms),
            "config": {
                "path": "/socket.io",
                "cors_origins": settings.allowed_origins,
                "heartbeat_interval": settings.ws_heartbeat_interval,
                "redis_manager": bool(settings.redis_url),
            },
        }
    )


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "OffGrid Server API",
        "version": "1.0.0",
        "docs": "/docs" if settings.debug else "Documentation disabled in production",
    }


# Include API routers
from offgrid.api.v1 import auth, conversations, discover, friends, messages, profiles  # noqa: E402

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(profiles.router, prefix="/api/v1/profiles", tags=["Profiles"])
app.include_router(friends.router, prefix="/api/v1/friends", tags=["Friends"])
app.include_router(conversations.router, prefix="/api/v1/conversations", tags=["Conversations"])
app.include_router(messages.router, prefix="/api/v1/messages", tags=["Messages"])
app.include_router(discover.router, prefix="/api/v1/discover", tags=["Discover"])

# Save reference to FastAPI app (for testing/debugging)
fastapi_app = app

# Socket.IO wraps FastAPI: it handles /socket.io/* and FastAPI handles everything else
app = connection_manager.get_asgi_app(fastapi_app)
