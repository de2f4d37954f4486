from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Import logging system
from core.logging import setup_logging, get_logger, app_logger

from core.config import settings
from core.exceptions import setup_exception_handlers
from core.middleware import setup_middleware
from db_config import SessionLocal
from services.oauth_service import build_providers, build_state_store

# Import routers
from routers import auth, categories, health, posts, users

# Initialize logging system early
setup_logging()
logger = get_logger("fastapi")

API_PREFIX = "/api"

# Create FastAPI app instance
app = FastAPI(
    title=settings.app_name,
    description="Community notice board: posts, engagement, comments and preferences",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

# OAuth collaborators, replaceable in tests through dependency overrides
app.state.oauth_state_store = build_state_store(settings, SessionLocal)
app.state.oauth_providers = build_providers(settings)

# Setup global exception handlers
setup_exception_handlers(app)

# Setup HTTP middleware
middleware_config = {
    "enable_security_headers": settings.enable_security_headers,
    "enable_request_logging": settings.enable_request_logging,
    "enable_size_limit": settings.enable_request_size_limit,
    "max_request_size": settings.max_request_size_bytes,
}
setup_middleware(app, middleware_config)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(posts.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(categories.router, prefix=API_PREFIX)
app.include_router(categories.subcategory_router, prefix=API_PREFIX)
app.include_router(health.router, prefix=API_PREFIX)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint providing basic API information.
    """
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
        "health_checks": {
            "basic": f"{API_PREFIX}/health",
            "database": f"{API_PREFIX}/health/database",
        }
    }


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """Handle application startup."""
    app_logger.info("FastAPI application starting up", extra={"component": "startup"})


@app.on_event("shutdown")
async def shutdown_event():
    """Handle application shutdown."""
    app_logger.info("FastAPI application shutting down", extra={"component": "shutdown"})
