from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
import logging

from blogapi.core.config import settings
from blogapi.api.router import api_router
from blogapi.api.endpoints.posts import COMMENT_COUNT_HEADER, HAS_LIKED_HEADER
from blogapi.db.async_session import startup_async_database, shutdown_async_database
from blogapi.services.async_error_handler import register_exception_handlers

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
    redirect_slashes=False,
)

# Custom OpenAPI schema with explicit security scheme
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.PROJECT_DESCRIPTION,
        routes=app.routes,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "OAuth2PasswordBearer": {
            "type": "oauth2",
            "flows": {
                "password": {
                    "tokenUrl": f"{settings.API_V1_PREFIX}/auth/token",
                    "scopes": {}
                }
            }
        }
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[HAS_LIKED_HEADER, COMMENT_COUNT_HEADER],
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)

@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup."""
    try:
        logger.info(f"Starting up {settings.PROJECT_NAME}...")
        await startup_async_database()
        logger.info("Async database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to start up application: {e}")
        raise

@app.on_event("shutdown")
async def shutdown_event():
    """Clean up services on application shutdown."""
    try:
        await shutdown_async_database()
        logger.info("Async database connections closed")
    except Exception as e:
        logger.error(f"Error during application shutdown: {e}")

@app.get("/")
async def root():
    return {"status": "ok", "message": f"Welcome to {settings.PROJECT_NAME}"}
