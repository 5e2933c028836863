from fastapi import APIRouter, HTTPException
from typing import Dict, Any
import logging

from blogapi.db.async_session import get_async_db_manager, check_async_database_health

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("", response_model=Dict[str, Any])
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        dict: Basic health status
    """
    try:
        manager = await get_async_db_manager()
        connection_test = await manager.test_connection()

        return {
            "status": "healthy" if connection_test else "unhealthy",
            "database": "connected" if connection_test else "disconnected",
            "service": "blogapi"
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")

@router.get("/database", response_model=Dict[str, Any])
async def database_health_check():
    """Database health check with connection pool information."""
    return await check_async_database_health()

@router.get("/app-health")
async def app_health():
    """Liveness probe that does not touch the database."""
    return {"status": "healthy"}
