"""
Health check endpoint
"""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health", summary="Liveness probe")
async def health_check():
    return {"status": "healthy"}
