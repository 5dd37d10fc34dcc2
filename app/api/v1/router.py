"""
API Router configuration
"""

from fastapi import APIRouter

from app.api.v1 import (
    health,
    auth,
    users,
    folders,
    records,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(users.router, tags=["users"])
api_router.include_router(folders.router, prefix="/folders", tags=["folders"])
api_router.include_router(records.router, prefix="/records", tags=["records"])
