"""API routes."""

from fastapi import APIRouter

from app.routes import compare

api_router = APIRouter()

# Compare + key parsing
api_router.include_router(compare.router, prefix="/v1", tags=["compare"])
