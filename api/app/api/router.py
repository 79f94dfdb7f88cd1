from fastapi import APIRouter

from app.api.routes import health, intake

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(intake.router, prefix="/api", tags=["intake"])
