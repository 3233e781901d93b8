from fastapi import APIRouter

from rpakit.routers.archives import router as archives_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(archives_router)
