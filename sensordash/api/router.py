from fastapi import APIRouter

from sensordash.api.routes import auth, dashboard, measurements

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(dashboard.router, tags=["dashboard"])
api_router.include_router(measurements.router, tags=["measurements"])
