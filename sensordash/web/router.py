from fastapi import APIRouter

from sensordash.web.routes.exports import router as exports_router
from sensordash.web.routes.pages import router as pages_router

ui_router = APIRouter(prefix="/ui", include_in_schema=False)
ui_router.include_router(pages_router)
ui_router.include_router(exports_router)
