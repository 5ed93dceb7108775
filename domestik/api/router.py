"""Top-level API router."""

from fastapi import APIRouter

from domestik.api.routes.clients import router as clients_router
from domestik.api.routes.dashboards import router as dashboards_router
from domestik.api.routes.exports import router as exports_router
from domestik.api.routes.health import router as health_router
from domestik.api.routes.me import router as me_router
from domestik.api.routes.services import router as services_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(clients_router)
api_router.include_router(services_router)
api_router.include_router(dashboards_router)
api_router.include_router(exports_router)
