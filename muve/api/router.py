"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from muve.api.evaluations import router as evaluations_router
from muve.api.previews import router as previews_router

api_router = APIRouter()
api_router.include_router(evaluations_router)
api_router.include_router(previews_router)
