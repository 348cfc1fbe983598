from fastapi import APIRouter

from capstone.api.v1.health import router as health_router
from capstone.api.v1.proposals import router as proposals_router
from capstone.api.v1.outlines import router as outlines_router
from capstone.api.v1.committees import router as committees_router
from capstone.api.v1.evaluations import router as evaluations_router

v1_router = APIRouter()

v1_router.include_router(health_router, tags=["health"])

# proposal workflow
v1_router.include_router(proposals_router)
v1_router.include_router(outlines_router)

# defense + scoring
v1_router.include_router(committees_router)
v1_router.include_router(evaluations_router)
