"""Main API router."""

from fastapi import APIRouter

from streamsense.api.dna import router as dna_router
from streamsense.api.interactions import router as interactions_router
from streamsense.api.recommendations import router as recommendations_router
from streamsense.api.taste_profile import router as taste_profile_router

api_router = APIRouter(prefix="/api")

api_router.include_router(recommendations_router)
api_router.include_router(taste_profile_router)
api_router.include_router(interactions_router)
api_router.include_router(dna_router)
