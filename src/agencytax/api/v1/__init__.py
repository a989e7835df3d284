"""API version 1 routes."""

from fastapi import APIRouter

from agencytax.api.v1 import plaid

router = APIRouter(prefix="/api/v1")

# Include routers
router.include_router(plaid.router)
