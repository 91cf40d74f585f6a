"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import agents, business_plans, functions

router = APIRouter()

# Business plan upload, listing and analysis viewer routes
router.include_router(business_plans.router, tags=["business_plans"])

# Persona agents and stored conversations
router.include_router(agents.router, prefix="/agents", tags=["agents"])

# Function endpoints (analyze-business-plan, chat-agent)
router.include_router(functions.router, prefix="/functions", tags=["functions"])
