"""
API Routes Package

This module consolidates all API routes for the PayPal relay.
"""

from fastapi import APIRouter

from . import orders
from . import webhooks

# Create main router
router = APIRouter()

# Include all route modules
router.include_router(orders.router, prefix="/api", tags=["orders"])
router.include_router(webhooks.router, tags=["webhooks"])

# Export for use in main application
__all__ = ["router"]
