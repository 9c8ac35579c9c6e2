"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import bookings, contracts, escrow, vessels, webhooks

api_router = APIRouter()

# Vessels
api_router.include_router(vessels.router, prefix="/vessels", tags=["Vessels"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Contracts
api_router.include_router(contracts.router, prefix="/contracts", tags=["Contracts"])

# Escrow
api_router.include_router(escrow.router, prefix="/escrow", tags=["Escrow"])

# Webhooks
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
