"""
API v1 Router

Aggregates all v1 API routes.
"""
from fastapi import APIRouter
from costbook.api.v1 import estimates, quotes, change_orders, projects, quickbooks

# Create main v1 router
api_router = APIRouter()

# Include sub-routers
api_router.include_router(
    estimates.router,
    prefix="/estimates",
    tags=["Estimates"]
)

api_router.include_router(
    quotes.router,
    prefix="/quotes",
    tags=["Quotes"]
)

api_router.include_router(
    change_orders.router,
    prefix="/change-orders",
    tags=["Change Orders"]
)

api_router.include_router(
    projects.router,
    prefix="/projects",
    tags=["Projects"]
)

api_router.include_router(
    projects.client_router,
    prefix="/clients",
    tags=["Clients"]
)

api_router.include_router(
    quickbooks.router,
    prefix="/quickbooks",
    tags=["QuickBooks - Sync History"]
)
