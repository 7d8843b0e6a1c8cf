"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    auth, admin, warehouses, trucks, truck_workflow,
    history, dashboard, notifications
)

router = APIRouter()

# Authentication
router.include_router(auth.router)

# User management and audit trail
router.include_router(admin.router)

# Warehouses and their trucks
router.include_router(warehouses.router)
router.include_router(trucks.router)

# Reception workflow actions
router.include_router(truck_workflow.router)

# Read models
router.include_router(history.router)
router.include_router(dashboard.router)
router.include_router(notifications.router)
