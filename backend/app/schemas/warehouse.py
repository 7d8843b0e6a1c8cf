"""
Warehouse Pydantic schemas.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional, List
from backend.app.schemas.common import CamelModel


class WarehouseCreate(CamelModel):
    """Schema for creating a new warehouse."""
    name: str = Field(..., min_length=1, max_length=200, description="Warehouse name")
    location: str = Field(..., min_length=1, max_length=500, description="City or address")
    image_url: Optional[str] = Field(None, max_length=1000)


class WarehouseUpdate(CamelModel):
    """Schema for updating an existing warehouse."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, min_length=1, max_length=500)
    image_url: Optional[str] = Field(None, max_length=1000)


class WarehouseResponse(CamelModel):
    """Schema for warehouse response."""
    id: int
    name: str
    location: str
    image_url: Optional[str] = None
    created_at: datetime


class WarehouseListResponse(CamelModel):
    warehouses: List[WarehouseResponse]
    total: int


class WarehouseDeleteResponse(CamelModel):
    success: bool
    warehouse_id: int
    trucks_removed: int
