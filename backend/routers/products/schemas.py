from pydantic import Field, validator
from typing import Optional
from datetime import datetime
from enum import Enum
from utils.response_helpers import CamelModel
import uuid


class ProductStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELISTED = "DELISTED"


# Fields that only change through a reviewed change request
SENSITIVE_FIELDS = ("category", "material", "spec", "unit_price")

# Fields the owning supplier may edit directly
DIRECT_FIELDS = ("name", "image", "stock", "units_per_package", "package_count")


class ProductCreate(CamelModel):
    """Platform-side direct creation on behalf of a supplier"""
    supplier_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    material: str = Field(..., min_length=1, max_length=200)
    spec: str = Field(..., min_length=1, max_length=200)
    image: Optional[str] = None
    stock: int = Field(0, ge=0)
    unit_price: Optional[float] = Field(None, ge=0)
    units_per_package: Optional[int] = Field(None, ge=1)
    package_count: Optional[int] = Field(None, ge=0)


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    image: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    units_per_package: Optional[int] = Field(None, ge=1)
    package_count: Optional[int] = Field(None, ge=0)

    # Accepted only when unchanged; edits go through product change requests
    category: Optional[str] = None
    material: Optional[str] = None
    spec: Optional[str] = None
    unit_price: Optional[float] = None


class ProductStatusUpdate(CamelModel):
    status: ProductStatus

    @validator('status', pre=True)
    def normalize_status(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class ProductResponse(CamelModel):
    id: str
    name: str
    category: str
    material: str
    spec: str
    image: Optional[str] = None
    stock: int
    unit_price: Optional[float] = None
    units_per_package: Optional[int] = None
    package_count: Optional[int] = None
    supplier_id: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductSummary(CamelModel):
    id: str
    name: str
    category: str
    status: str
    supplier_id: str
