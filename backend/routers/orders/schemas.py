from pydantic import Field, validator
from typing import Optional
from datetime import date, datetime
from enum import Enum
from utils.response_helpers import CamelModel
import uuid


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"


class OrderCreate(CamelModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    request_date: Optional[date] = None  # Defaults to today
    expected_date: date
    design_file_url: Optional[str] = None
    # Optional echo of the caller's id, checked against the token
    manufacturer_id: Optional[uuid.UUID] = None


class OrderDecision(CamelModel):
    status: str
    reason: Optional[str] = None

    @validator('status', pre=True)
    def normalize_status(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class ShipmentCreate(CamelModel):
    company: str = Field(..., min_length=1, max_length=100)
    tracking_number: str = Field(..., min_length=1, max_length=100)
    estimated_arrival_date: date
    batch_code: str = Field(..., min_length=1, max_length=100)
    supplier_id: Optional[uuid.UUID] = None

    @validator('company', 'tracking_number', 'batch_code')
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError('must not be blank')
        return v.strip()


class LogisticsResponse(CamelModel):
    company: str
    tracking_number: str
    shipped_date: date
    estimated_arrival_date: date
    batch_code: str


class OrderResponse(CamelModel):
    id: str
    manufacturer_id: str
    manufacturer_name: str
    product_id: str
    product_name: str
    quantity: int
    request_date: date
    expected_date: date
    status: str
    reject_reason: Optional[str] = None
    approved_date: Optional[date] = None
    design_file_url: Optional[str] = None
    logistics: Optional[LogisticsResponse] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
