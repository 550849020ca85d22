from pydantic import Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum
from utils.response_helpers import CamelModel
from routers.products.schemas import ProductSummary
from routers.users.schemas import UserSummary
import uuid


class ChangeType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"


class ChangeRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# pendingChanges keys (wire names) -> Product columns
PENDING_FIELD_MAP = {
    "name": "name",
    "category": "category",
    "material": "material",
    "spec": "spec",
    "image": "image",
    "stock": "stock",
    "unitPrice": "unit_price",
    "unitsPerPackage": "units_per_package",
    "packageCount": "package_count",
}

REQUIRED_CREATE_FIELDS = ("name", "category", "material", "spec", "image")


class ChangeRequestCreate(CamelModel):
    product_id: Optional[str] = None  # Empty for CREATE
    change_type: ChangeType
    pending_changes: Dict[str, Any]


class ChangeRequestApprove(CamelModel):
    reviewer_id: Optional[uuid.UUID] = None


class ChangeRequestReject(CamelModel):
    reviewer_id: Optional[uuid.UUID] = None
    reject_reason: Optional[str] = Field(None, max_length=1000)


class ChangeRequestCancel(CamelModel):
    supplier_id: Optional[uuid.UUID] = None


class ChangeRequestResponse(CamelModel):
    id: str
    product_id: str
    supplier_id: str
    change_type: str
    status: str
    pending_changes: Dict[str, Any]
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    product: Optional[ProductSummary] = None
    reviewer: Optional[UserSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
