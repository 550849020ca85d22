"""
Response helper utilities for the JSON envelope, UUID conversions and model validation
"""
from typing import Any, Dict, List, Generic, Optional, TypeVar
import uuid
from decimal import Decimal
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """
    Base schema for the public API: camelCase on the wire, snake_case in Python
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ApiResponse(BaseModel, Generic[T]):
    """Envelope every route answers with"""
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


def fail(message: str) -> Dict[str, Any]:
    return {"success": False, "message": message}


def convert_uuids_to_strings(obj: Any) -> Any:
    """
    Recursively convert UUID objects to strings in any data structure
    """
    if isinstance(obj, uuid.UUID):
        return str(obj)
    elif isinstance(obj, Decimal):
        return float(obj)
    elif isinstance(obj, dict):
        return {key: convert_uuids_to_strings(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_uuids_to_strings(item) for item in obj]
    else:
        return obj


def safe_model_validate(model_class: BaseModel, data: Any) -> BaseModel:
    """
    Safely validate a model by converting UUIDs to strings first
    """
    clean_data = convert_uuids_to_strings(data)
    return model_class.model_validate(clean_data)


def safe_model_validate_list(model_class: BaseModel, data_list: List[Any]) -> List[BaseModel]:
    return [safe_model_validate(model_class, item) for item in data_list]


def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


# Specific helper functions for common models
def user_to_dict(user) -> Dict[str, Any]:
    """Convert User model to dict with string UUIDs, never exposing the password hash"""
    return {
        'id': str(user.id),
        'name': user.name,
        'role': user.role,
        'avatar': user.avatar,
        'phone': user.phone,
        'email': user.email,
        'address': user.address,
        'status': user.status,
        'has_password': bool(user.password_hash),
        'created_at': user.created_at,
        'updated_at': user.updated_at
    }


def user_summary_to_dict(user) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        'id': str(user.id),
        'name': user.name,
        'role': user.role
    }


def product_to_dict(product) -> Dict[str, Any]:
    """Convert Product model to dict with string UUIDs"""
    return {
        'id': str(product.id),
        'name': product.name,
        'category': product.category,
        'material': product.material,
        'spec': product.spec,
        'image': product.image,
        'stock': product.stock,
        'unit_price': float(product.unit_price) if product.unit_price is not None else None,
        'units_per_package': product.units_per_package,
        'package_count': product.package_count,
        'supplier_id': str(product.supplier_id),
        'status': product.status,
        'created_at': product.created_at,
        'updated_at': product.updated_at
    }


def product_summary_to_dict(product) -> Optional[Dict[str, Any]]:
    if product is None:
        return None
    return {
        'id': str(product.id),
        'name': product.name,
        'category': product.category,
        'status': product.status,
        'supplier_id': str(product.supplier_id)
    }


def logistics_to_dict(logistics) -> Optional[Dict[str, Any]]:
    if logistics is None:
        return None
    return {
        'company': logistics.company,
        'tracking_number': logistics.tracking_number,
        'shipped_date': logistics.shipped_date.date() if logistics.shipped_date else None,
        'estimated_arrival_date': logistics.estimated_arrival_date,
        'batch_code': logistics.batch_code
    }


def order_to_dict(order) -> Dict[str, Any]:
    """Convert Order model (logistics loaded) to dict with string UUIDs"""
    return {
        'id': str(order.id),
        'manufacturer_id': str(order.manufacturer_id),
        'manufacturer_name': order.manufacturer_name,
        'product_id': str(order.product_id),
        'product_name': order.product_name,
        'quantity': order.quantity,
        'request_date': order.request_date,
        'expected_date': order.expected_date,
        'status': order.status,
        'reject_reason': order.reject_reason,
        'approved_date': order.approved_date.date() if order.approved_date else None,
        'design_file_url': order.design_file_url,
        'logistics': logistics_to_dict(order.logistics),
        'created_at': order.created_at,
        'updated_at': order.updated_at
    }


def change_request_to_dict(change_request) -> Dict[str, Any]:
    """
    Convert ProductChangeRequest model to dict.
    CREATE requests have no product yet and report productId as "".
    """
    return {
        'id': str(change_request.id),
        'product_id': _str_or_none(change_request.product_id) or "",
        'supplier_id': str(change_request.supplier_id),
        'change_type': change_request.change_type,
        'status': change_request.status,
        'pending_changes': change_request.pending_changes or {},
        'reviewed_by': _str_or_none(change_request.reviewed_by),
        'reviewed_at': change_request.reviewed_at,
        'reject_reason': change_request.reject_reason,
        'product': product_summary_to_dict(change_request.product),
        'reviewer': user_summary_to_dict(change_request.reviewer),
        'created_at': change_request.created_at,
        'updated_at': change_request.updated_at
    }
