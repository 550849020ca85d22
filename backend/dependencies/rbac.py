"""
RBAC dependencies for FastAPI routes
Role-based access control implemented as dependencies that run after authentication.
Ownership (supplier owns product, manufacturer owns order) is checked by the route helpers.
"""
from fastapi import HTTPException, Request
from utils.errors import AuthenticationError, AuthorizationError
import logging

logger = logging.getLogger(__name__)

RESOURCES_FOR_ROLES = {
    'PLATFORM': {
        'users': ['read', 'write'],
        'users/me': ['read', 'write'],
        'products': ['read', 'create', 'delete', 'status'],
        'product-change-requests': ['read', 'review'],
        'orders': ['read', 'review'],
        'reports': ['read'],
        'upload': ['write'],
    },
    'GENERAL_MANAGER': {
        'users': ['read'],
        'users/me': ['read', 'write'],
        'products': ['read'],
        'orders': ['read'],
        'reports': ['read'],
        'upload': ['write'],
    },
    'SUPPLIER': {
        'users/me': ['read', 'write'],
        'products': ['read', 'update', 'delete', 'status'],  # Own products only
        'product-change-requests': ['read', 'write', 'delete'],  # Own requests only
        'orders': ['read', 'ship'],  # Orders for own products
        'upload': ['write'],
    },
    'MANUFACTURER': {
        'users/me': ['read', 'write'],
        'products': ['read'],  # ACTIVE products only
        'orders': ['read', 'write', 'confirm'],  # Own orders only
        'upload': ['write'],
    },
}


def has_permission(user_role: str, resource_name: str, required_permission: str) -> bool:
    """Check if user role has permission for the resource and action"""
    if user_role not in RESOURCES_FOR_ROLES:
        return False

    user_permissions = RESOURCES_FOR_ROLES[user_role]

    if resource_name in user_permissions:
        return required_permission in user_permissions[resource_name]

    parent_resource = resource_name.split('/')[0] if '/' in resource_name else resource_name
    if parent_resource in user_permissions:
        return required_permission in user_permissions[parent_resource]

    return False


def require_permission(resource: str, permission: str):
    """
    Create an RBAC dependency that checks permissions.
    Declare it after get_current_user so request.state.current_user is set.
    """
    def check_rbac(request: Request):
        try:
            current_user = getattr(request.state, 'current_user', None)
            if not current_user:
                raise AuthenticationError("Authentication required")

            user_role = current_user.get('role')

            if not has_permission(user_role, resource, permission):
                logger.warning(f"Access denied - User: {current_user.get('user_id')}, Role: {user_role}, Resource: {resource}, Permission: {permission}")
                raise AuthorizationError(
                    f"Access denied. {user_role} role does not have {permission} permission for {resource}"
                )

            logger.debug(f"Access granted - Role: {user_role}, Resource: {resource}, Permission: {permission}")
            return True

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"RBAC dependency error: {str(e)}")
            raise HTTPException(
                status_code=500,
                detail="Authorization check failed"
            )

    return check_rbac


# User management
require_user_read = require_permission("users", "read")
require_user_write = require_permission("users", "write")
require_self_service = require_permission("users/me", "write")

# Products
require_product_read = require_permission("products", "read")
require_product_create = require_permission("products", "create")  # Platform, on behalf of a supplier
require_product_update = require_permission("products", "update")  # Owning supplier
require_product_delete = require_permission("products", "delete")
require_product_status = require_permission("products", "status")

# Product change requests
require_change_request_read = require_permission("product-change-requests", "read")
require_change_request_write = require_permission("product-change-requests", "write")
require_change_request_review = require_permission("product-change-requests", "review")
require_change_request_delete = require_permission("product-change-requests", "delete")

# Orders
require_order_read = require_permission("orders", "read")
require_order_write = require_permission("orders", "write")
require_order_review = require_permission("orders", "review")
require_order_ship = require_permission("orders", "ship")
require_order_confirm = require_permission("orders", "confirm")

# Reports and uploads
require_reports = require_permission("reports", "read")
require_upload = require_permission("upload", "write")
