from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from routers.auth.auth import get_current_user
from dependencies.rbac import (
    require_product_read, require_product_create, require_product_update,
    require_product_delete, require_product_status,
)
from utils.errors import NotFoundError
from utils.response_helpers import ApiResponse, safe_model_validate, safe_model_validate_list, product_to_dict
from .schemas import ProductCreate, ProductUpdate, ProductStatusUpdate, ProductResponse, ProductStatus
from .helpers import product_helpers
from typing import Optional, List
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])


def _product_response(product) -> ProductResponse:
    return safe_model_validate(ProductResponse, product_to_dict(product))


@router.get("", response_model=ApiResponse[List[ProductResponse]])
async def list_products(
    supplier_id: Optional[uuid.UUID] = Query(None, alias="supplierId"),
    product_status: Optional[ProductStatus] = Query(None, alias="status"),
    current_user = Depends(get_current_user),
    _: bool = Depends(require_product_read),
    db: AsyncSession = Depends(get_db)
):
    try:
        products = await product_helpers.list_products(
            db,
            current_user,
            supplier_id=supplier_id,
            status=product_status.value if product_status else None
        )
        return ApiResponse(data=safe_model_validate_list(ProductResponse, [product_to_dict(p) for p in products]))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing products: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list products: {str(e)}"
        )


@router.get("/{product_id}", response_model=ApiResponse[ProductResponse])
async def get_product(
    product_id: uuid.UUID,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_product_read),
    db: AsyncSession = Depends(get_db)
):
    try:
        product = await product_helpers.get_product(db, product_id)

        # Manufacturers only see what is on sale, suppliers only their own
        if current_user["role"] == "MANUFACTURER" and product.status != "ACTIVE":
            raise NotFoundError("Product not found")
        if current_user["role"] == "SUPPLIER" and str(product.supplier_id) != current_user["user_id"]:
            raise NotFoundError("Product not found")

        return ApiResponse(data=_product_response(product))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting product {product_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get product: {str(e)}"
        )


@router.post("", response_model=ApiResponse[ProductResponse])
async def create_product(
    product_data: ProductCreate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_product_create),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an ACTIVE product directly for a supplier.
    Suppliers propose new products through /product-change-requests instead.
    """
    try:
        product = await product_helpers.create_product(db, product_data)
        return ApiResponse(data=_product_response(product))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating product: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create product: {str(e)}"
        )


@router.put("/{product_id}", response_model=ApiResponse[ProductResponse])
async def update_product(
    product_id: uuid.UUID,
    product_data: ProductUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_product_update),
    db: AsyncSession = Depends(get_db)
):
    """Direct edits: name, image, stock and packaging. Sensitive fields are refused."""
    try:
        product = await product_helpers.update_product(db, product_id, product_data, current_user)
        return ApiResponse(data=_product_response(product))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating product {product_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update product: {str(e)}"
        )


@router.patch("/{product_id}/status", response_model=ApiResponse[ProductResponse])
async def change_product_status(
    product_id: uuid.UUID,
    status_data: ProductStatusUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_product_status),
    db: AsyncSession = Depends(get_db)
):
    try:
        product = await product_helpers.change_status(db, product_id, status_data.status.value, current_user)
        return ApiResponse(data=_product_response(product))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error changing status of product {product_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to change product status: {str(e)}"
        )


@router.delete("/{product_id}", response_model=ApiResponse[None])
async def delete_product(
    product_id: uuid.UUID,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_product_delete),
    db: AsyncSession = Depends(get_db)
):
    try:
        await product_helpers.delete_product(db, product_id, current_user)
        return ApiResponse(message="Product deleted")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting product {product_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete product: {str(e)}"
        )
