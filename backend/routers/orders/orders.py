from fastapi import APIRouter, Depends, HTTPException, status, Query, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import User
from routers.auth.auth import get_current_user
from dependencies.rbac import (
    require_order_read, require_order_write, require_order_review,
    require_order_ship, require_order_confirm,
)
from utils.response_helpers import ApiResponse, safe_model_validate, safe_model_validate_list, order_to_dict
from utils.notifications import (
    notify_user,
    get_order_decided_email, get_order_decided_sms,
    get_order_shipped_email, get_order_shipped_sms,
)
from .schemas import OrderCreate, OrderDecision, ShipmentCreate, OrderResponse, OrderStatus
from .helpers import order_helpers
from typing import Optional, List
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def _order_response(order) -> OrderResponse:
    return safe_model_validate(OrderResponse, order_to_dict(order))


async def _notify_manufacturer(
    db: AsyncSession,
    background_tasks: BackgroundTasks,
    order_data: dict,
    subject: str,
    body: str,
    sms_body: str
):
    manufacturer = await db.get(User, uuid.UUID(order_data["manufacturer_id"]))
    if manufacturer:
        background_tasks.add_task(notify_user, manufacturer.email, manufacturer.phone, subject, body, sms_body)


@router.get("", response_model=ApiResponse[List[OrderResponse]])
async def list_orders(
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    manufacturer_id: Optional[uuid.UUID] = Query(None, alias="manufacturerId"),
    manufacturer_name: Optional[str] = Query(None, alias="manufacturerName"),
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_read),
    db: AsyncSession = Depends(get_db)
):
    """
    Manufacturers see their own orders, suppliers see orders for their products,
    platform and general manager see everything.
    """
    try:
        orders = await order_helpers.list_orders(
            db,
            current_user,
            status=order_status.value if order_status else None,
            manufacturer_id=manufacturer_id,
            manufacturer_name=manufacturer_name
        )
        return ApiResponse(data=safe_model_validate_list(OrderResponse, [order_to_dict(o) for o in orders]))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list orders: {str(e)}"
        )


@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
async def get_order(
    order_id: uuid.UUID,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_read),
    db: AsyncSession = Depends(get_db)
):
    try:
        order = await order_helpers.get_visible_order(db, order_id, current_user)
        return ApiResponse(data=_order_response(order))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting order {order_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get order: {str(e)}"
        )


@router.post("", response_model=ApiResponse[OrderResponse])
async def create_order(
    order_data: OrderCreate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_write),
    db: AsyncSession = Depends(get_db)
):
    try:
        order = await order_helpers.create_order(db, order_data, current_user)
        return ApiResponse(data=_order_response(order))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating order: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create order: {str(e)}"
        )


@router.patch("/{order_id}/status", response_model=ApiResponse[OrderResponse])
async def decide_order(
    order_id: uuid.UUID,
    decision: OrderDecision,
    background_tasks: BackgroundTasks,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_review),
    db: AsyncSession = Depends(get_db)
):
    """Approve or reject a pending order"""
    try:
        order = await order_helpers.decide(db, order_id, decision.status, decision.reason)
        order_data = order_to_dict(order)

        subject, body = get_order_decided_email(order_data)
        await _notify_manufacturer(db, background_tasks, order_data, subject, body, get_order_decided_sms(order_data))

        return ApiResponse(data=safe_model_validate(OrderResponse, order_data))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deciding order {order_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update order status: {str(e)}"
        )


@router.post("/{order_id}/ship", response_model=ApiResponse[OrderResponse])
async def ship_order(
    order_id: uuid.UUID,
    shipment: ShipmentCreate,
    background_tasks: BackgroundTasks,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_ship),
    db: AsyncSession = Depends(get_db)
):
    """Record logistics, mark the order SHIPPED and take the quantity out of stock"""
    try:
        order = await order_helpers.ship(db, order_id, shipment, current_user)
        order_data = order_to_dict(order)

        subject, body = get_order_shipped_email(order_data)
        await _notify_manufacturer(db, background_tasks, order_data, subject, body, get_order_shipped_sms(order_data))

        return ApiResponse(data=safe_model_validate(OrderResponse, order_data))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error shipping order {order_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to ship order: {str(e)}"
        )


@router.post("/{order_id}/confirm", response_model=ApiResponse[OrderResponse])
async def confirm_order(
    order_id: uuid.UUID,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_order_confirm),
    db: AsyncSession = Depends(get_db)
):
    try:
        order = await order_helpers.confirm_receipt(db, order_id, current_user)
        return ApiResponse(data=_order_response(order))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error confirming order {order_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to confirm order: {str(e)}"
        )
