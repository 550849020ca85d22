from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from config import get_db
from models import User, Product, Order, ProductChangeRequest
from routers.auth.auth import get_current_user
from routers.users.schemas import UserRole
from routers.orders.schemas import OrderStatus
from dependencies.rbac import require_reports
from utils.response_helpers import ApiResponse
from .schemas import ReportOverview
from typing import Dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


async def _count_by(db: AsyncSession, column, keys) -> Dict[str, int]:
    """Group counts for a status-like column, with zero for keys that have no rows"""
    result = await db.execute(select(column, func.count()).group_by(column))
    counts = {key: 0 for key in keys}
    for value, count in result.all():
        counts[value] = count
    return counts


async def _count(db: AsyncSession, model, *conditions) -> int:
    query = select(func.count(model.id))
    if conditions:
        query = query.where(*conditions)
    result = await db.execute(query)
    return result.scalar_one()


@router.get("/overview", response_model=ApiResponse[ReportOverview])
async def get_overview(
    current_user = Depends(get_current_user),
    _: bool = Depends(require_reports),
    db: AsyncSession = Depends(get_db)
):
    """Read-only totals for the general manager dashboard"""
    try:
        users_by_role = await _count_by(db, User.role, [r.value for r in UserRole])
        orders_by_status = await _count_by(db, Order.status, [s.value for s in OrderStatus])

        overview = ReportOverview(
            total_users=sum(users_by_role.values()),
            active_users=await _count(db, User, User.status == "ACTIVE"),
            users_by_role=users_by_role,
            total_orders=sum(orders_by_status.values()),
            orders_by_status=orders_by_status,
            pending_orders=orders_by_status.get("PENDING", 0),
            total_products=await _count(db, Product),
            active_products=await _count(db, Product, Product.status == "ACTIVE"),
            pending_change_requests=await _count(db, ProductChangeRequest, ProductChangeRequest.status == "PENDING")
        )

        return ApiResponse(data=overview)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error building report overview: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build report: {str(e)}"
        )
