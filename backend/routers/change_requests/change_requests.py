from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from routers.auth.auth import get_current_user
from routers.auth.helpers import auth_helpers
from dependencies.rbac import (
    require_change_request_read, require_change_request_write,
    require_change_request_review, require_change_request_delete,
)
from utils.response_helpers import ApiResponse, safe_model_validate, safe_model_validate_list, change_request_to_dict
from .schemas import (
    ChangeRequestCreate, ChangeRequestApprove, ChangeRequestReject, ChangeRequestCancel,
    ChangeRequestResponse, ChangeRequestStatus,
)
from .helpers import change_request_helpers
from typing import Optional, List
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/product-change-requests", tags=["Product Change Requests"])


def _change_request_response(change_request) -> ChangeRequestResponse:
    return safe_model_validate(ChangeRequestResponse, change_request_to_dict(change_request))


@router.get("", response_model=ApiResponse[List[ChangeRequestResponse]])
async def list_change_requests(
    request_status: Optional[ChangeRequestStatus] = Query(None, alias="status"),
    product_id: Optional[uuid.UUID] = Query(None, alias="productId"),
    current_user = Depends(get_current_user),
    _: bool = Depends(require_change_request_read),
    db: AsyncSession = Depends(get_db)
):
    """Suppliers see their own requests, the platform sees the whole review queue"""
    try:
        change_requests = await change_request_helpers.list_requests(
            db,
            current_user,
            status=request_status.value if request_status else None,
            product_id=product_id
        )
        return ApiResponse(data=safe_model_validate_list(
            ChangeRequestResponse, [change_request_to_dict(r) for r in change_requests]
        ))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing change requests: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list change requests: {str(e)}"
        )


@router.post("", response_model=ApiResponse[ChangeRequestResponse])
async def submit_change_request(
    request_data: ChangeRequestCreate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_change_request_write),
    db: AsyncSession = Depends(get_db)
):
    try:
        change_request = await change_request_helpers.submit(db, request_data, current_user)
        return ApiResponse(
            data=_change_request_response(change_request),
            message="Submitted for review, please wait for the platform to approve"
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error submitting change request: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to submit change request: {str(e)}"
        )


@router.post("/{request_id}/approve", response_model=ApiResponse[ChangeRequestResponse])
async def approve_change_request(
    request_id: uuid.UUID,
    review_data: Optional[ChangeRequestApprove] = None,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_change_request_review),
    db: AsyncSession = Depends(get_db)
):
    try:
        reviewer_id = auth_helpers.resolve_actor_id(current_user, review_data.reviewer_id if review_data else None)
        change_request = await change_request_helpers.approve(db, request_id, reviewer_id)
        return ApiResponse(data=_change_request_response(change_request), message="Approved")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error approving change request {request_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to approve change request: {str(e)}"
        )


@router.post("/{request_id}/reject", response_model=ApiResponse[ChangeRequestResponse])
async def reject_change_request(
    request_id: uuid.UUID,
    review_data: ChangeRequestReject,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_change_request_review),
    db: AsyncSession = Depends(get_db)
):
    try:
        reviewer_id = auth_helpers.resolve_actor_id(current_user, review_data.reviewer_id)
        change_request = await change_request_helpers.reject(db, request_id, reviewer_id, review_data.reject_reason)
        return ApiResponse(data=_change_request_response(change_request), message="Rejected")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error rejecting change request {request_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to reject change request: {str(e)}"
        )


@router.delete("/{request_id}", response_model=ApiResponse[None])
async def cancel_change_request(
    request_id: uuid.UUID,
    cancel_data: Optional[ChangeRequestCancel] = None,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_change_request_delete),
    db: AsyncSession = Depends(get_db)
):
    """Withdraw a pending request"""
    try:
        supplier_id = auth_helpers.resolve_actor_id(current_user, cancel_data.supplier_id if cancel_data else None)
        await change_request_helpers.cancel(db, request_id, supplier_id)
        return ApiResponse(message="Request cancelled")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error cancelling change request {request_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to cancel change request: {str(e)}"
        )
