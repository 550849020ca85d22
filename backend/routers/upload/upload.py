from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Query
from routers.auth.auth import get_current_user
from dependencies.rbac import require_upload
from utils.response_helpers import ApiResponse
from .schemas import ImageUrlResponse, SignUrlRequest
from .helpers import upload_helpers
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Upload"])


@router.post("/image", response_model=ApiResponse[ImageUrlResponse])
async def upload_image(
    image: Optional[UploadFile] = File(None),
    image_type: Optional[str] = Query(None, alias="type", pattern="^(avatar|product)$"),
    current_user = Depends(get_current_user),
    _: bool = Depends(require_upload)
):
    """
    Upload an avatar or product image (image/*, at most 2MB).
    Returns a signed storage URL, or a base64 data URL when storage is unavailable.
    """
    try:
        url = await upload_helpers.store_image(image, image_type)
        return ApiResponse(data=ImageUrlResponse(url=url))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Image upload failed for user {current_user['user_id']}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Image upload failed: {str(e)}"
        )


@router.post("/image/sign", response_model=ApiResponse[ImageUrlResponse])
async def sign_image_url(
    sign_data: SignUrlRequest,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_upload)
):
    """Issue a fresh signed URL for an image already in storage"""
    try:
        url = upload_helpers.resign_url(sign_data.url)
        return ApiResponse(data=ImageUrlResponse(url=url))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Signing image URL failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to sign image URL: {str(e)}"
        )
