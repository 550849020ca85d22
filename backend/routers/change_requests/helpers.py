from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from models import Product, ProductChangeRequest
from routers.auth.helpers import auth_helpers
from routers.products.helpers import product_helpers
from utils.errors import ValidationError, ConflictError, AuthorizationError, NotFoundError
from utils.status_machine import StatusMachine
from .schemas import ChangeRequestCreate, PENDING_FIELD_MAP, REQUIRED_CREATE_FIELDS
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)

change_request_machine = StatusMachine("change request", {
    "PENDING": {"APPROVED", "REJECTED"},
})


def _parse_number(key: str, value: Any, cast, minimum):
    """Falsy values clear the field, everything else must parse and respect the minimum"""
    if not value:
        return None
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
    if number < minimum:
        raise ValidationError(f"{key} must be at least {minimum}")
    return number


def coerce_pending_changes(pending: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map the keys present in pendingChanges onto Product columns.
    Keys that are absent stay absent, so an UPDATE only touches what it names.
    """
    changes = {}
    for key, column in PENDING_FIELD_MAP.items():
        if key not in pending:
            continue
        value = pending[key]

        if key == "unitPrice":
            changes[column] = _parse_number(key, value, float, 0)
        elif key in ("unitsPerPackage",):
            changes[column] = _parse_number(key, value, int, 1)
        elif key in ("packageCount",):
            changes[column] = _parse_number(key, value, int, 0)
        elif key == "stock":
            changes[column] = _parse_number(key, value, int, 0) or 0
        else:
            changes[column] = value

    return changes


class ChangeRequestHelpers:
    """Helper functions for the product change-request review workflow"""

    async def load_request(self, db: AsyncSession, request_id: uuid.UUID) -> ProductChangeRequest:
        result = await db.execute(
            select(ProductChangeRequest)
            .where(ProductChangeRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        change_request = result.scalar_one_or_none()
        if not change_request:
            raise NotFoundError("Change request not found")
        return change_request

    async def list_requests(
        self,
        db: AsyncSession,
        current_user: dict,
        status: Optional[str] = None,
        product_id: Optional[uuid.UUID] = None
    ) -> List[ProductChangeRequest]:
        query = select(ProductChangeRequest)

        if current_user["role"] == "SUPPLIER":
            query = query.where(ProductChangeRequest.supplier_id == uuid.UUID(current_user["user_id"]))
        if status:
            query = query.where(ProductChangeRequest.status == status)
        if product_id:
            query = query.where(ProductChangeRequest.product_id == product_id)

        query = query.order_by(ProductChangeRequest.created_at.desc())
        result = await db.execute(query)
        return result.scalars().all()

    def request_owner(self, change_request: ProductChangeRequest) -> Optional[str]:
        pending = change_request.pending_changes or {}
        if change_request.change_type == "UPDATE" and change_request.product is not None:
            return str(change_request.product.supplier_id)
        return pending.get("supplierId") or str(change_request.supplier_id)

    async def submit(
        self,
        db: AsyncSession,
        request_data: ChangeRequestCreate,
        current_user: dict
    ) -> ProductChangeRequest:
        supplier_id = auth_helpers.resolve_actor_id(current_user)
        pending = dict(request_data.pending_changes)
        coerce_pending_changes(pending)

        product_id = None
        if request_data.change_type.value == "CREATE":
            if request_data.product_id:
                raise ValidationError("productId must be empty for CREATE requests")

            missing = [f for f in REQUIRED_CREATE_FIELDS if not str(pending.get(f) or "").strip()]
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")

            await product_helpers.ensure_active_capacity(db, supplier_id)
        else:
            if not request_data.product_id:
                raise ValidationError("productId is required for UPDATE requests")
            try:
                product_id = uuid.UUID(request_data.product_id)
            except ValueError:
                raise NotFoundError("Product not found")

            product = await product_helpers.get_product(db, product_id)
            product_helpers.ensure_owner(product, current_user)
            if product.status == "DELISTED":
                raise ConflictError("Delisted products cannot be changed")

        pending["supplierId"] = str(supplier_id)

        change_request = ProductChangeRequest(
            product_id=product_id,
            supplier_id=supplier_id,
            change_type=request_data.change_type.value,
            status="PENDING",
            pending_changes=pending
        )

        db.add(change_request)
        await db.commit()

        logger.info(f"Change request {change_request.id} ({change_request.change_type}) submitted by {supplier_id}")
        return await self.load_request(db, change_request.id)

    async def _close(self, db: AsyncSession, change_request: ProductChangeRequest, target: str, **values) -> None:
        result = await db.execute(
            update(ProductChangeRequest)
            .where(ProductChangeRequest.id == change_request.id, ProductChangeRequest.status == "PENDING")
            .values(status=target, reviewed_at=datetime.now(timezone.utc), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("This request has already been reviewed")

    async def approve(self, db: AsyncSession, request_id: uuid.UUID, reviewer_id: uuid.UUID) -> ProductChangeRequest:
        """
        Apply pendingChanges and close the request in one commit.
        CREATE materializes a new ACTIVE product, UPDATE patches the named fields.
        """
        try:
            change_request = await self.load_request(db, request_id)
            change_request_machine.check(change_request.status, "APPROVED")

            pending = change_request.pending_changes or {}
            changes = coerce_pending_changes(pending)

            if change_request.change_type == "CREATE":
                supplier_id = uuid.UUID(pending.get("supplierId") or str(change_request.supplier_id))
                await product_helpers.ensure_active_capacity(db, supplier_id)

                changes.setdefault("stock", 0)
                product = Product(supplier_id=supplier_id, status="ACTIVE", **changes)
                db.add(product)
                await db.flush()

                await self._close(db, change_request, "APPROVED", reviewed_by=reviewer_id, product_id=product.id)
                logger.info(f"Change request {request_id} created product {product.id}")
            else:
                product = await db.get(Product, change_request.product_id) if change_request.product_id else None
                if not product:
                    raise NotFoundError("Product for this change request no longer exists")
                if product.status == "DELISTED":
                    raise ConflictError("Delisted products cannot be changed")

                for column, value in changes.items():
                    if column in ("name", "category", "material", "spec") and not value:
                        continue
                    setattr(product, column, value)

                await self._close(db, change_request, "APPROVED", reviewed_by=reviewer_id)
                logger.info(f"Change request {request_id} updated product {product.id}: {sorted(changes.keys())}")

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        return await self.load_request(db, request_id)

    async def reject(
        self,
        db: AsyncSession,
        request_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        reason: Optional[str]
    ) -> ProductChangeRequest:
        try:
            change_request = await self.load_request(db, request_id)
            change_request_machine.check(change_request.status, "REJECTED")

            if not (reason or "").strip():
                raise ValidationError("A reject reason is required")

            await self._close(db, change_request, "REJECTED", reviewed_by=reviewer_id, reject_reason=reason.strip())
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Change request {request_id} rejected by {reviewer_id}")
        return await self.load_request(db, request_id)

    async def cancel(self, db: AsyncSession, request_id: uuid.UUID, supplier_id: uuid.UUID) -> None:
        """Suppliers withdraw their own PENDING requests. The row is removed."""
        change_request = await self.load_request(db, request_id)

        if self.request_owner(change_request) != str(supplier_id):
            logger.warning(f"Supplier {supplier_id} tried to cancel change request {request_id} of another supplier")
            raise AuthorizationError("You can only cancel your own requests")

        if change_request.status != "PENDING":
            raise ConflictError("Only pending requests can be cancelled")

        await db.execute(
            delete(ProductChangeRequest).where(
                ProductChangeRequest.id == request_id,
                ProductChangeRequest.status == "PENDING"
            )
        )
        await db.commit()

        logger.info(f"Change request {request_id} cancelled by {supplier_id}")


change_request_helpers = ChangeRequestHelpers()
