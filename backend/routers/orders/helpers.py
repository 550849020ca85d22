from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from models import Order, Product, Logistics, User
from routers.auth.helpers import auth_helpers
from utils.errors import ValidationError, ConflictError, AuthorizationError, NotFoundError
from utils.status_machine import StatusMachine
from .schemas import OrderCreate, ShipmentCreate
from datetime import date, datetime, timezone
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)

# PENDING -> APPROVED/REJECTED (platform), APPROVED -> SHIPPED (supplier),
# SHIPPED -> COMPLETED (manufacturer). REJECTED and COMPLETED are terminal.
order_machine = StatusMachine("order", {
    "PENDING": {"APPROVED", "REJECTED"},
    "APPROVED": {"SHIPPED"},
    "SHIPPED": {"COMPLETED"},
})

DECISION_STATUSES = ("APPROVED", "REJECTED")


class OrderHelpers:
    """Helper functions for the order workflow"""

    async def load_order(self, db: AsyncSession, order_id: uuid.UUID, for_update: bool = False) -> Order:
        """Fetch an order with its logistics, overwriting any stale copy in the session"""
        query = (
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await db.execute(query)
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def _transition(
        self,
        db: AsyncSession,
        order: Order,
        target: str,
        **values
    ) -> None:
        """
        Compare-and-set on the status column. Zero rows means another request
        moved the order first.
        """
        result = await db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == order.status)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError(f"Order {order.id} was changed by another request, reload and retry")

    async def list_orders(
        self,
        db: AsyncSession,
        current_user: dict,
        status: Optional[str] = None,
        manufacturer_id: Optional[uuid.UUID] = None,
        manufacturer_name: Optional[str] = None
    ) -> List[Order]:
        query = select(Order)
        role = current_user["role"]
        caller_id = uuid.UUID(current_user["user_id"])

        if role == "MANUFACTURER":
            query = query.where(Order.manufacturer_id == caller_id)
        elif role == "SUPPLIER":
            query = query.join(Product, Order.product_id == Product.id).where(Product.supplier_id == caller_id)

        if manufacturer_id and role != "MANUFACTURER":
            query = query.where(Order.manufacturer_id == manufacturer_id)
        if manufacturer_name:
            query = query.where(Order.manufacturer_name == manufacturer_name)
        if status:
            query = query.where(Order.status == status)

        query = query.order_by(Order.created_at.desc())
        result = await db.execute(query)
        return result.scalars().all()

    async def get_visible_order(self, db: AsyncSession, order_id: uuid.UUID, current_user: dict) -> Order:
        order = await self.load_order(db, order_id)
        caller_id = uuid.UUID(current_user["user_id"])

        if current_user["role"] == "MANUFACTURER" and order.manufacturer_id != caller_id:
            raise NotFoundError("Order not found")
        if current_user["role"] == "SUPPLIER":
            product = await db.get(Product, order.product_id)
            if not product or product.supplier_id != caller_id:
                raise NotFoundError("Order not found")

        return order

    async def create_order(self, db: AsyncSession, order_data: OrderCreate, current_user: dict) -> Order:
        manufacturer_id = auth_helpers.resolve_actor_id(current_user, order_data.manufacturer_id)

        manufacturer = await db.get(User, manufacturer_id)
        if not manufacturer:
            raise NotFoundError("Manufacturer not found")

        product = await db.get(Product, order_data.product_id)
        if not product:
            raise NotFoundError("Product not found")
        if product.status != "ACTIVE":
            raise ValidationError("Product is not available for ordering")
        if order_data.quantity > product.stock:
            raise ValidationError(
                f"Insufficient stock: requested {order_data.quantity}, available {product.stock}. Please contact the platform."
            )

        request_date = order_data.request_date or date.today()
        if order_data.expected_date < request_date:
            raise ValidationError("Expected date cannot be before the request date")

        order = Order(
            manufacturer_id=manufacturer.id,
            manufacturer_name=manufacturer.name,
            product_id=product.id,
            product_name=product.name,
            quantity=order_data.quantity,
            request_date=request_date,
            expected_date=order_data.expected_date,
            design_file_url=order_data.design_file_url,
            status="PENDING"
        )

        db.add(order)
        await db.commit()

        logger.info(f"Order {order.id} placed by {manufacturer.id} for {order.quantity} x product {product.id}")
        return await self.load_order(db, order.id)

    async def decide(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        target: str,
        reason: Optional[str] = None
    ) -> Order:
        """
        Platform approval or rejection of a PENDING order.

        REJECTED needs a non-blank reason; it is stored as rejectReason and
        sent to the manufacturer. APPROVED ignores any reason given.
        """
        if target not in DECISION_STATUSES:
            raise ValidationError("Status must be APPROVED or REJECTED")
        if target == "REJECTED" and not (reason or "").strip():
            raise ValidationError("A reason is required to reject an order")

        try:
            order = await self.load_order(db, order_id, for_update=True)
            order_machine.check(order.status, target)

            await self._transition(
                db,
                order,
                target,
                approved_date=datetime.now(timezone.utc),
                reject_reason=reason if target == "REJECTED" else None
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Order {order_id} {target}")
        return await self.load_order(db, order_id)

    async def ship(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        shipment: ShipmentCreate,
        current_user: dict
    ) -> Order:
        """
        Status change, logistics upsert and stock decrement commit together or not at all.
        Both UPDATEs are guarded, so a second concurrent ship finds zero rows.
        """
        supplier_id = auth_helpers.resolve_actor_id(current_user, shipment.supplier_id)

        try:
            order = await self.load_order(db, order_id, for_update=True)

            product = await db.get(Product, order.product_id)
            if not product or product.supplier_id != supplier_id:
                raise AuthorizationError("Only the supplier of this product can ship the order")

            order_machine.check(order.status, "SHIPPED")
            await self._transition(db, order, "SHIPPED")

            shipped_at = datetime.now(timezone.utc)
            result = await db.execute(select(Logistics).where(Logistics.order_id == order.id))
            logistics = result.scalar_one_or_none()
            if logistics is None:
                logistics = Logistics(order_id=order.id)
                db.add(logistics)

            logistics.company = shipment.company
            logistics.tracking_number = shipment.tracking_number
            logistics.estimated_arrival_date = shipment.estimated_arrival_date
            logistics.batch_code = shipment.batch_code
            logistics.shipped_date = shipped_at

            result = await db.execute(
                update(Product)
                .where(Product.id == order.product_id, Product.stock >= order.quantity)
                .values(stock=Product.stock - order.quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ValidationError("Insufficient stock to ship this order")

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Order {order_id} shipped by {supplier_id}, tracking {shipment.tracking_number}")
        return await self.load_order(db, order_id)

    async def confirm_receipt(self, db: AsyncSession, order_id: uuid.UUID, current_user: dict) -> Order:
        try:
            order = await self.load_order(db, order_id, for_update=True)

            if order.manufacturer_id != uuid.UUID(current_user["user_id"]):
                raise AuthorizationError("Only the manufacturer who placed the order can confirm receipt")

            order_machine.check(order.status, "COMPLETED")
            await self._transition(db, order, "COMPLETED")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Order {order_id} completed")
        return await self.load_order(db, order_id)


order_helpers = OrderHelpers()
