from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete
from models import Product, User, Order, ProductChangeRequest
from config import MAX_ACTIVE_PRODUCTS_PER_SUPPLIER
from utils.errors import ValidationError, ConflictError, AuthorizationError, NotFoundError
from utils.status_machine import StatusMachine
from .schemas import ProductCreate, ProductUpdate, SENSITIVE_FIELDS, DIRECT_FIELDS
from typing import List, Optional
from decimal import Decimal
import uuid
import logging

logger = logging.getLogger(__name__)

# Suppliers switch their own listings on and off
supplier_product_machine = StatusMachine("product", {
    "ACTIVE": {"INACTIVE"},
    "INACTIVE": {"ACTIVE"},
})

# The platform force-delists, and may restore a delisted product
platform_product_machine = StatusMachine("product", {
    "ACTIVE": {"DELISTED"},
    "INACTIVE": {"DELISTED"},
    "DELISTED": {"ACTIVE"},
})


def _same_value(field: str, current, proposed) -> bool:
    if field == "unit_price" and current is not None and proposed is not None:
        return Decimal(str(current)) == Decimal(str(proposed))
    return current == proposed


class ProductHelpers:
    """Helper functions for product listing operations"""

    async def get_product(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        product = await db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def ensure_owner(self, product: Product, current_user: dict) -> None:
        if str(product.supplier_id) != current_user["user_id"]:
            logger.warning(f"User {current_user['user_id']} is not the supplier of product {product.id}")
            raise AuthorizationError("You can only manage your own products")

    async def list_products(
        self,
        db: AsyncSession,
        current_user: dict,
        supplier_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None
    ) -> List[Product]:
        """
        Role-scoped listing: suppliers see their own products, manufacturers see
        what is on sale, platform and general manager see everything.
        """
        query = select(Product)
        role = current_user["role"]

        if role == "SUPPLIER":
            query = query.where(Product.supplier_id == uuid.UUID(current_user["user_id"]))
        elif supplier_id:
            query = query.where(Product.supplier_id == supplier_id)

        if role == "MANUFACTURER":
            query = query.where(Product.status == "ACTIVE")
        elif status:
            query = query.where(Product.status == status)

        query = query.order_by(Product.created_at.desc())
        result = await db.execute(query)
        return result.scalars().all()

    async def count_active_products(
        self,
        db: AsyncSession,
        supplier_id: uuid.UUID,
        exclude_product_id: Optional[uuid.UUID] = None
    ) -> int:
        query = select(func.count(Product.id)).where(
            Product.supplier_id == supplier_id,
            Product.status == "ACTIVE"
        )
        if exclude_product_id is not None:
            query = query.where(Product.id != exclude_product_id)

        result = await db.execute(query)
        return result.scalar_one()

    async def ensure_active_capacity(
        self,
        db: AsyncSession,
        supplier_id: uuid.UUID,
        exclude_product_id: Optional[uuid.UUID] = None
    ) -> None:
        """Raise if one more ACTIVE product would exceed the supplier's cap"""
        active = await self.count_active_products(db, supplier_id, exclude_product_id)
        if active >= MAX_ACTIVE_PRODUCTS_PER_SUPPLIER:
            logger.info(f"Supplier {supplier_id} is at the active product cap ({active})")
            raise ValidationError(
                f"A supplier can have at most {MAX_ACTIVE_PRODUCTS_PER_SUPPLIER} active products. "
                f"Deactivate one before adding another."
            )

    async def get_supplier(self, db: AsyncSession, supplier_id: uuid.UUID) -> User:
        supplier = await db.get(User, supplier_id)
        if not supplier or supplier.role != "SUPPLIER":
            raise ValidationError("supplierId must reference a supplier account")
        return supplier

    async def create_product(self, db: AsyncSession, product_data: ProductCreate) -> Product:
        await self.get_supplier(db, product_data.supplier_id)
        await self.ensure_active_capacity(db, product_data.supplier_id)

        product = Product(
            status="ACTIVE",
            **product_data.model_dump()
        )

        db.add(product)
        await db.commit()
        await db.refresh(product)

        logger.info(f"Created product {product.id} for supplier {product.supplier_id}")
        return product

    def check_sensitive_fields(self, product: Product, changes: dict) -> None:
        """Sensitive fields may be echoed back unchanged, never edited directly"""
        edited = [
            field for field in SENSITIVE_FIELDS
            if field in changes and not _same_value(field, getattr(product, field), changes[field])
        ]
        if edited:
            raise ValidationError(
                f"{', '.join(edited)} can only be changed through a product change request"
            )

    async def update_product(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        product_data: ProductUpdate,
        current_user: dict
    ) -> Product:
        product = await self.get_product(db, product_id)
        self.ensure_owner(product, current_user)

        if product.status == "DELISTED":
            raise ConflictError("Delisted products cannot be edited")

        changes = product_data.model_dump(exclude_unset=True)
        self.check_sensitive_fields(product, changes)

        if (
            "stock" not in changes
            and changes.get("units_per_package") is not None
            and changes.get("package_count") is not None
        ):
            changes["stock"] = changes["units_per_package"] * changes["package_count"]

        for field in DIRECT_FIELDS:
            if field not in changes:
                continue
            if field in ("name", "stock") and changes[field] is None:
                continue
            setattr(product, field, changes[field])

        await db.commit()
        await db.refresh(product)

        logger.info(f"Updated product {product.id}")
        return product

    async def change_status(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        target: str,
        current_user: dict
    ) -> Product:
        product = await self.get_product(db, product_id)

        if current_user["role"] == "PLATFORM":
            platform_product_machine.check(product.status, target)
        else:
            self.ensure_owner(product, current_user)
            supplier_product_machine.check(product.status, target)

        if target == "ACTIVE":
            await self.ensure_active_capacity(db, product.supplier_id, exclude_product_id=product.id)

        previous = product.status
        product.status = target

        await db.commit()
        await db.refresh(product)

        logger.info(f"Product {product.id} {previous} -> {target} by {current_user['role']} {current_user['user_id']}")
        return product

    async def delete_product(self, db: AsyncSession, product_id: uuid.UUID, current_user: dict) -> None:
        product = await self.get_product(db, product_id)

        if current_user["role"] != "PLATFORM":
            self.ensure_owner(product, current_user)

        result = await db.execute(
            select(func.count(Order.id)).where(Order.product_id == product.id)
        )
        if result.scalar_one() > 0:
            raise ConflictError("Product has orders and cannot be deleted. Deactivate it instead.")

        await db.execute(
            delete(ProductChangeRequest).where(ProductChangeRequest.product_id == product.id)
        )
        await db.execute(delete(Product).where(Product.id == product.id))
        await db.commit()

        logger.info(f"Deleted product {product_id}")


product_helpers = ProductHelpers()
