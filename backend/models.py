from sqlalchemy import (
    String,
    Text,
    DateTime,
    Date,
    Numeric,
    CheckConstraint,
    UniqueConstraint,
    Index,
    text,
    ForeignKey,
    Integer,
    Uuid,
    JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.ext.declarative import declarative_base
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
import uuid

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON everywhere else
PortableJSON = JSON().with_variant(JSONB(), "postgresql")


class User(Base):
    """
    Platform accounts. Role decides which workflow steps the user may take.
    """
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("phone", "role", name="unique_phone_per_role"),
        CheckConstraint(
            "role IN ('MANUFACTURER', 'SUPPLIER', 'PLATFORM', 'GENERAL_MANAGER')",
            name="user_role_check",
        ),
        CheckConstraint("status IN ('ACTIVE', 'DISABLED')", name="user_status_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)  # MANUFACTURER, SUPPLIER, PLATFORM, GENERAL_MANAGER
    avatar: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(String(500))  # Required for MANUFACTURER and SUPPLIER
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    products: Mapped[List["Product"]] = relationship("Product", back_populates="supplier")


class Product(Base):
    """
    Packaging products listed by suppliers
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="stock_non_negative_check"),
        CheckConstraint("units_per_package IS NULL OR units_per_package >= 1", name="units_per_package_check"),
        CheckConstraint("package_count IS NULL OR package_count >= 0", name="package_count_check"),
        CheckConstraint("status IN ('ACTIVE', 'INACTIVE', 'DELISTED')", name="product_status_check"),
        Index("ix_products_supplier_status", "supplier_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    material: Mapped[str] = mapped_column(String(200), nullable=False)
    spec: Mapped[str] = mapped_column(String(200), nullable=False)  # e.g. "500ml", "10x10cm"
    image: Mapped[Optional[str]] = mapped_column(Text)

    # Inventory
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))  # price of the smallest unit
    units_per_package: Mapped[Optional[int]] = mapped_column(Integer)  # smallest units in one package
    package_count: Mapped[Optional[int]] = mapped_column(Integer)

    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", nullable=False)  # ACTIVE, INACTIVE, DELISTED

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    supplier: Mapped["User"] = relationship("User", back_populates="products")
    change_requests: Mapped[List["ProductChangeRequest"]] = relationship(
        "ProductChangeRequest",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True
    )


class Order(Base):
    """
    Packaging orders placed by manufacturers, audited by the platform and shipped by suppliers
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive_check"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'SHIPPED', 'COMPLETED')",
            name="order_status_check",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    manufacturer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )
    manufacturer_name: Mapped[str] = mapped_column(String(200), nullable=False)  # Copied at creation

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False
    )
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)  # Copied at creation, does not follow renames
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)
    reject_reason: Mapped[Optional[str]] = mapped_column(Text)
    approved_date: Mapped[Optional[datetime]] = mapped_column(DateTime(True))  # Set when APPROVED or REJECTED
    design_file_url: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    product: Mapped["Product"] = relationship("Product")
    manufacturer: Mapped["User"] = relationship("User")
    logistics: Mapped[Optional["Logistics"]] = relationship(
        "Logistics",
        back_populates="order",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan"
    )


class Logistics(Base):
    """
    Shipment details, written only by the ship action
    """
    __tablename__ = "logistics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    company: Mapped[str] = mapped_column(String(100), nullable=False)
    tracking_number: Mapped[str] = mapped_column(String(100), nullable=False)
    shipped_date: Mapped[datetime] = mapped_column(DateTime(True), nullable=False)
    estimated_arrival_date: Mapped[date] = mapped_column(Date, nullable=False)
    batch_code: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    order: Mapped["Order"] = relationship("Order", back_populates="logistics")


class ProductChangeRequest(Base):
    """
    Supplier proposals touching sensitive product fields, applied only after platform review.
    product_id is NULL for CREATE requests until the product exists.
    """
    __tablename__ = "product_change_requests"
    __table_args__ = (
        CheckConstraint("change_type IN ('CREATE', 'UPDATE')", name="change_type_check"),
        CheckConstraint("status IN ('PENDING', 'APPROVED', 'REJECTED')", name="change_request_status_check"),
        Index("ix_change_requests_supplier_status", "supplier_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE")
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    change_type: Mapped[str] = mapped_column(String(20), nullable=False)  # CREATE, UPDATE
    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)
    pending_changes: Mapped[dict] = mapped_column(PortableJSON, nullable=False)

    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL")
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(True))
    reject_reason: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    product: Mapped[Optional["Product"]] = relationship(
        "Product",
        back_populates="change_requests",
        lazy="selectin"
    )
    reviewer: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[reviewed_by],
        lazy="selectin"
    )
