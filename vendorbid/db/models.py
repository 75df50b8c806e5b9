"""
SQLAlchemy ORM models for the vendor bidding platform.

Reviews, material lines and analytics logs are owned child rows: they are
only ever reached through their parent and are deleted with it.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Float,
    ForeignKey, JSON, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from vendorbid.db.session import Base


# ============= ENUMS =============
# Stored as plain strings; the enums are the source of allowed values.

class UserRole(str, enum.Enum):
    VENDOR = "vendor"
    SUPPLIER = "supplier"
    ADMIN = "admin"


class RequirementStatus(str, enum.Enum):
    OPEN = "open"
    BIDDING = "bidding"
    AWARDED = "awarded"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BidStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class MaterialUnit(str, enum.Enum):
    KG = "kg"
    LITERS = "liters"
    PIECES = "pieces"
    BOXES = "boxes"
    BAGS = "bags"


class MaterialQuality(str, enum.Enum):
    PREMIUM = "premium"
    STANDARD = "standard"
    ECONOMY = "economy"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ============= USERS =============

class User(Base):
    """Vendor, supplier and admin accounts."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.VENDOR.value, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50))
    address = Column(JSON, default=dict)  # street, city, state, pincode, locality
    verified = Column(Boolean, default=False, nullable=False)
    verification_documents = Column(JSON, default=dict)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    last_login = Column(DateTime(timezone=True))

    # Relationships
    reviews = relationship(
        "UserReview",
        back_populates="user",
        foreign_keys="UserReview.user_id",
        cascade="all, delete-orphan",
        order_by="UserReview.created_at",
    )
    requirements = relationship("Requirement", back_populates="vendor", foreign_keys="Requirement.vendor_id")
    bids = relationship("Bid", back_populates="supplier")

    @property
    def average_rating(self):
        if not self.reviews:
            return None
        return round(sum(r.rating for r in self.reviews) / len(self.reviews), 2)


class UserReview(Base):
    """A vendor's review of a supplier account."""
    __tablename__ = "user_reviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    user = relationship("User", back_populates="reviews", foreign_keys=[user_id])
    reviewer = relationship("User", foreign_keys=[reviewer_id])


# ============= REQUIREMENTS =============

class Requirement(Base):
    """A vendor's posted need for raw materials."""
    __tablename__ = "requirements"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    budget_min = Column(Float, nullable=False)
    budget_max = Column(Float, nullable=False)

    # Delivery location
    delivery_address = Column(String(500))
    delivery_city = Column(String(100))
    delivery_state = Column(String(100))
    delivery_pincode = Column(String(20))
    delivery_locality = Column(String(255), index=True)

    delivery_date = Column(DateTime(timezone=True), nullable=False)
    bidding_end_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=RequirementStatus.OPEN.value, index=True)
    total_bids = Column(Integer, nullable=False, default=0)
    awarded_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    awarded_bid_id = Column(Integer, ForeignKey("bids.id", use_alter=True, name="fk_requirements_awarded_bid"), nullable=True)
    tags = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    vendor = relationship("User", back_populates="requirements", foreign_keys=[vendor_id])
    awarded_to = relationship("User", foreign_keys=[awarded_to_id])
    materials = relationship(
        "RequirementMaterial",
        back_populates="requirement",
        cascade="all, delete-orphan",
        order_by="RequirementMaterial.position",
    )
    bids = relationship("Bid", back_populates="requirement", foreign_keys="Bid.requirement_id")

    @property
    def budget(self) -> dict:
        return {"min": self.budget_min, "max": self.budget_max}

    @property
    def delivery_location(self) -> dict:
        return {
            "address": self.delivery_address,
            "city": self.delivery_city,
            "state": self.delivery_state,
            "pincode": self.delivery_pincode,
            "locality": self.delivery_locality,
        }

    def is_bidding_closed(self, now: datetime = None) -> bool:
        return (now or utcnow()) > as_utc(self.bidding_end_date)


class RequirementMaterial(Base):
    """One ordered material line of a requirement."""
    __tablename__ = "requirement_materials"

    id = Column(Integer, primary_key=True, index=True)
    requirement_id = Column(Integer, ForeignKey("requirements.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False, index=True)
    quantity = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False)
    specifications = Column(Text)

    requirement = relationship("Requirement", back_populates="materials")


# ============= BIDS =============

class Bid(Base):
    """A supplier's offer against a requirement."""
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    requirement_id = Column(Integer, ForeignKey("requirements.id"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    delivery_time = Column(Integer, nullable=False)  # days
    description = Column(Text, nullable=False)
    photos = Column(JSON, default=list)
    terms = Column(JSON)  # payment_terms, delivery_terms, warranty
    status = Column(String(20), nullable=False, default=BidStatus.PENDING.value, index=True)
    is_winning = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    requirement = relationship("Requirement", back_populates="bids", foreign_keys=[requirement_id])
    supplier = relationship("User", back_populates="bids")
    materials = relationship(
        "BidMaterial",
        back_populates="bid",
        cascade="all, delete-orphan",
        order_by="BidMaterial.position",
    )
    reviews = relationship(
        "BidReview",
        back_populates="bid",
        cascade="all, delete-orphan",
        order_by="BidReview.created_at",
    )

    __table_args__ = (
        UniqueConstraint('requirement_id', 'supplier_id', name='uq_bid_requirement_supplier'),
        Index('ix_bids_requirement_amount', 'requirement_id', 'amount'),
    )


class BidMaterial(Base):
    """Itemised material line priced by the supplier."""
    __tablename__ = "bid_materials"

    id = Column(Integer, primary_key=True, index=True)
    bid_id = Column(Integer, ForeignKey("bids.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False)
    price = Column(Float, nullable=False)
    quality = Column(String(20), nullable=False, default=MaterialQuality.STANDARD.value)

    bid = relationship("Bid", back_populates="materials")


class BidReview(Base):
    """The requirement owner's review of a bid."""
    __tablename__ = "bid_reviews"

    id = Column(Integer, primary_key=True, index=True)
    bid_id = Column(Integer, ForeignKey("bids.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    bid = relationship("Bid", back_populates="reviews")
    reviewer = relationship("User")


# ============= ANALYTICS =============

class VendorAnalytics(Base):
    """Per-vendor sales and material-usage log with derived insights."""
    __tablename__ = "vendor_analytics"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    insights = Column(JSON, default=dict)
    last_updated = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    vendor = relationship("User")
    sales_entries = relationship(
        "SalesEntry",
        back_populates="analytics",
        cascade="all, delete-orphan",
        order_by="SalesEntry.id",
    )
    material_usage_entries = relationship(
        "MaterialUsageEntry",
        back_populates="analytics",
        cascade="all, delete-orphan",
        order_by="MaterialUsageEntry.id",
    )


class SalesEntry(Base):
    __tablename__ = "sales_entries"

    id = Column(Integer, primary_key=True, index=True)
    analytics_id = Column(Integer, ForeignKey("vendor_analytics.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Float, nullable=False)
    revenue = Column(Float, nullable=False)
    cost = Column(Float, nullable=False)
    profit = Column(Float, nullable=False)

    analytics = relationship("VendorAnalytics", back_populates="sales_entries")


class MaterialUsageEntry(Base):
    __tablename__ = "material_usage_entries"

    id = Column(Integer, primary_key=True, index=True)
    analytics_id = Column(Integer, ForeignKey("vendor_analytics.id", ondelete="CASCADE"), nullable=False, index=True)
    material_name = Column(String(255), nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False)
    cost = Column(Float, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)

    analytics = relationship("VendorAnalytics", back_populates="material_usage_entries")


# ============= AUDIT LOG =============

class AuditLog(Base):
    """Action trail written by every mutating endpoint."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(100), index=True)
    entity_id = Column(Integer)
    details = Column(JSON)
    ip_address = Column(String(50))

    user = relationship("User")
