"""
Realty Database Models

SQLAlchemy models for users, property listings and favorites.
"""

from sqlalchemy import (
    UUID,
    String,
    Text,
    Integer,
    Float,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from typing import Any, Dict, List, Optional
import datetime
import uuid


class Base(DeclarativeBase):
    """Canonical Base class for all database models."""

    pass


class TimestampMixin:
    """Mixin for timestamp fields."""

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    username: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    properties: Mapped[List["Property"]] = relationship(
        "Property", back_populates="owner", cascade="all, delete-orphan"
    )
    favorites: Mapped[List["Favorite"]] = relationship(
        "Favorite", back_populates="user", cascade="all, delete-orphan"
    )

    def to_public_dict(self) -> Dict[str, Any]:
        """Profile representation without credentials."""
        return {
            "id": str(self.id),
            "username": self.username,
            "email": self.email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"


class Property(Base, TimestampMixin):
    """Property listing model."""

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    listing_id: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    area_sq_ft: Mapped[int] = mapped_column(Integer, nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    amenities: Mapped[str] = mapped_column(Text, nullable=False)
    furnished: Mapped[str] = mapped_column(String(20), nullable=False)
    available_from: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    listed_by: Mapped[str] = mapped_column(String(100), nullable=False)
    tags: Mapped[str] = mapped_column(Text, nullable=False)
    color_theme: Mapped[str] = mapped_column(String(7), nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    listing_type: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    # Foreign keys
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="properties")
    favorites: Mapped[List["Favorite"]] = relationship(
        "Favorite", back_populates="property", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        CheckConstraint("area_sq_ft >= 1", name="check_area_positive"),
        CheckConstraint("bedrooms >= 0", name="check_bedrooms_non_negative"),
        CheckConstraint("bathrooms >= 0", name="check_bathrooms_non_negative"),
        CheckConstraint("rating BETWEEN 0 AND 5", name="check_rating_range"),
        CheckConstraint(
            "furnished IN ('Furnished', 'Semi-Furnished', 'Unfurnished')",
            name="check_furnished_values",
        ),
        CheckConstraint(
            "listing_type IN ('rent', 'sale')", name="check_listing_type_values"
        ),
        Index("idx_properties_state_city", "state", "city"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation used for responses and cache entries."""
        return {
            "id": str(self.id),
            "listing_id": self.listing_id,
            "title": self.title,
            "type": self.type,
            "price": self.price,
            "state": self.state,
            "city": self.city,
            "area_sq_ft": self.area_sq_ft,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "amenities": self.amenities,
            "furnished": self.furnished,
            "available_from": self.available_from.isoformat()
            if self.available_from
            else None,
            "listed_by": self.listed_by,
            "tags": self.tags,
            "color_theme": self.color_theme,
            "rating": self.rating,
            "is_verified": self.is_verified,
            "listing_type": self.listing_type,
            "created_by": str(self.created_by) if self.created_by else "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, listing_id={self.listing_id})>"


class Favorite(Base, TimestampMixin):
    """A user's saved property with personal notes and tags."""

    __tablename__ = "favorites"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tags: Mapped[List[str]] = mapped_column(
        ARRAY(String(50)), default=list, server_default="{}", nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="favorites")
    property: Mapped["Property"] = relationship("Property", back_populates="favorites")

    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_favorites_user_property"),
        Index("idx_favorites_created_at", "created_at"),
    )

    def to_dict(self, include_property: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "property_id": str(self.property_id),
            "notes": self.notes,
            "tags": list(self.tags or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_property and self.property is not None:
            data["property"] = self.property.to_dict()
        return data

    def __repr__(self) -> str:
        return f"<Favorite(id={self.id}, user_id={self.user_id}, property_id={self.property_id})>"


__all__ = ["Base", "TimestampMixin", "User", "Property", "Favorite"]
