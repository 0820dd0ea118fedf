# app/db/models/tenant.py
from sqlalchemy import Column, String, Integer, Boolean, JSON, Text
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Tenant(BaseModel):
    """One event's isolated photo wall, addressed by its URL slug"""
    __tablename__ = "tenants"

    slug = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Owner contact
    owner_email = Column(String(255), nullable=True)
    owner_phone = Column(String(50), nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)
    is_public = Column(Boolean, default=True, nullable=False)

    # Per-upload payment
    payment_enabled = Column(Boolean, default=False, nullable=False)
    price_amount = Column(Integer, default=0, nullable=False)  # minor units
    price_currency = Column(String(10), default="thb", nullable=False)

    # Display configuration
    theme_settings = Column(JSON, default=dict)
    display_settings = Column(JSON, default=dict)
    display_duration = Column(Integer, default=5, nullable=False)  # seconds per slide
    image_expiry_hours = Column(Integer, default=1, nullable=False)
    max_images_per_user = Column(Integer, default=10, nullable=False)

    # Relationships
    subscriptions = relationship("Subscription", back_populates="tenant", cascade="all, delete-orphan")
    admins = relationship("Admin", back_populates="tenant", cascade="all, delete-orphan")
    images = relationship("Image", back_populates="tenant", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="tenant", cascade="all, delete-orphan")
