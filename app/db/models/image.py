# app/db/models/image.py
from datetime import datetime
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Image(BaseModel):
    """Guest upload moving through moderation"""
    __tablename__ = "images"

    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = Column(String(36), ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)

    # Files
    filename = Column(String(255), nullable=False)
    original_filename = Column(String(255), nullable=True)
    file_path = Column(String(500), nullable=False)
    thumbnail_path = Column(String(500), nullable=True)
    file_url = Column(String(1000), nullable=True)
    thumbnail_url = Column(String(1000), nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(50), nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    # Moderation
    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, approved, rejected
    approved_by = Column(String(36), ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)

    upload_session_id = Column(String(100), nullable=True)
    caption = Column(Text, nullable=True)

    # Denormalized counters
    like_count = Column(Integer, default=0, nullable=False)
    comment_count = Column(Integer, default=0, nullable=False)

    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    tenant = relationship("Tenant", back_populates="images")
    likes = relationship("Like", back_populates="image", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="image", cascade="all, delete-orphan")
