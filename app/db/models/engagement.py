# app/db/models/engagement.py
from sqlalchemy import Column, String, Boolean, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Like(BaseModel):
    """One guest session's like on an image"""
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("image_id", "session_id", name="uq_likes_image_session"),
    )

    image_id = Column(String(36), ForeignKey("images.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(100), nullable=False)
    ip_address = Column(String(64), nullable=True)

    image = relationship("Image", back_populates="likes")


class Comment(BaseModel):
    __tablename__ = "comments"

    image_id = Column(String(36), ForeignKey("images.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(100), nullable=False)
    comment_text = Column(Text, nullable=False)
    ip_address = Column(String(64), nullable=True)
    is_hidden = Column(Boolean, default=False, nullable=False)

    image = relationship("Image", back_populates="comments")
