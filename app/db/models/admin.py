# app/db/models/admin.py
from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Admin(BaseModel):
    """Tenant moderator, or platform super-admin when tenant_id is null"""
    __tablename__ = "admins"

    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)
    is_super_admin = Column(Boolean, default=False, nullable=False)
    role = Column(String(20), default="admin", nullable=False)  # admin, super_admin

    last_login = Column(DateTime, nullable=True)

    # Relationships
    tenant = relationship("Tenant", back_populates="admins")
