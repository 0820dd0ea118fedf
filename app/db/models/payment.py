# app/db/models/payment.py
from sqlalchemy import Column, String, Integer, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Payment(BaseModel):
    """Per-upload payment tracked against a Stripe payment intent"""
    __tablename__ = "payments"

    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    stripe_payment_intent_id = Column(String(255), unique=True, nullable=False, index=True)

    amount = Column(Integer, nullable=False)
    currency = Column(String(10), default="thb", nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, succeeded, failed
    session_id = Column(String(100), nullable=True)

    # "metadata" is reserved on declarative classes
    payment_metadata = Column("metadata", JSON, default=dict)

    # Relationships
    tenant = relationship("Tenant", back_populates="payments")
