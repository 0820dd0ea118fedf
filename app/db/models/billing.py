# app/db/models/billing.py
from datetime import datetime
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Text
from app.db.base import BaseModel


class BillingHistory(BaseModel):
    """Append-only ledger of signup charges, renewals, failures and refunds"""
    __tablename__ = "billing_history"

    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True)

    amount = Column(Integer, nullable=False)  # negative for refunds
    currency = Column(String(10), default="thb", nullable=False)
    status = Column(String(20), nullable=False)  # paid, failed, refunded
    description = Column(Text, nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    paid_at = Column(DateTime, default=datetime.utcnow, nullable=True)
