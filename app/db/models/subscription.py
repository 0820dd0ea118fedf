# app/db/models/subscription.py
from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Subscription(BaseModel):
    """Binding of a tenant to a plan for one billing period"""
    __tablename__ = "subscriptions"

    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(String(36), ForeignKey("subscription_plans.id"), nullable=False)

    status = Column(String(20), default="active", nullable=False, index=True)
    current_period_start = Column(DateTime, nullable=False)
    current_period_end = Column(DateTime, nullable=False)

    # Bootstrap credentials of the tenant's first admin
    auto_username = Column(String(100), nullable=True)
    auto_password_hash = Column(String(255), nullable=True)
    credentials_sent = Column(Boolean, default=False, nullable=False)

    # Stripe references
    stripe_customer_id = Column(String(255), nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, index=True)

    # Relationships
    tenant = relationship("Tenant", back_populates="subscriptions")
    plan = relationship("SubscriptionPlan", lazy="joined")
