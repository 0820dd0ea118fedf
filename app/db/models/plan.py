# app/db/models/plan.py
from sqlalchemy import Column, String, Integer, Boolean, JSON, Text
from app.db.base import BaseModel
from app.core.constants import BillingType, BillingInterval, UNLIMITED


class SubscriptionPlan(BaseModel):
    """Catalog entry: price, billing cadence and usage limits"""
    __tablename__ = "subscription_plans"

    plan_key = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    price_amount = Column(Integer, default=0, nullable=False)
    price_currency = Column(String(10), default="thb", nullable=False)
    billing_type = Column(String(20), nullable=False)  # one_time, subscription
    billing_interval = Column(String(10), nullable=True)  # month, year
    duration_days = Column(Integer, nullable=True)

    features = Column(JSON, default=dict)

    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    @property
    def is_one_time(self) -> bool:
        return self.billing_type == BillingType.ONE_TIME.value

    @property
    def is_yearly(self) -> bool:
        return self.billing_interval == BillingInterval.YEAR.value

    @property
    def upload_limit(self) -> int:
        """Effective upload ceiling; -1 means unlimited"""
        features = self.features or {}
        key = "max_uploads" if self.is_one_time else "max_uploads_per_month"
        limit = features.get(key)
        return UNLIMITED if limit is None else int(limit)

    @property
    def storage_limit_gb(self):
        return (self.features or {}).get("storage_gb")
