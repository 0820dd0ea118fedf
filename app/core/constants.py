# app/core/constants.py
from enum import Enum
from typing import Dict, Any, List


class ImageStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    PAYMENT_FAILED = "payment_failed"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BillingStatus(str, Enum):
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class BillingType(str, Enum):
    ONE_TIME = "one_time"
    SUBSCRIPTION = "subscription"


class BillingInterval(str, Enum):
    MONTH = "month"
    YEAR = "year"


class AdminRole(str, Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class SortMode(str, Enum):
    LATEST = "latest"
    OLDEST = "oldest"
    MOST_LIKED = "most_liked"
    MOST_COMMENTED = "most_commented"


TRIAL_PLAN_KEY = "trial"
UNLIMITED = -1

# Days before period end at which a subscription counts as "expiring soon"
EXPIRING_SOON_DAYS = 7

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]
MAX_COMMENT_LENGTH = 500

# Literal strings some clients send instead of omitting the field
EMPTY_PAYMENT_REFERENCES = {"", "null", "undefined"}

QUOTA_CONFIG: Dict[str, Any] = {
    "GRACE_PERIOD_MULTIPLIER": 1.2,
    "WARNING_THRESHOLD_PERCENT": 80,
    "CRITICAL_THRESHOLD_PERCENT": 100,
}


def _features(max_uploads: int = None, per_month: int = None, **flags) -> Dict[str, Any]:
    features: Dict[str, Any] = {
        "watermark": False,
        "api_access": False,
        "email_support": False,
        "priority_support": False,
    }
    if max_uploads is not None:
        features["max_uploads"] = max_uploads
    if per_month is not None:
        features["max_uploads_per_month"] = per_month
    features.update(flags)
    return features


# Plan catalog, seeded into subscription_plans at startup.
# Prices are in minor currency units (satang); -1 means unlimited.
PRICING_PLANS: Dict[str, Dict[str, Any]] = {
    "trial": {
        "name": "Free Trial",
        "description": "3-day free trial, no credit card required",
        "price_amount": 0,
        "billing_type": BillingType.ONE_TIME,
        "duration_days": 3,
        "features": _features(max_uploads=50, storage_gb=1, retention_days=3, watermark=True),
        "sort_order": 10,
    },
    "oneday": {
        "name": "1 Day",
        "description": "One day of service for small events",
        "price_amount": 19900,
        "billing_type": BillingType.ONE_TIME,
        "duration_days": 1,
        "features": _features(max_uploads=200, storage_gb=5, retention_days=3),
        "sort_order": 20,
    },
    "oneweek": {
        "name": "1 Week",
        "description": "One week of service for event series",
        "price_amount": 49900,
        "billing_type": BillingType.ONE_TIME,
        "duration_days": 7,
        "features": _features(max_uploads=1000, storage_gb=10, retention_days=7),
        "sort_order": 30,
    },
    "onemonth": {
        "name": "1 Month",
        "description": "One month of service for long-running events",
        "price_amount": 99900,
        "billing_type": BillingType.ONE_TIME,
        "duration_days": 30,
        "features": _features(max_uploads=5000, storage_gb=30, retention_days=30),
        "sort_order": 40,
    },
    "starter_monthly": {
        "name": "Starter",
        "description": "For first-time hosts",
        "price_amount": 29900,
        "billing_type": BillingType.SUBSCRIPTION,
        "billing_interval": BillingInterval.MONTH,
        "features": _features(per_month=500, storage_gb=10),
        "sort_order": 100,
    },
    "pro_monthly": {
        "name": "Professional",
        "description": "For professional photographers",
        "price_amount": 89900,
        "billing_type": BillingType.SUBSCRIPTION,
        "billing_interval": BillingInterval.MONTH,
        "features": _features(per_month=3000, storage_gb=50, email_support=True),
        "sort_order": 110,
    },
    "business_monthly": {
        "name": "Business",
        "description": "For event businesses",
        "price_amount": 249900,
        "billing_type": BillingType.SUBSCRIPTION,
        "billing_interval": BillingInterval.MONTH,
        "features": _features(
            per_month=15000, storage_gb=200, api_access=True, email_support=True, priority_support=True
        ),
        "sort_order": 120,
    },
    "unlimited_monthly": {
        "name": "Unlimited",
        "description": "No usage limits",
        "price_amount": 499900,
        "billing_type": BillingType.SUBSCRIPTION,
        "billing_interval": BillingInterval.MONTH,
        "features": _features(
            per_month=UNLIMITED, storage_gb=1000, api_access=True, email_support=True,
            priority_support=True, dedicated_support=True,
        ),
        "sort_order": 130,
    },
    "starter_yearly": {
        "name": "Starter",
        "description": "Billed yearly, save 20%",
        "price_amount": 287000,
        "billing_type": BillingType.SUBSCRIPTION,
        "billing_interval": BillingInterval.YEAR,
        "features": _features(per_month=500, storage_gb=10),
        "sort_order": 200,
    },
    "pro_yearly": {
        "name": "Professional",
        "description": "Billed yearly, save 20%",
        "price_amount": 863000,
        "billing_type": BillingType.SUBSCRIPTION,
        "billing_interval": BillingInterval.YEAR,
        "features": _features(per_month=3000, storage_gb=50, email_support=True),
        "sort_order": 210,
    },
    "business_yearly": {
        "name": "Business",
        "description": "Billed yearly, save 20%",
        "price_amount": 2399000,
        "billing_type": BillingType.SUBSCRIPTION,
        "billing_interval": BillingInterval.YEAR,
        "features": _features(
            per_month=15000, storage_gb=200, api_access=True, email_support=True, priority_support=True
        ),
        "sort_order": 220,
    },
    "unlimited_yearly": {
        "name": "Unlimited",
        "description": "Billed yearly, save 20%",
        "price_amount": 4799000,
        "billing_type": BillingType.SUBSCRIPTION,
        "billing_interval": BillingInterval.YEAR,
        "features": _features(
            per_month=UNLIMITED, storage_gb=1000, api_access=True, email_support=True,
            priority_support=True, dedicated_support=True,
        ),
        "sort_order": 230,
    },
}

# Payment methods offered per currency; promptpay only settles in THB
PAYMENT_METHODS_BY_CURRENCY: Dict[str, List[str]] = {
    "thb": ["card", "promptpay"],
}
DEFAULT_PAYMENT_METHODS: List[str] = ["card"]
