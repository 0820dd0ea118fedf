# app/db/models/__init__.py
from app.db.models.tenant import Tenant
from app.db.models.plan import SubscriptionPlan
from app.db.models.subscription import Subscription
from app.db.models.admin import Admin
from app.db.models.payment import Payment
from app.db.models.image import Image
from app.db.models.engagement import Like, Comment
from app.db.models.billing import BillingHistory

__all__ = [
    "Tenant", "SubscriptionPlan", "Subscription", "Admin",
    "Payment", "Image", "Like", "Comment", "BillingHistory",
]
