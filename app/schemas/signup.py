# app/schemas/signup.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class _SignupBase(BaseModel):
    # The signup form posts camelCase; snake_case is accepted too
    model_config = ConfigDict(populate_by_name=True)


class TrialSignupRequest(_SignupBase):
    shop_name: Optional[str] = Field(None, alias="shopName")
    shop_slug: Optional[str] = Field(None, alias="shopSlug")
    owner_email: Optional[str] = Field(None, alias="ownerEmail")
    owner_phone: Optional[str] = Field(None, alias="ownerPhone")


class CreatePaymentRequest(TrialSignupRequest):
    plan_key: Optional[str] = Field(None, alias="planKey")


class CompleteSignupRequest(_SignupBase):
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    shop_slug: Optional[str] = Field(None, alias="shopSlug")
