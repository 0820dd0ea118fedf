# app/schemas/tenant.py
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class TenantBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class TenantCreate(TenantBase):
    slug: str
    plan_key: Optional[str] = None
    description: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    payment_enabled: bool = True
    price_amount: int = Field(3500, ge=0)
    price_currency: str = "thb"
    display_duration: int = Field(5, ge=1)
    image_expiry_hours: int = Field(1, ge=1)
    max_images_per_user: int = Field(10, ge=1)


class TenantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    is_active: Optional[bool] = None
    is_public: Optional[bool] = None
    payment_enabled: Optional[bool] = None
    price_amount: Optional[int] = Field(None, ge=0)
    price_currency: Optional[str] = None
    display_duration: Optional[int] = Field(None, ge=1)
    image_expiry_hours: Optional[int] = Field(None, ge=1)
    max_images_per_user: Optional[int] = Field(None, ge=1)
    theme_settings: Optional[Dict[str, Any]] = None
    display_settings: Optional[Dict[str, Any]] = None


class TenantSettingsUpdate(BaseModel):
    """Fields a tenant admin may change; activation and slug stay with super-admins"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    payment_enabled: Optional[bool] = None
    price_amount: Optional[int] = Field(None, ge=0)
    price_currency: Optional[str] = None
    display_duration: Optional[int] = Field(None, ge=1)
    image_expiry_hours: Optional[int] = Field(None, ge=1)
    max_images_per_user: Optional[int] = Field(None, ge=1)
    theme_settings: Optional[Dict[str, Any]] = None
    display_settings: Optional[Dict[str, Any]] = None


class TenantSummary(BaseModel):
    id: str
    slug: str
    name: str

    class Config:
        from_attributes = True


class TenantInDB(TenantSummary):
    description: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    is_active: bool
    is_public: bool
    payment_enabled: bool
    price_amount: int
    price_currency: str
    display_duration: int
    image_expiry_hours: int
    max_images_per_user: int
    theme_settings: Optional[Dict[str, Any]] = None
    display_settings: Optional[Dict[str, Any]] = None
    created_at: datetime


class TenantTheme(BaseModel):
    """Public, unauthenticated view of a tenant"""
    id: str
    slug: str
    name: str
    description: Optional[str] = None
    payment_enabled: bool
    price_amount: int
    price_currency: str
    display_duration: int
    max_images_per_user: int
    theme_settings: Optional[Dict[str, Any]] = None
    display_settings: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class PlanOut(BaseModel):
    plan_key: str
    name: str
    description: Optional[str] = None
    price_amount: int
    price_currency: str
    billing_type: str
    billing_interval: Optional[str] = None
    duration_days: Optional[int] = None
    features: Dict[str, Any]

    class Config:
        from_attributes = True
