# app/schemas/auth.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    sub: str
    tenant_id: Optional[str] = None
    is_super_admin: bool = False
    role: str
    exp: int
    type: str


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AdminCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6)
    tenant_id: Optional[str] = None
    is_super_admin: bool = False


class AdminUpdate(BaseModel):
    password: Optional[str] = Field(None, min_length=6)
    tenant_id: Optional[str] = None


class AdminOut(BaseModel):
    id: str
    username: str
    tenant_id: Optional[str] = None
    is_super_admin: bool
    role: str
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
