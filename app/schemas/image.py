# app/schemas/image.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class ImageOut(BaseModel):
    id: str
    tenant_id: str
    filename: str
    original_filename: Optional[str] = None
    file_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    status: str
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    caption: Optional[str] = None
    like_count: int = 0
    comment_count: int = 0
    uploaded_at: datetime

    class Config:
        from_attributes = True


class RejectRequest(BaseModel):
    rejection_reason: Optional[str] = None


class CommentCreate(BaseModel):
    comment_text: Optional[str] = Field(None, alias="comment")

    model_config = ConfigDict(populate_by_name=True)


class CommentOut(BaseModel):
    id: str
    image_id: str
    comment_text: str
    created_at: datetime

    class Config:
        from_attributes = True
