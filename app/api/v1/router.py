# app/api/v1/router.py
from fastapi import APIRouter, Depends

from app.api.v1 import admin_auth, public, signup, super_admin, tenant_admin, upload, webhooks
from app.middleware.rate_limit import rate_limit

api_router = APIRouter(dependencies=[Depends(rate_limit)])

# Fixed prefixes first; everything after is addressed by /{tenant_slug}
api_router.include_router(signup.router, tags=["signup"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
api_router.include_router(admin_auth.router, tags=["auth"])
api_router.include_router(super_admin.router, prefix="/super-admin", tags=["super-admin"])
api_router.include_router(tenant_admin.router, tags=["tenant-admin"])
api_router.include_router(upload.router, tags=["upload"])
api_router.include_router(public.router, tags=["public"])
