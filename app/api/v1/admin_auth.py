# app/api/v1/admin_auth.py
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_current_admin
from app.core.exceptions import AuthError, NotFoundError
from app.core.logging import logger
from app.core.security import create_access_token, verify_password
from app.db.database import get_db
from app.db.models.admin import Admin
from app.db.repositories.admin_repository import AdminRepository
from app.db.repositories.tenant_repository import TenantRepository
from app.schemas.auth import AdminOut, LoginRequest
from app.schemas.tenant import TenantSummary

router = APIRouter()


def issue_token(admin: Admin) -> str:
    return create_access_token({
        "sub": admin.id,
        "tenant_id": admin.tenant_id,
        "is_super_admin": admin.is_super_admin,
        "role": admin.role,
    })


@router.post("/{tenant_slug}/admin/login")
async def tenant_admin_login(
    tenant_slug: str,
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Login scoped to one tenant; super-admins may log into any tenant"""
    tenant = await TenantRepository(db).get_by_slug(tenant_slug)
    if tenant is None:
        raise NotFoundError("Tenant not found or inactive")

    admins = AdminRepository(db)
    admin = await admins.get_for_tenant_login(request.username, tenant.id)
    if admin is None or not verify_password(request.password, admin.password_hash):
        logger.warning(f"Failed admin login for {request.username}", extra={"tenant_id": tenant.id})
        raise AuthError("Invalid username or password")

    await admins.update(admin.id, {"last_login": datetime.utcnow()})
    logger.info(f"Admin {admin.username} logged in", extra={"tenant_id": tenant.id, "admin_id": admin.id})

    return {
        "success": True,
        "token": issue_token(admin),
        "token_type": "bearer",
        "admin": AdminOut.model_validate(admin).model_dump(mode="json"),
        "tenant": TenantSummary.model_validate(tenant).model_dump(),
    }


@router.post("/super-admin/login")
async def super_admin_login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    admins = AdminRepository(db)
    admin = await admins.get_by_username(request.username)
    if admin is None or not admin.is_super_admin or not verify_password(request.password, admin.password_hash):
        logger.warning(f"Failed super-admin login for {request.username}")
        raise AuthError("Invalid username or password")

    await admins.update(admin.id, {"last_login": datetime.utcnow()})
    return {
        "success": True,
        "token": issue_token(admin),
        "token_type": "bearer",
        "admin": AdminOut.model_validate(admin).model_dump(mode="json"),
    }


@router.get("/auth/me")
async def who_am_i(admin: Admin = Depends(get_current_admin)):
    return {"success": True, "admin": AdminOut.model_validate(admin).model_dump(mode="json")}
