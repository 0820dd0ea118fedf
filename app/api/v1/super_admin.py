# app/api/v1/super_admin.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_email_service, require_super_admin
from app.db.database import get_db
from app.db.models.admin import Admin
from app.db.repositories.admin_repository import AdminRepository
from app.db.repositories.tenant_repository import TenantRepository
from app.schemas.auth import AdminCreate, AdminOut, AdminUpdate
from app.schemas.tenant import TenantCreate, TenantInDB, TenantUpdate
from app.services.email_service import EmailService
from app.services.platform import PlatformService

router = APIRouter()


def _tenant(tenant) -> dict:
    return TenantInDB.model_validate(tenant).model_dump(mode="json")


def _admin(admin) -> dict:
    return AdminOut.model_validate(admin).model_dump(mode="json")


@router.get("/tenants")
async def list_tenants(
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    tenants = await TenantRepository(db).list_all()
    return {"success": True, "data": [_tenant(tenant) for tenant in tenants]}


@router.post("/tenants")
async def create_tenant(
    request: TenantCreate,
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await PlatformService(db).create_tenant(request)
    return {"success": True, "data": _tenant(tenant)}


@router.put("/tenants/{tenant_id}")
async def update_tenant(
    tenant_id: str,
    request: TenantUpdate,
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await PlatformService(db).update_tenant(tenant_id, request)
    return {"success": True, "data": _tenant(tenant)}


@router.delete("/tenants/{tenant_id}")
async def delete_tenant(
    tenant_id: str,
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    await PlatformService(db).delete_tenant(tenant_id)
    return {"success": True, "message": "Tenant deleted successfully"}


@router.get("/admins")
async def list_admins(
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    admins = await AdminRepository(db).list_all()
    return {"success": True, "data": [_admin(a) for a in admins]}


@router.post("/admins")
async def create_admin(
    request: AdminCreate,
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    created = await PlatformService(db).create_admin(request)
    return {"success": True, "data": _admin(created)}


@router.put("/admins/{admin_id}")
async def update_admin(
    admin_id: str,
    request: AdminUpdate,
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    updated = await PlatformService(db).update_admin(admin_id, request)
    return {"success": True, "data": _admin(updated)}


@router.delete("/admins/{admin_id}")
async def delete_admin(
    admin_id: str,
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    await PlatformService(db).delete_admin(admin_id, admin)
    return {"success": True, "message": "Admin deleted successfully"}


@router.get("/stats")
async def platform_stats(
    admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "data": await PlatformService(db).stats()}


@router.post("/subscriptions/expiry-warnings")
async def send_expiry_warnings(
    admin: Admin = Depends(require_super_admin),
    email_service: EmailService = Depends(get_email_service),
    db: AsyncSession = Depends(get_db),
):
    """Email every owner whose plan ends within the next week"""
    result = await PlatformService(db).send_expiry_warnings(email_service)
    return {"success": True, "data": result}
