# app/api/v1/signup.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_email_service, get_payment_gateway
from app.db.database import get_db
from app.db.repositories.plan_repository import PlanRepository
from app.schemas.signup import CompleteSignupRequest, CreatePaymentRequest, TrialSignupRequest
from app.schemas.tenant import PlanOut
from app.services.email_service import EmailService
from app.services.payments import StripeGateway
from app.services.provisioning import ProvisioningService

router = APIRouter()


@router.get("/check-slug/{slug}")
async def check_slug(slug: str, db: AsyncSession = Depends(get_db)):
    """Whether a slug can be used for a new tenant"""
    return await ProvisioningService(db).check_slug(slug)


@router.get("/plans")
async def list_plans(db: AsyncSession = Depends(get_db)):
    plans = await PlanRepository(db).list_active()
    return {
        "success": True,
        "plans": [PlanOut.model_validate(plan).model_dump() for plan in plans],
    }


@router.post("/signup/trial")
async def signup_trial(
    request: TrialSignupRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Provision a tenant on the free trial plan"""
    service = ProvisioningService(db, email_service=email_service)
    account = await service.create_trial_account(
        shop_name=request.shop_name,
        shop_slug=request.shop_slug,
        owner_email=request.owner_email,
        owner_phone=request.owner_phone,
    )
    return account.to_response("Trial account created successfully. Check your email for login details.")


@router.post("/signup/create-payment")
async def signup_create_payment(
    request: CreatePaymentRequest,
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """Step one of a paid signup: a payment intent for the chosen plan"""
    service = ProvisioningService(db, gateway=gateway)
    return await service.create_payment_intent(
        plan_key=request.plan_key,
        shop_name=request.shop_name,
        shop_slug=request.shop_slug,
        owner_email=request.owner_email,
        owner_phone=request.owner_phone,
    )


@router.post("/signup/complete")
async def signup_complete(
    request: CompleteSignupRequest,
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
    email_service: EmailService = Depends(get_email_service),
):
    """Step two of a paid signup: provision once the payment has succeeded"""
    service = ProvisioningService(db, gateway=gateway, email_service=email_service)
    account = await service.complete_signup(request.payment_intent_id, request.shop_slug)
    return account.to_response("Account created successfully. Check your email for login details.")
