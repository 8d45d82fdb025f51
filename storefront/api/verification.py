"""
Email and phone verification endpoints
"""
from fastapi import APIRouter, Query
from pydantic import BaseModel

from storefront.core.auth import allow_anonymous
from storefront.services.verification_service import VerificationService

router = APIRouter()


class VerifyPhoneRequest(BaseModel):
    phone_number: str
    token: str


class ResendConfirmationRequest(BaseModel):
    email: str


class ResendPhoneRequest(BaseModel):
    phone_number: str


@router.get("/confirm_email")
@allow_anonymous
async def confirm_email(confirmation_token: str = Query(..., description="Token from the confirmation email")):
    user = VerificationService().confirm_email(confirmation_token)
    return {
        "success": True,
        "message": "Email confirmed successfully",
        "email_confirmed": True,
        "phone_verified": user.phone_verified,
        "fully_verified": user.fully_verified,
    }


@router.post("/verify_phone")
@allow_anonymous
async def verify_phone(request: VerifyPhoneRequest):
    user, already_verified = VerificationService().verify_phone(request.phone_number, request.token)
    if already_verified:
        return {"message": "Phone already verified"}

    return {
        "success": True,
        "message": "Phone verified successfully",
        "email_verified": user.email_confirmed,
        "phone_verified": True,
        "fully_verified": user.fully_verified,
    }


@router.post("/resend_confirmation")
@allow_anonymous
async def resend_confirmation(request: ResendConfirmationRequest):
    if not VerificationService().resend_confirmation(request.email):
        return {"message": "Email already confirmed"}
    return {"success": True, "message": "Confirmation email sent"}


@router.post("/resend_phone")
@allow_anonymous
async def resend_phone(request: ResendPhoneRequest):
    """Send a new code; 429 with retry_after when the last one is too recent"""
    if not VerificationService().resend_phone(request.phone_number):
        return {"message": "Phone already verified"}
    return {"success": True, "message": "Verification code sent to your phone"}
