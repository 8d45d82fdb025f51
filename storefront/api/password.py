"""
Password recovery endpoints
"""
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from storefront.core.auth import allow_anonymous
from storefront.services.password_service import PasswordService

router = APIRouter()


class RecoverRequest(BaseModel):
    email: str


class ChangePasswordRequest(BaseModel):
    reset_password_token: str
    password: str
    password_confirmation: Optional[str] = None


@router.post("/recover")
@allow_anonymous
async def recover_password(request: RecoverRequest):
    PasswordService().send_reset_instructions(request.email)
    return {
        "message": "You will receive an email with instructions on how to reset your password in a few minutes."
    }


@router.post("/change")
@allow_anonymous
async def change_password(request: ChangePasswordRequest):
    PasswordService().reset_password(
        request.reset_password_token,
        request.password,
        request.password_confirmation,
    )
    return {"message": "Password has been reset successfully"}
