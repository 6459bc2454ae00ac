"""
Account API endpoints

Signup, login, profile reads and updates, password changes.
"""

from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from ...services.auth import AuthService
from ..dependencies import get_auth_service, get_current_user_id

logger = structlog.get_logger()
router = APIRouter(prefix="/api/auth")


class SignupRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(BaseModel):
    """At least one field must be provided."""

    username: Optional[str] = Field(None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest, service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    result = await service.signup(body.username, body.email, body.password)
    return {
        "success": True,
        "message": "User registered successfully",
        "token": result.token,
        "user": result.user,
    }


@router.post("/login")
async def login(
    body: LoginRequest, service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    result = await service.login(body.email, body.password)
    return {
        "success": True,
        "message": "Login successful",
        "token": result.token,
        "user": result.user,
    }


@router.get("/profile")
async def get_profile(
    user_id: UUID = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    return {"success": True, "user": await service.get_profile(user_id)}


@router.put("/profile")
async def update_profile(
    body: ProfileUpdateRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    profile = await service.update_profile(
        user_id, username=body.username, email=body.email
    )
    return {"success": True, "message": "Profile updated successfully", "user": profile}


@router.put("/change-password")
async def change_password(
    body: PasswordChangeRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    await service.change_password(user_id, body.current_password, body.new_password)
    return {"success": True, "message": "Password changed successfully"}
