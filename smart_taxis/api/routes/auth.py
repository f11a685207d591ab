"""
Auth endpoints
==============

POST /auth/login     -- username (or email) + password -> bearer token
POST /auth/register  -- create a user            [manage_users]
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from smart_taxis.api.dependencies import get_auth, require
from smart_taxis.api.schemas import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from smart_taxis.domain.enums import Capability
from smart_taxis.services.auth import AuthService, DuplicateUser, InvalidCredentials

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AuthResponse, summary="Log in")
async def login(body: LoginRequest, auth: AuthService = Depends(get_auth)):
    if not body.username or not body.password:
        raise HTTPException(status_code=400, detail="Username and password are required")
    try:
        user, token = await auth.login(body.username, body.password)
    except InvalidCredentials as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return AuthResponse(
        message="Login successful",
        token=token.token,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    summary="Create a user",
    dependencies=[Depends(require(Capability.MANAGE_USERS))],
)
async def register(body: RegisterRequest, auth: AuthService = Depends(get_auth)):
    if not body.username or not body.email or not body.password:
        raise HTTPException(
            status_code=400, detail="Username, email, and password are required"
        )
    try:
        user, token = await auth.register(
            body.username, body.email, body.password, body.role, body.driver_id
        )
    except DuplicateUser as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return AuthResponse(
        message="User created successfully",
        token=token.token,
        user=UserResponse.model_validate(user),
    )
