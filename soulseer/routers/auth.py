from typing import Annotated

from fastapi import Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from soulseer.models.user import User
from soulseer.schemas.auth_schema import (FirebaseSyncRequest, RegisterRequest,
                                          TokenPair, TokenRefreshRequest)
from soulseer.schemas.user_schema import UserResponse
from soulseer.services.auth_service import AuthService, issue_tokens
from soulseer.utils.dependencies import get_auth_service, get_current_user
from soulseer.utils.router import get_router

router = get_router("auth")


@router.post(
    "/register",
    response_model=TokenPair,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an email / password CLIENT account and return a token pair.",
    responses={
        400: {"description": "Invalid timezone"},
        409: {"description": "Email already registered"},
    },
)
async def register(
    data: RegisterRequest,
    svc: Annotated[AuthService, Depends(get_auth_service)],
):
    """
    - **name**: display name
    - **email**: login email
    - **password**: at least 8 characters
    - **timezone**: IANA timezone (optional)
    """
    _, access, refresh = await svc.register(data)
    return TokenPair(access_token=access, refresh_token=refresh)


# form body (OAuth2PasswordRequestForm) so Swagger "Try it out" works
@router.post("/login", response_model=TokenPair, summary="Login")
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    svc: Annotated[AuthService, Depends(get_auth_service)],
):
    access, refresh = await svc.login(
        email=form_data.username,
        password=form_data.password,
    )
    return TokenPair(access_token=access, refresh_token=refresh)


@router.post("/refresh", response_model=TokenPair, summary="Refresh tokens")
async def refresh(
    req: TokenRefreshRequest,
    svc: Annotated[AuthService, Depends(get_auth_service)],
):
    access, refresh = await svc.refresh(req.refresh_token)
    return TokenPair(access_token=access, refresh_token=refresh)


@router.post(
    "/firebase-sync",
    summary="Firebase sign in",
    description="Verify a Firebase ID token, create or link the local user and return a local token pair.",
    responses={
        401: {"description": "Firebase token verification failed"},
        403: {"description": "Account suspended or banned"},
    },
)
async def firebase_sync(
    data: FirebaseSyncRequest,
    svc: Annotated[AuthService, Depends(get_auth_service)],
):
    user, created = await svc.firebase_sync(data)
    access, refresh = issue_tokens(user)
    return {
        "user": UserResponse.model_validate(user),
        "created": created,
        "tokens": TokenPair(access_token=access, refresh_token=refresh),
    }


@router.get("/me", response_model=UserResponse, summary="Current user")
async def me(current_user: Annotated[User, Depends(get_current_user)]):
    return current_user
