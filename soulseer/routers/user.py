# routers/user.py
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.user import User, UserRole, UserStatus
from soulseer.schemas.common import ErrorResponse
from soulseer.schemas.user_schema import (SuspendRequest, UserListResponse,
                                          UserProfileUpdateRequest,
                                          UserResponse, UserStatsResponse)
from soulseer.services.user_service import NOT_FOUND, UserService
from soulseer.utils.dependencies import (get_current_user, get_user_service,
                                         require_admin)
from soulseer.utils.router import get_router

router = get_router("users")
admin_router = get_router("admin/users", tag="admin")


def _raise(error: ErrorResponse) -> None:
    status_code = (
        status.HTTP_404_NOT_FOUND
        if error.error == NOT_FOUND
        else status.HTTP_400_BAD_REQUEST
    )
    raise HTTPException(status_code=status_code, detail=error.model_dump())


@router.get(
    "/profile",
    response_model=UserResponse,
    summary="Own profile",
    responses={401: {"description": "Not authenticated"}},
)
async def get_profile(current_user: Annotated[User, Depends(get_current_user)]):
    return current_user


@router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update own profile",
    description="Update name, timezone or password.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid timezone or empty update"},
        401: {"description": "Not authenticated"},
    },
)
async def update_profile(
    update_data: UserProfileUpdateRequest,
    service: Annotated[UserService, Depends(get_user_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """
    - **name**: new display name (optional)
    - **timezone**: IANA name such as "America/New_York" (optional)
    - **password**: new password (optional)
    """
    user_response, error = await service.update_profile(db, current_user.user_id, update_data)
    if error:
        _raise(error)
    return user_response


# ----------------------------------------------------------------------
# admin
# ----------------------------------------------------------------------
@admin_router.get("", response_model=UserListResponse, summary="List users")
async def list_users(
    service: Annotated[UserService, Depends(get_user_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
    role: Optional[UserRole] = None,
    status_filter: Annotated[Optional[UserStatus], Query(alias="status")] = None,
    search: Optional[str] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    user_list, error = await service.list_users(db, role, status_filter, search, limit, offset)
    if error:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.model_dump())
    return user_list


@admin_router.get("/stats", response_model=UserStatsResponse, summary="User statistics")
async def user_stats(
    service: Annotated[UserService, Depends(get_user_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    return await service.get_stats(db)


@admin_router.get("/{user_id}", response_model=UserResponse, summary="Get user")
async def get_user(
    user_id: int,
    service: Annotated[UserService, Depends(get_user_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    user_response, error = await service.get_profile(db, user_id)
    if error:
        _raise(error)
    return user_response


@admin_router.post(
    "/{user_id}/suspend",
    response_model=UserResponse,
    summary="Suspend user",
    responses={
        400: {"model": ErrorResponse, "description": "Missing reason"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def suspend_user(
    user_id: int,
    body: SuspendRequest,
    service: Annotated[UserService, Depends(get_user_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    user_response, error = await service.set_status(db, user_id, UserStatus.SUSPENDED, body.reason)
    if error:
        _raise(error)
    return user_response


@admin_router.post("/{user_id}/activate", response_model=UserResponse, summary="Activate user")
async def activate_user(
    user_id: int,
    service: Annotated[UserService, Depends(get_user_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    user_response, error = await service.set_status(db, user_id, UserStatus.ACTIVE)
    if error:
        _raise(error)
    return user_response
