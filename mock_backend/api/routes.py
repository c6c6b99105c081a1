from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from dining_client.logging_conf import get_logger

from ..service import backend
from ..service.backend import Account, BackendState, ServiceError, UnauthorizedError
from .models import (
    DietaryProfileRequest,
    EmailRequest,
    FavoriteRequest,
    LoginRequest,
    LoginResponse,
    MealCreateRequest,
    MealUpdateRequest,
    PasswordRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    StatusMessage,
)

router = APIRouter(prefix="/api")
logger = get_logger("mock_backend.api")


def get_state(request: Request) -> BackendState:
    return request.app.state.backend


def current_account(request: Request, state: BackendState = Depends(get_state)) -> Account:
    """Resolve the bearer token on the request, or fail with 401."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Authentication required")
    return backend.resolve_token(state, token.strip())


# ------------------------
# Health and auth
# ------------------------

@router.get("/health", summary="Liveness/readiness check")
async def health() -> dict:
    return {"ok": True}


@router.post("/auth/register", response_model=StatusMessage, summary="Register an account")
async def register(req: RegisterRequest, state: BackendState = Depends(get_state)) -> dict:
    return backend.register(
        state, username=req.username, email=req.email, password=req.password, role=req.role
    )


@router.post("/auth/login", response_model=LoginResponse, summary="Log in")
async def login(req: LoginRequest, state: BackendState = Depends(get_state)) -> dict:
    return backend.login(state, email=req.email, password=req.password)


@router.post("/auth/logout", response_model=StatusMessage, summary="Log out (no-op)")
async def logout() -> dict:
    return {"status": "success", "message": "Logged out"}


@router.post("/auth/forgot-password", response_model=StatusMessage)
async def forgot_password(req: EmailRequest) -> dict:
    """Always succeed so the endpoint cannot be used to probe for accounts."""
    logger.info("password.forgot", extra={"event": "password_forgot"})
    return {"status": "success", "message": "If the account exists, a reset link was sent"}


@router.post("/auth/reset-password", response_model=StatusMessage)
async def reset_password(
    request: Request,
    req: PasswordRequest,
    token: Optional[str] = Query(None),
    state: BackendState = Depends(get_state),
) -> dict:
    """Reset with an emailed token, or change the password of the bearer."""
    if token:
        if not req.password:
            raise ServiceError("password is required")
        return backend.reset_password_with_token(state, token=token, password=req.password)
    account = current_account(request, state)
    if not (req.current_password and req.new_password and req.confirm_password):
        raise ServiceError("currentPassword, newPassword and confirmPassword are required")
    return backend.change_password(
        state,
        account,
        current=req.current_password,
        new=req.new_password,
        confirm=req.confirm_password,
    )


@router.get("/auth/verify-email", response_model=StatusMessage)
async def verify_email(token: str = Query(...), state: BackendState = Depends(get_state)) -> dict:
    return backend.verify_email(state, token=token)


@router.post("/auth/resend-verification", response_model=StatusMessage)
async def resend_verification(req: EmailRequest) -> dict:
    return {"status": "success", "message": "Verification email sent"}


# ------------------------
# Users
# ------------------------

@router.get("/users/profile")
async def get_profile(account: Account = Depends(current_account)) -> dict:
    return {"status": "success", "data": account.public()}


@router.put("/users/profile")
async def update_profile(
    req: ProfileUpdateRequest, account: Account = Depends(current_account)
) -> dict:
    return backend.update_profile(account, username=req.username)


@router.get("/users/favorites")
async def list_favorites(
    account: Account = Depends(current_account), state: BackendState = Depends(get_state)
) -> dict:
    return backend.list_favorites(state, account)


@router.post("/users/favorites", response_model=StatusMessage)
async def add_favorite(
    req: FavoriteRequest,
    account: Account = Depends(current_account),
    state: BackendState = Depends(get_state),
) -> dict:
    return backend.add_favorite(state, account, meal_id=req.meal_id)


@router.delete("/users/favorites/{meal_id}", response_model=StatusMessage)
async def remove_favorite(
    meal_id: str,
    account: Account = Depends(current_account),
    state: BackendState = Depends(get_state),
) -> dict:
    return backend.remove_favorite(state, account, meal_id=meal_id)


@router.post("/user/profile", response_model=StatusMessage)
async def save_dietary_profile(
    req: DietaryProfileRequest,
    account: Account = Depends(current_account),
    state: BackendState = Depends(get_state),
) -> dict:
    return backend.save_dietary_profile(state, account, profile=req.model_dump(by_alias=True))


@router.delete("/user/profile", response_model=StatusMessage)
async def delete_dietary_profile(
    account: Account = Depends(current_account), state: BackendState = Depends(get_state)
) -> dict:
    return backend.delete_dietary_profile(state, account)


@router.get("/user/meals")
async def personalized_meals(
    account: Account = Depends(current_account), state: BackendState = Depends(get_state)
) -> dict:
    return backend.personalized_meals(state, account)


# ------------------------
# Catalog
# ------------------------

@router.get("/meals")
async def list_meals(state: BackendState = Depends(get_state)) -> dict:
    return backend.list_meals(state)


@router.post("/meals")
async def add_meal(
    req: MealCreateRequest,
    account: Account = Depends(current_account),
    state: BackendState = Depends(get_state),
) -> dict:
    return backend.add_meal(
        state,
        account,
        name=req.name,
        description=req.description,
        price=req.price,
        dietary_tags=req.dietary_tags,
    )


@router.put("/meals/{meal_id}")
async def update_meal(
    meal_id: str,
    req: MealUpdateRequest,
    account: Account = Depends(current_account),
    state: BackendState = Depends(get_state),
) -> dict:
    return backend.update_meal(state, account, meal_id=meal_id, is_available=req.is_available)


@router.delete("/meals/{meal_id}", response_model=StatusMessage)
async def delete_meal(
    meal_id: str,
    account: Account = Depends(current_account),
    state: BackendState = Depends(get_state),
) -> dict:
    return backend.delete_meal(state, account, meal_id=meal_id)


@router.get("/restaurants")
async def list_restaurants(state: BackendState = Depends(get_state)) -> dict:
    return backend.list_restaurants(state)


@router.get("/restaurants/{restaurant_id}")
async def get_restaurant(restaurant_id: str, state: BackendState = Depends(get_state)) -> dict:
    return backend.get_restaurant(state, restaurant_id=restaurant_id)


@router.get("/restaurants/{restaurant_id}/meals")
async def list_restaurant_meals(
    restaurant_id: str, state: BackendState = Depends(get_state)
) -> dict:
    return backend.list_restaurant_meals(state, restaurant_id=restaurant_id)
