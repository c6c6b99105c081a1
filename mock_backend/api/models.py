from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(_Camel):
    """New account; `role` is "user" for customers."""
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: str = "user"


class LoginRequest(_Camel):
    email: str
    password: str


class EmailRequest(_Camel):
    email: str


class PasswordRequest(_Camel):
    """Either `password` (with a reset token) or the current/new/confirm triple."""
    password: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    confirm_password: Optional[str] = None


class MealCreateRequest(_Camel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: Decimal = Field(..., ge=0)
    dietary_tags: list[str] = Field(default_factory=list)


class MealUpdateRequest(_Camel):
    is_available: Optional[bool] = None


class FavoriteRequest(_Camel):
    meal_id: str


class DietaryProfileRequest(_Camel):
    health_goal: str
    dietary_restrictions: list[str] = Field(default_factory=list)
    preferred_meal_tags: list[str] = Field(default_factory=list)


class ProfileUpdateRequest(_Camel):
    username: Optional[str] = None


class StatusMessage(_Camel):
    """Plain acknowledgement envelope."""
    status: Literal["success", "error"]
    message: str


class LoginResponse(_Camel):
    status: Literal["success"]
    message: str
    token: str
    has_user_profile: bool
    force_password_change: bool
    is_email_verified: bool
