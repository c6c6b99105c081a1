"""Typed views of backend payloads, one decode function per endpoint shape.

Envelopes are tagged on `status`: a `"success"` envelope decodes into the
endpoint's model, an `"error"` envelope raises `BackendReportedError`, and
anything else raises `DecodeError` instead of yielding half-filled data.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .types import BackendReportedError, DecodeError

__all__ = [
    "Wire",
    "User",
    "AuthSession",
    "NutritionalInfo",
    "MealRestaurant",
    "Meal",
    "RestaurantOwner",
    "Restaurant",
    "DietaryPreferences",
    "PlannedMeal",
    "MealPlan",
    "ErrorEnvelope",
    "LoginEnvelope",
    "StatusMessage",
    "decode_meal_list",
    "decode_restaurant_list",
    "decode_restaurant",
    "decode_user",
    "decode_meal",
    "decode_login",
    "decode_status_message",
]


class Wire(BaseModel):
    """Base for backend DTOs: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


W = TypeVar("W", bound=Wire)


# ------------------------
# Domain DTOs
# ------------------------


class User(Wire):
    id: str = ""
    name: str | None = None
    username: str | None = None
    email: str
    role: str
    is_admin: bool | None = None
    is_email_verified: bool | None = None
    has_profile: bool | None = None
    force_password_change: bool | None = None
    created_at: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.username or self.email


class AuthSession(Wire):
    token: str
    user: User
    refresh_token: str | None = None


class NutritionalInfo(Wire):
    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    sugars: float | None = None
    fiber: float | None = None
    sodium: float | None = None


class MealRestaurant(Wire):
    id: str
    name: str
    location: str | None = None


class Meal(Wire):
    id: str
    name: str
    description: str = ""
    # The backend sends prices as strings ("12.50").
    price: Decimal
    # 1/0 on the wire
    is_available: int = 1
    restaurant_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    dietary_tags: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    nutritional_info: NutritionalInfo = Field(default_factory=NutritionalInfo)
    restaurant: MealRestaurant | None = None


class RestaurantOwner(Wire):
    id: str
    username: str
    email: str


class Restaurant(Wire):
    restaurant_id: str
    restaurant_name: str
    location: str = ""
    cuisine_type: str = ""
    contact_email: str | None = None
    status: str | None = None
    is_active: bool = True
    owner: RestaurantOwner | None = None


class DietaryPreferences(Wire):
    health_goal: str
    dietary_restrictions: list[str] = Field(default_factory=list)
    preferred_meal_tags: list[str] = Field(default_factory=list)


class PlannedMeal(Wire):
    type: str
    name: str


class MealPlan(Wire):
    """Form data of the meal-plan builder, before it is sent anywhere."""

    meal_goal: str
    plan_duration: str = ""
    restrictions: list[str] = Field(default_factory=list)
    disliked: str = ""
    meals: list[PlannedMeal] = Field(default_factory=list)


# ------------------------
# Envelopes
# ------------------------


class ErrorEnvelope(Wire):
    status: Literal["error"]
    message: str = "Request failed"


class StatusMessage(Wire):
    status: Literal["success"]
    message: str | None = None


class LoginEnvelope(Wire):
    status: Literal["success"]
    message: str | None = None
    token: str
    refresh_token: str | None = None
    has_user_profile: bool = False
    force_password_change: bool = False
    is_email_verified: bool | None = None


class _MealList(Wire):
    status: Literal["success"]
    results: int | None = None
    data: list[Meal]


class _RestaurantListData(Wire):
    restaurants: list[Restaurant]


class _RestaurantList(Wire):
    status: Literal["success"]
    results: int | None = None
    data: _RestaurantListData


class _RestaurantDetail(Wire):
    status: Literal["success"]
    data: Restaurant


class _UserDetail(Wire):
    status: Literal["success"]
    message: str | None = None
    data: User


class _MealDetail(Wire):
    status: Literal["success"]
    message: str | None = None
    data: Meal


def _tagged(success: type[Wire]) -> TypeAdapter:
    return TypeAdapter(Annotated[Union[success, ErrorEnvelope], Field(discriminator="status")])


_MEAL_LIST = _tagged(_MealList)
_BARE_MEALS = TypeAdapter(list[Meal])
_RESTAURANT_LIST = _tagged(_RestaurantList)
_RESTAURANT_DETAIL = _tagged(_RestaurantDetail)
_USER_DETAIL = _tagged(_UserDetail)
_MEAL_DETAIL = _tagged(_MealDetail)
_LOGIN = _tagged(LoginEnvelope)
_STATUS_MESSAGE = _tagged(StatusMessage)


def _decode(adapter: TypeAdapter, payload: Any, endpoint: str) -> Any:
    if not isinstance(payload, (dict, list)):
        raise DecodeError(endpoint, f"expected a JSON object, got {type(payload).__name__}")
    try:
        decoded = adapter.validate_python(payload)
    except ValidationError as e:
        raise DecodeError(endpoint, _summarize(e)) from e
    if isinstance(decoded, ErrorEnvelope):
        raise BackendReportedError(decoded.message)
    return decoded


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    where = ".".join(str(p) for p in first["loc"]) or "<root>"
    more = error.error_count() - 1
    suffix = f" (+{more} more)" if more else ""
    return f"{where}: {first['msg']}{suffix}"


# ------------------------
# Public decoders
# ------------------------


def decode_meal_list(payload: Any, *, endpoint: str = "meals") -> list[Meal]:
    """Accept either a bare JSON array of meals or a `{status, data: [...]}` envelope."""
    if isinstance(payload, list):
        try:
            return _BARE_MEALS.validate_python(payload)
        except ValidationError as e:
            raise DecodeError(endpoint, _summarize(e)) from e
    return _decode(_MEAL_LIST, payload, endpoint).data


def decode_restaurant_list(payload: Any) -> list[Restaurant]:
    return _decode(_RESTAURANT_LIST, payload, "restaurants").data.restaurants


_ENVELOPE_TAGS = frozenset({"success", "error"})


def _is_envelope(payload: dict[str, Any]) -> bool:
    # A bare restaurant has its own `status` ("approved", "pending", ...).
    return "data" in payload or payload.get("status") in _ENVELOPE_TAGS


def _decode_detail(adapter: TypeAdapter, model: type[W], payload: Any, endpoint: str) -> W:
    """Decode a `{status, data}` envelope or the bare object it would wrap."""
    if isinstance(payload, dict) and not _is_envelope(payload):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(endpoint, _summarize(e)) from e
    return _decode(adapter, payload, endpoint).data


def decode_restaurant(payload: Any) -> Restaurant:
    return _decode_detail(_RESTAURANT_DETAIL, Restaurant, payload, "restaurant")


def decode_user(payload: Any) -> User:
    return _decode_detail(_USER_DETAIL, User, payload, "profile")


def decode_meal(payload: Any) -> Meal:
    return _decode_detail(_MEAL_DETAIL, Meal, payload, "meal")


def decode_login(payload: Any) -> LoginEnvelope:
    return _decode(_LOGIN, payload, "login")


def decode_status_message(payload: Any, *, endpoint: str) -> StatusMessage:
    return _decode(_STATUS_MESSAGE, payload, endpoint)
