"""Endpoint helpers: catalog, menu, profile, favorites and dietary profile calls.

Each helper issues one request through an `ApiClient`, decodes the payload
with the matching decoder and returns an `ApiResult` with typed `data`.
Like the client itself, helpers never raise: a malformed payload becomes a
`decode_error` result and an error-tagged envelope becomes an `error` result.
"""
from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any, TypeVar
from urllib.parse import quote

from .client import ApiClient
from .config import ENDPOINTS
from .decoders import (
    DietaryPreferences,
    Meal,
    MealPlan,
    Restaurant,
    User,
    decode_meal,
    decode_meal_list,
    decode_restaurant,
    decode_restaurant_list,
    decode_user,
)
from .logging_conf import get_logger
from .types import STATUS_DECODE_ERROR, STATUS_ERROR, ApiResult, BackendReportedError, DecodeError

logger = get_logger("dining_client.services")

T = TypeVar("T")


def _decoded(
    result: ApiResult[Any], decode: Callable[[Any], T], *, message: str | None = None
) -> ApiResult[T]:
    """Apply `decode` to a successful raw result; `message` overrides the backend's."""
    if not result.success:
        return result.without_data()
    try:
        data = decode(result.data)
    except BackendReportedError as e:
        return ApiResult.failure(str(e), status=STATUS_ERROR)
    except DecodeError as e:
        logger.warning(
            "decode.failed",
            extra={"event": "decode_failed", "endpoint": e.endpoint, "detail": e.detail},
        )
        return ApiResult.failure(str(e), error=e.detail, status=STATUS_DECODE_ERROR)
    return result.with_data(data, message=message)


def _segment(value: str) -> str:
    return quote(str(value), safe="")


# ------------------------
# Catalog
# ------------------------


async def get_all_meals(client: ApiClient) -> ApiResult[list[Meal]]:
    result = await client.get(ENDPOINTS.meals)
    return _decoded(result, decode_meal_list, message="Meals fetched successfully")


async def get_all_restaurants(client: ApiClient) -> ApiResult[list[Restaurant]]:
    result = await client.get(ENDPOINTS.restaurants)
    return _decoded(result, decode_restaurant_list, message="Restaurants fetched successfully")


async def get_restaurant_by_id(client: ApiClient, restaurant_id: str) -> ApiResult[Restaurant]:
    result = await client.get(f"{ENDPOINTS.restaurants}/{_segment(restaurant_id)}")
    return _decoded(result, decode_restaurant, message="Restaurant fetched successfully")


async def get_meals_by_restaurant(client: ApiClient, restaurant_id: str) -> ApiResult[list[Meal]]:
    result = await client.get(f"{ENDPOINTS.restaurants}/{_segment(restaurant_id)}/meals")
    return _decoded(
        result,
        lambda p: decode_meal_list(p, endpoint="restaurant_meals"),
        message="Restaurant meals fetched successfully",
    )


async def add_meal_to_restaurant(
    client: ApiClient,
    *,
    name: str,
    description: str,
    price: Decimal | float | str,
    dietary_tags: list[str],
    **ignored: Any,
) -> ApiResult[Any]:
    """Create a meal for the signed-in restaurant.

    Only the fields the backend accepts are sent; form-only extras such as
    category, days or time slot are dropped here.
    """
    if ignored:
        logger.debug(
            "meal.extra_fields_dropped",
            extra={"event": "meal_extra_fields_dropped", "fields": sorted(ignored)},
        )
    payload = {
        "name": name,
        "description": description,
        "price": float(price),
        "dietaryTags": list(dietary_tags),
    }
    result = await client.post(ENDPOINTS.meals, payload)
    if result.success:
        logger.info("meal.added", extra={"event": "meal_added", "meal": name})
    return result


async def set_meal_availability(
    client: ApiClient, meal_id: str, available: bool
) -> ApiResult[Meal]:
    """Toggle whether a meal of the signed-in restaurant can be ordered."""
    result = await client.put(
        f"{ENDPOINTS.meals}/{_segment(meal_id)}", {"isAvailable": available}
    )
    return _decoded(result, decode_meal)


async def delete_meal(client: ApiClient, meal_id: str) -> ApiResult[Any]:
    result = await client.delete(f"{ENDPOINTS.meals}/{_segment(meal_id)}")
    if result.success:
        logger.info("meal.deleted", extra={"event": "meal_deleted", "meal_id": meal_id})
    return result


# ------------------------
# Account profile
# ------------------------


async def get_profile(client: ApiClient) -> ApiResult[User]:
    result = await client.get(ENDPOINTS.profile)
    return _decoded(result, decode_user, message="Profile fetched successfully")


async def update_profile(client: ApiClient, *, username: str) -> ApiResult[User]:
    result = await client.put(ENDPOINTS.profile, {"username": username})
    return _decoded(result, decode_user)


# ------------------------
# Dietary profile
# ------------------------


def meal_plan_to_dietary_preferences(plan: MealPlan) -> DietaryPreferences:
    """Map meal-plan builder input to the backend's dietary profile.

    Every space in the goal becomes an underscore ("Weight Loss" ->
    "weight_loss"); restrictions pass through as is.
    """
    return DietaryPreferences(
        health_goal="_".join(plan.meal_goal.lower().split()),
        dietary_restrictions=list(plan.restrictions),
        preferred_meal_tags=[],
    )


async def save_dietary_preferences(
    client: ApiClient, preferences: DietaryPreferences
) -> ApiResult[Any]:
    return await client.post(ENDPOINTS.dietary_profile, preferences.to_wire())


async def get_user_meals(client: ApiClient) -> ApiResult[list[Meal]]:
    result = await client.get(ENDPOINTS.user_meals)
    return _decoded(
        result,
        lambda p: decode_meal_list(p, endpoint="user_meals"),
        message="User meals fetched successfully",
    )


async def delete_user_profile(client: ApiClient) -> ApiResult[Any]:
    return await client.delete(ENDPOINTS.dietary_profile)


# ------------------------
# Favorites
# ------------------------


async def add_meal_to_favorites(client: ApiClient, meal_id: str) -> ApiResult[Any]:
    return await client.post(ENDPOINTS.favorites, {"mealId": meal_id})


async def get_favorite_meals(client: ApiClient) -> ApiResult[list[Meal]]:
    result = await client.get(ENDPOINTS.favorites)
    return _decoded(
        result,
        lambda p: decode_meal_list(p, endpoint="favorites"),
        message="Favorite meals fetched successfully",
    )


async def remove_meal_from_favorites(client: ApiClient, meal_id: str) -> ApiResult[Any]:
    return await client.delete(f"{ENDPOINTS.favorites}/{_segment(meal_id)}")
