"""In-memory use-cases behind the mock dining backend.

State lives in one `BackendState` per app instance (accounts, favorites,
dietary profiles and a small seeded catalog). Use-cases return plain dicts in
the backend's wire shape; failures raise `ServiceError` subclasses which the
API layer turns into `{"status": "error", "message": ...}` responses.
"""
from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import uuid4

from dining_client.logging_conf import get_logger

from ..domain.tokens import TokenError, TokenPurpose, decode_session_token, encode_session_token

logger = get_logger("mock_backend.service")


def now_ms() -> int:
    """Return current time in epoch milliseconds."""
    return int(time.time() * 1000)


def _iso(ms: int) -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(ms / 1000))


def _hash_password(password: str) -> str:
    return hashlib.blake2b(password.encode("utf-8"), digest_size=32).hexdigest()


# ------------------------
# Errors
# ------------------------
class ServiceError(ValueError):
    status_code: int = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class UnauthorizedError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


# ------------------------
# State
# ------------------------
@dataclass
class Account:
    id: str
    username: str
    email: str
    role: str
    password_hash: str
    created_at_ms: int
    is_email_verified: bool = False
    has_profile: bool = False
    force_password_change: bool = False

    def public(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "isEmailVerified": self.is_email_verified,
            "createdAt": _iso(self.created_at_ms),
        }


@dataclass
class BackendState:
    token_secret: str
    cold_start_requests: int = 0
    served: int = 0
    accounts: dict[str, Account] = field(default_factory=dict)
    favorites: dict[str, list[str]] = field(default_factory=dict)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)
    restaurants: list[dict[str, Any]] = field(default_factory=list)
    meals: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def seeded(cls, *, token_secret: str, cold_start_requests: int = 0) -> BackendState:
        state = cls(token_secret=token_secret, cold_start_requests=cold_start_requests)
        _seed_catalog(state)
        return state


def _make_meal(
    restaurant: dict[str, Any],
    *,
    name: str,
    description: str,
    price: Decimal,
    tags: list[str],
    calories: int,
    protein: int,
) -> dict[str, Any]:
    stamp = _iso(now_ms())
    return {
        "id": str(uuid4()),
        "name": name,
        "description": description,
        "price": f"{price:.2f}",
        "isAvailable": 1,
        "restaurantId": restaurant["restaurantId"],
        "createdAt": stamp,
        "updatedAt": stamp,
        "dietaryTags": tags,
        "allergens": [],
        "nutritionalInfo": {"calories": calories, "protein": protein},
        "restaurant": {
            "id": restaurant["restaurantId"],
            "name": restaurant["restaurantName"],
            "location": restaurant["location"],
        },
    }


def _make_restaurant(owner: Account, *, name: str, location: str, cuisine: str) -> dict[str, Any]:
    return {
        "restaurantId": str(uuid4()),
        "restaurantName": name,
        "location": location,
        "cuisineType": cuisine,
        "contactEmail": owner.email,
        "status": "approved",
        "isActive": True,
        "owner": {"id": owner.id, "username": owner.username, "email": owner.email},
    }


def _seed_catalog(state: BackendState) -> None:
    owner = _new_account(
        state,
        username="Green Bowl",
        email="owner@greenbowl.test",
        password="greenbowl",
        role="restaurant",
    )
    owner.is_email_verified = True
    green = _make_restaurant(owner, name="Green Bowl", location="Lagos", cuisine="Healthy")
    state.restaurants.append(green)
    state.meals.extend(
        [
            _make_meal(
                green,
                name="Quinoa Power Bowl",
                description="Quinoa, chickpeas, roasted vegetables",
                price=Decimal("12.50"),
                tags=["vegan", "high-protein"],
                calories=520,
                protein=22,
            ),
            _make_meal(
                green,
                name="Grilled Chicken Salad",
                description="Chicken breast, greens, lemon dressing",
                price=Decimal("10.00"),
                tags=["high-protein", "low-carb", "gluten-free"],
                calories=410,
                protein=38,
            ),
            _make_meal(
                green,
                name="Oat Berry Breakfast",
                description="Overnight oats with berries",
                price=Decimal("6.75"),
                tags=["vegetarian"],
                calories=330,
                protein=11,
            ),
        ]
    )


# ------------------------
# Accounts
# ------------------------

def _new_account(state: BackendState, *, username: str, email: str, password: str, role: str) -> Account:
    account = Account(
        id=str(uuid4()),
        username=username,
        email=email.lower(),
        role=role,
        password_hash=_hash_password(password),
        created_at_ms=now_ms(),
    )
    state.accounts[account.email] = account
    return account


def register(state: BackendState, *, username: str, email: str, password: str, role: str) -> dict:
    """Create an account; restaurant accounts also get an empty restaurant."""
    if role not in ("user", "restaurant"):
        raise ServiceError(f"Unsupported role: {role}")
    if email.lower() in state.accounts:
        raise ConflictError("An account with this email already exists")
    account = _new_account(state, username=username, email=email, password=password, role=role)
    if role == "restaurant":
        state.restaurants.append(
            _make_restaurant(account, name=username, location="", cuisine="")
        )
    logger.info("account.register", extra={"event": "account_register", "role": role})
    return {
        "status": "success",
        "message": "Registration successful. Please verify your email.",
    }


def login(state: BackendState, *, email: str, password: str) -> dict:
    account = state.accounts.get(email.lower())
    if account is None or account.password_hash != _hash_password(password):
        raise UnauthorizedError("Invalid email or password")
    token = issue_token(state, account, purpose=TokenPurpose.SESSION)
    logger.info("account.login", extra={"event": "account_login", "role": account.role})
    return {
        "status": "success",
        "message": "Login successful",
        "token": token,
        "hasUserProfile": account.has_profile,
        "forcePasswordChange": account.force_password_change,
        "isEmailVerified": account.is_email_verified,
    }


def issue_token(state: BackendState, account: Account, *, purpose: str) -> str:
    return encode_session_token(
        email=account.email,
        role=account.role,
        issued_at_ms=now_ms(),
        secret=state.token_secret,
        purpose=purpose,
    )


def resolve_token(state: BackendState, token: str, *, purpose: str = TokenPurpose.SESSION) -> Account:
    """Return the account a token belongs to, or raise `UnauthorizedError`."""
    try:
        payload = decode_session_token(token, secret=state.token_secret)
    except TokenError as e:
        logger.info("token.rejected", extra={"event": "token_rejected", "code": e.code})
        raise UnauthorizedError("Invalid or expired token") from e
    if payload.pur != purpose:
        raise UnauthorizedError("Token cannot be used for this action")
    account = state.accounts.get(payload.sub)
    if account is None:
        raise UnauthorizedError("Account no longer exists")
    return account


def reset_password_with_token(state: BackendState, *, token: str, password: str) -> dict:
    account = resolve_token(state, token, purpose=TokenPurpose.RESET)
    account.password_hash = _hash_password(password)
    account.force_password_change = False
    return {"status": "success", "message": "Password reset successfully"}


def change_password(
    state: BackendState, account: Account, *, current: str, new: str, confirm: str
) -> dict:
    if account.password_hash != _hash_password(current):
        raise ServiceError("Current password is incorrect")
    if new != confirm:
        raise ServiceError("New password and confirm password do not match")
    account.password_hash = _hash_password(new)
    account.force_password_change = False
    return {"status": "success", "message": "Password updated successfully"}


def verify_email(state: BackendState, *, token: str) -> dict:
    account = resolve_token(state, token, purpose=TokenPurpose.VERIFY)
    account.is_email_verified = True
    return {"status": "success", "message": "Email verified successfully"}


def update_profile(account: Account, *, username: str | None) -> dict:
    if username:
        account.username = username
    return {"status": "success", "message": "Profile updated", "data": account.public()}


# ------------------------
# Catalog
# ------------------------

def _meal_list(meals: list[dict[str, Any]]) -> dict:
    return {"status": "success", "results": len(meals), "data": meals}


def list_meals(state: BackendState) -> dict:
    return _meal_list(state.meals)


def list_restaurants(state: BackendState) -> dict:
    return {
        "status": "success",
        "results": len(state.restaurants),
        "data": {"restaurants": state.restaurants},
    }


def get_restaurant(state: BackendState, *, restaurant_id: str) -> dict:
    for restaurant in state.restaurants:
        if restaurant["restaurantId"] == restaurant_id:
            return {"status": "success", "data": restaurant}
    raise NotFoundError("Restaurant not found")


def list_restaurant_meals(state: BackendState, *, restaurant_id: str) -> dict:
    get_restaurant(state, restaurant_id=restaurant_id)
    return _meal_list([m for m in state.meals if m["restaurantId"] == restaurant_id])


def add_meal(
    state: BackendState,
    account: Account,
    *,
    name: str,
    description: str,
    price: Decimal,
    dietary_tags: list[str],
) -> dict:
    if account.role != "restaurant":
        raise ForbiddenError("Only restaurant accounts can add meals")
    owned = [r for r in state.restaurants if r["owner"]["email"] == account.email]
    if not owned:
        raise NotFoundError("No restaurant found for this account")
    meal = _make_meal(
        owned[0],
        name=name,
        description=description,
        price=price,
        tags=dietary_tags,
        calories=0,
        protein=0,
    )
    state.meals.append(meal)
    logger.info("meal.add", extra={"event": "meal_add", "meal_id": meal["id"]})
    return {"status": "success", "message": "Meal created", "data": meal}


def _owned_meal(state: BackendState, account: Account, meal_id: str) -> dict[str, Any]:
    meal = _find_meal(state, meal_id)
    owner = next(
        (r["owner"]["email"] for r in state.restaurants if r["restaurantId"] == meal["restaurantId"]),
        None,
    )
    if owner != account.email:
        raise ForbiddenError("You can only manage meals of your own restaurant")
    return meal


def update_meal(
    state: BackendState, account: Account, *, meal_id: str, is_available: bool | None
) -> dict:
    meal = _owned_meal(state, account, meal_id)
    if is_available is not None:
        meal["isAvailable"] = 1 if is_available else 0
    meal["updatedAt"] = _iso(now_ms())
    return {"status": "success", "message": "Meal updated", "data": meal}


def delete_meal(state: BackendState, account: Account, *, meal_id: str) -> dict:
    meal = _owned_meal(state, account, meal_id)
    state.meals.remove(meal)
    for favorites in state.favorites.values():
        if meal_id in favorites:
            favorites.remove(meal_id)
    logger.info("meal.delete", extra={"event": "meal_delete", "meal_id": meal_id})
    return {"status": "success", "message": "Meal deleted"}


# ------------------------
# Favorites and dietary profile
# ------------------------

def _find_meal(state: BackendState, meal_id: str) -> dict[str, Any]:
    for meal in state.meals:
        if meal["id"] == meal_id:
            return meal
    raise NotFoundError("Meal not found")


def add_favorite(state: BackendState, account: Account, *, meal_id: str) -> dict:
    _find_meal(state, meal_id)
    favorites = state.favorites.setdefault(account.email, [])
    if meal_id not in favorites:
        favorites.append(meal_id)
    return {"status": "success", "message": "Meal added to favorites"}


def list_favorites(state: BackendState, account: Account) -> dict:
    ids = state.favorites.get(account.email, [])
    return _meal_list([m for m in state.meals if m["id"] in ids])


def remove_favorite(state: BackendState, account: Account, *, meal_id: str) -> dict:
    favorites = state.favorites.get(account.email, [])
    if meal_id not in favorites:
        raise NotFoundError("Meal is not in favorites")
    favorites.remove(meal_id)
    return {"status": "success", "message": "Meal removed from favorites"}


def save_dietary_profile(state: BackendState, account: Account, *, profile: dict[str, Any]) -> dict:
    state.profiles[account.email] = profile
    account.has_profile = True
    return {"status": "success", "message": "Dietary preferences saved"}


def delete_dietary_profile(state: BackendState, account: Account) -> dict:
    if state.profiles.pop(account.email, None) is None:
        raise NotFoundError("No dietary profile found")
    account.has_profile = False
    return {"status": "success", "message": "Profile deleted"}


def personalized_meals(state: BackendState, account: Account) -> dict:
    """Meals carrying every tag in the user's dietary restrictions."""
    profile = state.profiles.get(account.email)
    if profile is None:
        raise NotFoundError("Set your dietary preferences first")
    wanted = set(profile.get("dietaryRestrictions") or [])
    return _meal_list([m for m in state.meals if wanted.issubset(m["dietaryTags"])])
