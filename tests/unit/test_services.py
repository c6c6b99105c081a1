from __future__ import annotations

import json

import pytest

from dining_client import services
from dining_client.decoders import MealPlan, PlannedMeal
from tests.conftest import ScriptedBackend
from tests.unit.test_decoders import MEAL, RESTAURANT


class TestCatalog:
    @pytest.mark.asyncio
    async def test_meals_are_decoded(self, make_client) -> None:
        script = ScriptedBackend((200, {"status": "success", "results": 1, "data": [MEAL]}))
        async with make_client(script) as api:
            result = await services.get_all_meals(api)
        assert result.success is True
        assert result.message == "Meals fetched successfully"
        assert result.data[0].name == "Quinoa Power Bowl"

    @pytest.mark.asyncio
    async def test_malformed_payload_is_a_decode_error_result(self, make_client) -> None:
        script = ScriptedBackend((200, {"status": "success", "data": {"meals": []}}))
        async with make_client(script) as api:
            result = await services.get_all_meals(api)
        assert result.success is False
        assert result.status == "decode_error"
        assert result.data is None

    @pytest.mark.asyncio
    async def test_error_envelope_on_200(self, make_client) -> None:
        script = ScriptedBackend((200, {"status": "error", "message": "Catalog offline"}))
        async with make_client(script) as api:
            result = await services.get_all_restaurants(api)
        assert result.success is False
        assert result.status == "error"
        assert result.message == "Catalog offline"

    @pytest.mark.asyncio
    async def test_transport_failure_passes_through(self, make_client) -> None:
        script = ScriptedBackend((404, {"status": "error", "message": "Restaurant not found"}))
        async with make_client(script) as api:
            result = await services.get_restaurant_by_id(api, "r/1")
        assert result.success is False
        assert result.message == "Restaurant not found"
        assert script.requests[0].url.raw_path == b"/api/restaurants/r%2F1"

    @pytest.mark.asyncio
    async def test_bare_restaurant_detail(self, make_client) -> None:
        async with make_client(ScriptedBackend((200, RESTAURANT))) as api:
            result = await services.get_restaurant_by_id(api, "r1")
        assert result.success is True
        assert result.data.status == "approved"
        assert result.message == "Restaurant fetched successfully"

    @pytest.mark.asyncio
    async def test_restaurant_meals(self, make_client) -> None:
        script = ScriptedBackend((200, [MEAL]))
        async with make_client(script) as api:
            result = await services.get_meals_by_restaurant(api, "r1")
        assert result.data[0].id == "m1"
        assert script.requests[0].url.path == "/api/restaurants/r1/meals"

    @pytest.mark.asyncio
    async def test_restaurants(self, make_client) -> None:
        payload = {"status": "success", "data": {"restaurants": [RESTAURANT]}}
        async with make_client(ScriptedBackend((200, payload))) as api:
            result = await services.get_all_restaurants(api)
        assert [r.restaurant_id for r in result.data] == ["r1"]

    @pytest.mark.asyncio
    async def test_add_meal_sends_only_backend_fields(self, make_client) -> None:
        script = ScriptedBackend((201, {"status": "success", "message": "Meal created"}))
        async with make_client(script) as api:
            result = await services.add_meal_to_restaurant(
                api,
                name="Bowl",
                description="Tasty",
                price="9.99",
                dietary_tags=["vegan"],
                category="lunch",
                days=["mon"],
            )
        assert result.success is True
        assert json.loads(script.requests[0].content) == {
            "name": "Bowl",
            "description": "Tasty",
            "price": 9.99,
            "dietaryTags": ["vegan"],
        }


class TestProfileAndFavorites:
    def test_meal_plan_maps_to_dietary_preferences(self) -> None:
        plan = MealPlan(
            meal_goal="Weight Loss",
            restrictions=["vegetarian", "gluten-free"],
            meals=[PlannedMeal(type="lunch", name="Salad")],
        )
        prefs = services.meal_plan_to_dietary_preferences(plan)
        assert prefs.health_goal == "weight_loss"
        assert prefs.to_wire() == {
            "healthGoal": "weight_loss",
            "dietaryRestrictions": ["vegetarian", "gluten-free"],
            "preferredMealTags": [],
        }

    @pytest.mark.asyncio
    async def test_save_preferences_posts_camel_case(self, make_client) -> None:
        script = ScriptedBackend((200, {"status": "success", "message": "saved"}))
        plan = MealPlan(meal_goal="Muscle Gain")
        async with make_client(script) as api:
            result = await services.save_dietary_preferences(
                api, services.meal_plan_to_dietary_preferences(plan)
            )
        assert result.success is True
        assert script.requests[0].url.path == "/api/user/profile"
        assert json.loads(script.requests[0].content)["healthGoal"] == "muscle_gain"

    @pytest.mark.asyncio
    async def test_favorites_round_trip_paths(self, make_client) -> None:
        script = ScriptedBackend(
            (200, {"status": "success", "message": "added"}),
            (200, {"status": "success", "data": [MEAL]}),
            (200, {"status": "success", "message": "removed"}),
        )
        async with make_client(script) as api:
            added = await services.add_meal_to_favorites(api, "m1")
            listed = await services.get_favorite_meals(api)
            removed = await services.remove_meal_from_favorites(api, "m1")
        assert added.success and listed.success and removed.success
        assert removed.message == "removed"
        assert [r.method for r in script.requests] == ["POST", "GET", "DELETE"]
        assert script.requests[2].url.path == "/api/users/favorites/m1"
        assert json.loads(script.requests[0].content) == {"mealId": "m1"}

    @pytest.mark.asyncio
    async def test_user_meals_and_profile_delete(self, make_client) -> None:
        script = ScriptedBackend((200, [MEAL]), (200, {"status": "success", "message": "Profile deleted"}))
        async with make_client(script) as api:
            meals = await services.get_user_meals(api)
            deleted = await services.delete_user_profile(api)
        assert meals.data[0].id == "m1"
        assert deleted.message == "Profile deleted"

    def test_every_space_in_the_goal_becomes_an_underscore(self) -> None:
        prefs = services.meal_plan_to_dietary_preferences(MealPlan(meal_goal="Balanced Nutrition Plan"))
        assert prefs.health_goal == "balanced_nutrition_plan"


class TestMenuManagement:
    @pytest.mark.asyncio
    async def test_set_meal_availability_puts_flag_and_decodes_meal(self, make_client) -> None:
        body = {"status": "success", "message": "Meal updated", "data": {**MEAL, "isAvailable": 0}}
        script = ScriptedBackend((200, body))
        async with make_client(script) as api:
            result = await services.set_meal_availability(api, "m1", False)
        request = script.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/api/meals/m1"
        assert json.loads(request.content) == {"isAvailable": False}
        assert result.success is True
        assert result.message == "Meal updated"
        assert result.data.is_available == 0

    @pytest.mark.asyncio
    async def test_delete_meal(self, make_client) -> None:
        script = ScriptedBackend((403, {"status": "error", "message": "Not your meal"}))
        async with make_client(script) as api:
            result = await services.delete_meal(api, "m 1")
        assert script.requests[0].method == "DELETE"
        assert script.requests[0].url.raw_path == b"/api/meals/m%201"
        assert result.success is False
        assert result.message == "Not your meal"


class TestAccountProfile:
    USER = {"id": "u1", "username": "Ada", "email": "ada@example.test", "role": "user"}

    @pytest.mark.asyncio
    async def test_get_profile(self, make_client) -> None:
        script = ScriptedBackend((200, {"status": "success", "data": self.USER}))
        async with make_client(script) as api:
            result = await services.get_profile(api)
        assert script.requests[0].url.path == "/api/users/profile"
        assert result.data.username == "Ada"

    @pytest.mark.asyncio
    async def test_update_profile(self, make_client) -> None:
        body = {"status": "success", "message": "Profile updated", "data": {**self.USER, "username": "Ada L"}}
        script = ScriptedBackend((200, body))
        async with make_client(script) as api:
            result = await services.update_profile(api, username="Ada L")
        assert script.requests[0].method == "PUT"
        assert json.loads(script.requests[0].content) == {"username": "Ada L"}
        assert result.message == "Profile updated"
        assert result.data.display_name == "Ada L"
