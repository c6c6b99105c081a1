"""Account flows and the local session they leave behind.

`AuthService` is the only writer of the auth token: login stores it, logout
removes it. The `ApiClient` only ever reads it (and purges it on a 401).
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .client import ApiClient
from .config import ENDPOINTS
from .credentials import KeyValueStore, StorageKeys, StoredCredentials
from .decoders import AuthSession, User, decode_login
from .logging_conf import get_logger
from .types import STATUS_DECODE_ERROR, ApiResult, BackendReportedError, DecodeError

__all__ = ["SignupForm", "AuthService"]

logger = get_logger("dining_client.auth")

_SESSION_KEYS = (
    StorageKeys.AUTH_TOKEN,
    StorageKeys.REFRESH_TOKEN,
    StorageKeys.PHONE_NUMBER,
    StorageKeys.USER_DATA,
    StorageKeys.USER_TYPE,
    StorageKeys.IS_LOGGED_IN,
    StorageKeys.USER_EMAIL,
    StorageKeys.USER_NAME,
    StorageKeys.HAS_USER_PROFILE,
    StorageKeys.FORCE_PASSWORD_CHANGE,
    StorageKeys.IS_EMAIL_VERIFIED,
)


@dataclass
class SignupForm:
    """Customer signup form as collected on the device."""

    first_name: str
    last_name: str
    email: str
    phone_number: str
    password: str
    confirm_password: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


def _flag(value: bool) -> str:
    return "true" if value else "false"


class AuthService:
    """Signup, login/logout and password flows against the auth endpoints.

    `client` should be built with the longer auth timeout
    (`config.AUTH_TIMEOUT_S`) and a `StoredCredentials` over the same `store`.
    """

    def __init__(self, client: ApiClient, store: KeyValueStore) -> None:
        self.client = client
        self.store = store
        self.credentials = StoredCredentials(store)

    # ------------------------
    # Registration
    # ------------------------

    async def _role(self) -> str:
        user_type = await self.store.get(StorageKeys.USER_TYPE) or "customer"
        return "user" if user_type == "customer" else "restaurant"

    async def signup(self, form: SignupForm) -> ApiResult[Any]:
        """Register a customer (or restaurant, per the stored user type)."""
        if form.password != form.confirm_password:
            return ApiResult.failure("Passwords do not match", error="Password mismatch")
        body = {
            "username": form.full_name,
            "email": form.email,
            "password": form.password,
            "role": await self._role(),
        }
        result = await self.client.post(ENDPOINTS.signup, body)
        if result.success:
            await self.store.set(StorageKeys.PHONE_NUMBER, form.phone_number)
            await self.store.set(
                StorageKeys.ADDITIONAL_USER_DATA,
                json.dumps(
                    {
                        "firstName": form.first_name,
                        "lastName": form.last_name,
                        "fullName": form.full_name,
                    }
                ),
            )
            logger.info("auth.signup", extra={"event": "signup", "role": body["role"]})
        return result

    async def register_restaurant(
        self,
        *,
        username: str,
        email: str,
        password: str,
        phone_number: str | None = None,
        address: str | None = None,
        city: str | None = None,
    ) -> ApiResult[Any]:
        body = {"username": username, "email": email, "password": password, "role": "restaurant"}
        result = await self.client.post(ENDPOINTS.signup, body)
        if result.success:
            extras = {
                k: v
                for k, v in (("phoneNumber", phone_number), ("address", address), ("city", city))
                if v
            }
            if extras:
                await self.store.set(StorageKeys.ADDITIONAL_RESTAURANT_DATA, json.dumps(extras))
            logger.info("auth.signup", extra={"event": "signup", "role": "restaurant"})
        return result

    # ------------------------
    # Session
    # ------------------------

    async def login(self, email: str, password: str) -> ApiResult[AuthSession]:
        """Log in and persist the session.

        A backend that omits `isEmailVerified` on a successful login is taken
        to mean the address is verified.
        """
        result = await self.client.post(ENDPOINTS.login, {"email": email, "password": password})
        if not result.success:
            return result.without_data()
        try:
            envelope = decode_login(result.data)
        except BackendReportedError as e:
            return ApiResult.failure(str(e), error="Login unsuccessful")
        except DecodeError as e:
            return ApiResult.failure(str(e), error=e.detail, status=STATUS_DECODE_ERROR)

        verified = True if envelope.is_email_verified is None else envelope.is_email_verified
        session = AuthSession(
            token=envelope.token,
            refresh_token=envelope.refresh_token,
            user=User(
                email=email,
                role=await self._role(),
                is_email_verified=verified,
                has_profile=envelope.has_user_profile,
                force_password_change=envelope.force_password_change,
            ),
        )
        await self._store_session(session)
        logger.info(
            "auth.login",
            extra={
                "event": "login",
                "has_profile": envelope.has_user_profile,
                "force_password_change": envelope.force_password_change,
            },
        )
        return ApiResult(
            success=True,
            message=envelope.message or "Login successful",
            data=session,
            status=envelope.status,
        )

    async def _store_session(self, session: AuthSession) -> None:
        user = session.user
        await self.credentials.save(session.token, user.to_wire())
        await self.store.set(StorageKeys.IS_LOGGED_IN, "true")
        await self.store.set(StorageKeys.USER_EMAIL, user.email)
        await self.store.set(StorageKeys.USER_NAME, user.display_name)
        await self.store.set(StorageKeys.HAS_USER_PROFILE, _flag(bool(user.has_profile)))
        await self.store.set(
            StorageKeys.FORCE_PASSWORD_CHANGE, _flag(bool(user.force_password_change))
        )
        await self.store.set(StorageKeys.IS_EMAIL_VERIFIED, _flag(bool(user.is_email_verified)))
        if session.refresh_token:
            await self.store.set(StorageKeys.REFRESH_TOKEN, session.refresh_token)

    async def logout(self) -> ApiResult[Any]:
        """Tell the backend, then always drop the local session."""
        result = await self.client.post(ENDPOINTS.logout, {})
        if not result.success:
            logger.warning(
                "auth.logout_remote_failed",
                extra={"event": "logout_remote_failed", "detail": result.message},
            )
        await self.store.multi_remove(_SESSION_KEYS)
        logger.info("auth.logout", extra={"event": "logout"})
        return ApiResult(success=True, message="Logged out successfully")

    # ------------------------
    # Passwords and verification
    # ------------------------

    async def forgot_password(self, email: str) -> ApiResult[Any]:
        return await self.client.post(ENDPOINTS.forgot_password, {"email": email})

    async def reset_password(self, token: str, new_password: str) -> ApiResult[Any]:
        """Set a new password using the token from the reset email."""
        return await self.client.post(
            ENDPOINTS.reset_password, {"password": new_password}, params={"token": token}
        )

    async def change_password(
        self, current_password: str, new_password: str, confirm_password: str
    ) -> ApiResult[Any]:
        """Change the password of the signed-in user (bearer token required)."""
        if new_password != confirm_password:
            return ApiResult.failure(
                "New password and confirm password do not match", error="Password mismatch"
            )
        return await self.client.post(
            ENDPOINTS.reset_password,
            {
                "currentPassword": current_password,
                "newPassword": new_password,
                "confirmPassword": confirm_password,
            },
        )

    async def change_password_with_temp_password(
        self, email: str, temp_password: str, new_password: str, confirm_password: str
    ) -> ApiResult[Any]:
        """Log in with an emailed temporary password, change it, log out again."""
        if new_password != confirm_password:
            return ApiResult.failure(
                "New password and confirm password do not match", error="Password mismatch"
            )
        login = await self.login(email, temp_password)
        if not login.success:
            return ApiResult.failure(
                "Temporary password is incorrect or expired. Please request a new password reset.",
                error=login.error,
            )
        changed = await self.change_password(temp_password, new_password, confirm_password)
        await self.logout()
        if not changed.success:
            return ApiResult.failure(
                changed.message or "Failed to update password", error=changed.error
            )
        return ApiResult(
            success=True,
            message="Password updated successfully. You can now log in with your new password.",
            data=changed.data,
            status=changed.status,
        )

    async def verify_email(self, token: str) -> ApiResult[Any]:
        """Confirm an email address; success comes from the body's status."""
        result = await self.client.get(ENDPOINTS.verify_email, params={"token": token})
        if not result.success:
            return result
        body = result.data if isinstance(result.data, dict) else {}
        ok = body.get("status") == "success"
        message = body.get("message") or (
            "Email verified successfully" if ok else "Failed to verify email"
        )
        if ok:
            await self.store.set(StorageKeys.IS_EMAIL_VERIFIED, "true")
            return ApiResult(success=True, message=message, data=body, status=body.get("status"))
        return ApiResult.failure(message)

    async def resend_verification_email(self, email: str | None = None) -> ApiResult[Any]:
        email = email or await self.store.get(StorageKeys.USER_EMAIL)
        if not email:
            return ApiResult.failure(
                "No email address found. Please sign up again.", error="Missing email"
            )
        return await self.client.post(ENDPOINTS.resend_verification, {"email": email})

    # ------------------------
    # Local session queries
    # ------------------------

    async def is_authenticated(self) -> bool:
        return bool(await self.credentials.read_token())

    async def get_auth_token(self) -> str | None:
        return await self.credentials.read_token()

    async def has_signed_up_before(self) -> bool:
        return bool(await self.store.get(StorageKeys.USER_DATA))

    async def get_stored_user(self) -> User | None:
        data = await self.credentials.read_user()
        return User.model_validate(data) if data else None
