"""Admin authentication: login, logout, token verification and password reset."""

from __future__ import annotations

from typing import Optional

import httpx

from gym_portal.core.exceptions import BackendError, FormValidationError, PortalError
from gym_portal.core.logging_config import get_logger
from gym_portal.services.api_client import BackendClient
from gym_portal.services.navigation import Navigator, Notifier
from gym_portal.services.storage import TOKEN_KEY
from gym_portal.services.validation import validate_password_reset
from gym_portal.utils.enums import NoticeLevel, View

logger = get_logger(__name__)


class AuthService:
    def __init__(self, client: BackendClient, notifier: Notifier, navigator: Optional[Navigator] = None):
        self.client = client
        self.notifier = notifier
        self.navigator = navigator

    async def login(self, email: str, password: str) -> str:
        try:
            token = await self.client.login(email.strip().lower(), password)
        except BackendError as e:
            message = e.message or "Invalid email or password"
            self.notifier.notify(NoticeLevel.error, message)
            raise
        except httpx.HTTPError as e:
            logger.error(f"Login did not reach the backend: {e}")
            self.notifier.notify(NoticeLevel.error, "Login failed. Please try again.")
            raise
        await self.client.store.set(TOKEN_KEY, token)
        self.notifier.notify(NoticeLevel.success, "Login successful!")
        if self.navigator:
            self.navigator.navigate(View.admin_dashboard)
        return token

    async def logout(self) -> None:
        """Forget the stored token; the backend keeps no session to end."""
        await self.client.store.delete(TOKEN_KEY)
        if self.navigator:
            self.navigator.navigate(View.admin_login)

    async def verify(self) -> bool:
        """True when the stored token is still accepted; any failure clears it."""
        if not await self.client.store.get(TOKEN_KEY):
            return False
        try:
            return await self.client.verify_auth()
        except (PortalError, httpx.HTTPError) as e:
            logger.info(f"Auth verification failed: {e}")
            await self.client.store.delete(TOKEN_KEY)
            return False

    async def reset_password(self, token: str, password: str, confirm_password: str) -> None:
        """Reset the admin password, then send the user back to the login view."""
        try:
            validate_password_reset(password, confirm_password)
        except FormValidationError as e:
            self.notifier.notify(NoticeLevel.error, e.message)
            raise
        if not token:
            self.notifier.notify(NoticeLevel.error, "Invalid reset token")
            raise FormValidationError({"token": "Invalid reset token"}, message="Invalid reset token")

        try:
            await self.client.reset_password(token, password)
        except BackendError as e:
            self.notifier.notify(NoticeLevel.error, e.message or "Failed to reset password")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Password reset did not reach the backend: {e}")
            self.notifier.notify(NoticeLevel.error, "Failed to reset password")
            raise
        self.notifier.notify(NoticeLevel.success, "Password has been reset successfully!")
        if self.navigator:
            self.navigator.navigate(View.admin_login)

