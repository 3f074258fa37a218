"""Account flows: login, registration, password changes, profile edits.

Input is checked here before the identity provider is called, so a bad form
never reaches it.
"""

from __future__ import annotations

import logging

from tripshare.auth.interface import IdentityProvider
from tripshare.db.profiles import ProfileRepository
from tripshare.errors import ErrorCode, ValidationError
from tripshare.state import User, normalize_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _check_new_password(password: str, confirmation: str) -> None:
    if not password or not confirmation:
        raise ValidationError("password and confirmation are required")
    if password != confirmation:
        raise ValidationError("passwords do not match", code=ErrorCode.PASSWORD_MISMATCH)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must have at least {MIN_PASSWORD_LENGTH} characters")


class AccountService:
    def __init__(self, identity: IdentityProvider, profiles: ProfileRepository) -> None:
        self.identity = identity
        self.profiles = profiles

    async def login(self, email: str, password: str) -> User:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("email and password are required")
        user = await self.identity.authenticate(email, password)
        logger.info("User %s signed in", user["id"])
        return user

    async def register(self, name: str, email: str, password: str, confirmation: str) -> User:
        """Create credentials, then make sure a profile row backs the new user."""
        name = (name or "").strip()
        email = normalize_email(email)
        if not name:
            raise ValidationError("name is required")
        if not email:
            raise ValidationError("email is required", code=ErrorCode.MISSING_EMAIL)
        _check_new_password(password, confirmation)

        user = await self.identity.register(name, email, password)
        if await self.profiles.find_by_id(user["id"]) is None:
            user = await self.profiles.create(name, email, user_id=user["id"])
        logger.info("Registered user %s", user["id"])
        return user

    async def current_user(self) -> User | None:
        return await self.identity.current_session()

    async def logout(self) -> None:
        await self.identity.sign_out()

    async def request_password_reset(self, email: str) -> None:
        email = normalize_email(email)
        if not email:
            raise ValidationError("email is required", code=ErrorCode.MISSING_EMAIL)
        await self.identity.reset_password(email)

    async def change_password(self, new_password: str, confirmation: str) -> None:
        _check_new_password(new_password, confirmation)
        await self.identity.set_password(new_password)

    async def update_name(self, user: User, name: str) -> User:
        updated = await self.profiles.update_name(user["id"], name)
        logger.info("User %s renamed", user["id"])
        return updated
