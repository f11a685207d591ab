"""
Authentication and capability checks.

* Passwords are hashed with bcrypt through ``passlib``.
* Login issues an opaque 64-hex-character bearer token stored with an
  expiry; there is no refresh or revocation.
* Each administrative entry point names a ``Capability``; a principal's
  role decides which capabilities it holds (``ROLE_CAPABILITIES``).
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from passlib.context import CryptContext

from smart_taxis.domain.entities import AccessToken, User, utcnow
from smart_taxis.domain.enums import ROLE_CAPABILITIES, Capability, UserRole
from smart_taxis.infrastructure.store import DispatchStore

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Credential missing, wrong, or expired."""


class MissingCredentials(AuthenticationError):
    pass


class InvalidCredentials(AuthenticationError):
    pass


class InvalidToken(AuthenticationError):
    pass


class PermissionDenied(Exception):
    """Authenticated, but the role lacks the required capability."""


class DuplicateUser(Exception):
    pass


@dataclass(frozen=True)
class Principal:
    user: User

    @property
    def role(self) -> UserRole:
        return self.user.role

    @property
    def capabilities(self) -> frozenset[Capability]:
        return ROLE_CAPABILITIES.get(self.user.role, frozenset())

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities


def authorize(principal: Optional[Principal], capability: Capability) -> Principal:
    """Return *principal* if it holds *capability*; raise otherwise."""
    if principal is None:
        raise MissingCredentials("Access token required")
    if not principal.can(capability):
        raise PermissionDenied("Insufficient permissions")
    return principal


class AuthService:
    def __init__(
        self,
        store: DispatchStore,
        token_ttl_minutes: int = 24 * 60,
        hash_rounds: int = 12,
    ):
        self.store = store
        self.token_ttl = timedelta(minutes=token_ttl_minutes)
        self.pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=hash_rounds
        )

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        return self.pwd_context.verify(password, password_hash)

    async def issue_token(self, user: User) -> AccessToken:
        now = utcnow()
        token = AccessToken(
            token=secrets.token_hex(32),
            user_id=user.id,
            expires_at=now + self.token_ttl,
            created_at=now,
        )
        await self.store.save_token(token)
        return token

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.DRIVER,
        driver_id: Optional[int] = None,
    ) -> tuple[User, AccessToken]:
        if await self.store.find_user(username) or await self.store.find_user(email):
            raise DuplicateUser("Username or email already exists")

        user = await self.store.add_user(
            User(
                username=username,
                email=email,
                password_hash=self.hash_password(password),
                role=role,
                driver_id=driver_id,
            )
        )
        logger.info("User %s registered with role %s", user.username, user.role.value)
        return user, await self.issue_token(user)

    async def login(self, login: str, password: str) -> tuple[User, AccessToken]:
        user = await self.store.find_user(login)
        if user is None or not self.verify_password(password, user.password_hash):
            logger.info("Failed login for %r", login)
            raise InvalidCredentials("Invalid credentials")
        return user, await self.issue_token(user)

    async def authenticate(self, token_value: Optional[str]) -> Principal:
        if not token_value:
            raise MissingCredentials("Access token required")
        token = await self.store.get_token(token_value)
        if token is None or token.is_expired():
            raise InvalidToken("Invalid or expired token")
        user = await self.store.get_user(token.user_id)
        if user is None:
            raise InvalidToken("Invalid or expired token")
        return Principal(user=user)

    async def ensure_admin(self, username: str, email: str, password: str) -> User:
        """Create the bootstrap admin unless that login already exists."""
        existing = await self.store.find_user(username)
        if existing is not None:
            return existing
        user, _ = await self.register(username, email, password, role=UserRole.ADMIN)
        return user
