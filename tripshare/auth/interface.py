from abc import ABC, abstractmethod

from tripshare.state import User


class IdentityProvider(ABC):
    """Credential storage and sessions. Failures raise AuthenticationError."""

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> User: ...

    @abstractmethod
    async def register(self, name: str, email: str, password: str) -> User: ...

    @abstractmethod
    async def current_session(self) -> User | None: ...

    @abstractmethod
    async def sign_out(self) -> None: ...

    @abstractmethod
    async def reset_password(self, email: str) -> None: ...

    @abstractmethod
    async def set_password(self, new_password: str) -> None: ...
