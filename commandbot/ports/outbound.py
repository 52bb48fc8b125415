"""Outbound ports — interfaces for external system adapters."""

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from commandbot.domain.models import Identity
from commandbot.ports.inbound import TransportEvents


class CredentialPersistenceError(Exception):
    """Credential state could not be read or written.

    Never swallowed: the process must not carry on as if credentials were saved.
    """


@runtime_checkable
class MessagingTransport(Protocol):
    """One connection to the messaging network."""

    @property
    def identity(self) -> Optional[Identity]: ...

    async def open(self) -> None: ...
    async def send_message(self, recipient: str, text: str) -> None: ...
    async def shutdown(self) -> None: ...


@runtime_checkable
class TransportFactory(Protocol):
    """Builds a fresh transport bound to an event sink."""

    def __call__(
        self,
        credentials: Optional[Dict[str, Any]],
        events: TransportEvents,
    ) -> MessagingTransport: ...


@runtime_checkable
class CredentialStore(Protocol):
    """Durable storage for session credentials."""

    async def load(self) -> Optional[Dict[str, Any]]: ...
    async def save(self, creds: Dict[str, Any]) -> None: ...
