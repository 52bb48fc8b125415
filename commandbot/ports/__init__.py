"""Port interfaces (Hexagonal Architecture)."""

from commandbot.ports.inbound import (
    ConnectionUpdate,
    CredentialsUpdate,
    MessagesUpsert,
    RawMessage,
    TransportEvents,
)
from commandbot.ports.outbound import (
    CredentialPersistenceError,
    CredentialStore,
    MessagingTransport,
    TransportFactory,
)

__all__ = [
    "ConnectionUpdate",
    "CredentialsUpdate",
    "MessagesUpsert",
    "RawMessage",
    "TransportEvents",
    "CredentialPersistenceError",
    "CredentialStore",
    "MessagingTransport",
    "TransportFactory",
]
