"""Inbound port — raw transport events delivered to the session manager."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@dataclass
class ConnectionUpdate:
    """Connectivity change reported by a transport.

    `connection` is "connecting", "open", "close" or None (e.g. a pairing-only
    update that just carries `qr`).
    """

    connection: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    qr: Optional[str] = None


@dataclass
class CredentialsUpdate:
    """New credential material issued by the handshake."""

    creds: Dict[str, Any]


@dataclass
class RawMessage:
    """Transport-agnostic message as received, before filtering."""

    remote_id: str
    from_me: bool = False
    has_payload: bool = True
    conversation: Optional[str] = None
    extended_text: Optional[str] = None
    image_caption: Optional[str] = None
    message_id: Optional[str] = None


@dataclass
class MessagesUpsert:
    """Batch of messages. `type` is "notify" for live delivery, "append" for backfill."""

    type: str
    messages: List[RawMessage] = field(default_factory=list)


@runtime_checkable
class TransportEvents(Protocol):
    """Callbacks a transport invokes, serially, on the event loop."""

    async def on_connection_update(self, update: ConnectionUpdate) -> None: ...
    async def on_credentials_update(self, update: CredentialsUpdate) -> None: ...
    async def on_messages_upsert(self, upsert: MessagesUpsert) -> None: ...
