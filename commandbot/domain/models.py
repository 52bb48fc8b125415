"""Domain data models — pure Python dataclasses."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    TERMINAL = "terminal"  # logged out, credentials must be re-issued


class DisconnectReason:
    """Status codes carried by a closed connection."""

    CONNECTION_CLOSED = 428
    CONNECTION_LOST = 408
    LOGGED_OUT = 401


@dataclass
class Identity:
    id: str
    name: Optional[str] = None


@dataclass
class Session:
    """The one logical connection to the messaging network."""

    state: ConnectionState = ConnectionState.DISCONNECTED
    identity: Optional[Identity] = None
    last_disconnect: Optional[int] = None
    retry_count: int = 0
    pairing_payload: Optional[str] = None
    credentials_healthy: bool = True
    started_at: float = field(default_factory=time.monotonic)

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED


@dataclass
class InboundMessage:
    """Canonical (sender, text) envelope that reaches the dispatcher."""

    sender: str
    text: str
    from_me: bool = False


@dataclass
class Command:
    """Parsed `!name args...` request."""

    name: str  # lower-cased
    args: List[str]  # original casing


@dataclass
class OutboundReply:
    recipient: str
    text: str
