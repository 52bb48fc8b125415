"""Status reporter — read-only view over the Session."""

import time
from typing import Any, Callable, Dict, Optional

from commandbot.domain.models import Session


class StatusReporter:
    """Answers health queries from last-known Session values.

    Only reads the Session; the session manager is the single writer.
    """

    def __init__(self, session: Session, clock: Callable[[], float] = time.monotonic):
        self._session = session
        self._clock = clock

    @property
    def connected(self) -> bool:
        return self._session.connected

    @property
    def state(self) -> str:
        return self._session.state.value

    @property
    def identity_name(self) -> Optional[str]:
        identity = self._session.identity
        return identity.name if identity else None

    @property
    def identity_id(self) -> Optional[str]:
        identity = self._session.identity
        return identity.id if identity else None

    @property
    def pairing_payload(self) -> Optional[str]:
        return self._session.pairing_payload

    @property
    def credentials_healthy(self) -> bool:
        return self._session.credentials_healthy

    @property
    def last_disconnect(self) -> Optional[int]:
        return self._session.last_disconnect

    def uptime(self) -> float:
        """Seconds since process start."""
        return max(self._clock() - self._session.started_at, 0.0)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "connected": self.connected,
            "identity": self.identity_name,
            "last_disconnect": self.last_disconnect,
            "retry_count": self._session.retry_count,
            "pairing_pending": self.pairing_payload is not None,
            "credentials_healthy": self.credentials_healthy,
            "uptime": self.uptime(),
        }
