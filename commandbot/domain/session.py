"""Connection session manager — lifecycle of the single messaging connection.

State machine:
    disconnected -> connecting -> connected
    connected -> disconnected            (any drop)
    disconnected -> connecting           (scheduled retry)
    disconnected -> terminal             (logged out; absorbing)

All transport events arrive serially on the event loop. Each connect() bumps
a generation counter; events from a superseded transport are ignored so two
sessions can never be live at once.
"""

import asyncio
import sys
from typing import Optional, Protocol, Set

from commandbot.domain.commands import CommandDispatcher, ready_message
from commandbot.domain.message_filter import filter_upsert
from commandbot.domain.models import ConnectionState, DisconnectReason, Session
from commandbot.ports.inbound import ConnectionUpdate, CredentialsUpdate, MessagesUpsert
from commandbot.ports.outbound import (
    CredentialPersistenceError,
    CredentialStore,
    MessagingTransport,
    TransportFactory,
)


def _log(msg: str):
    print(msg, file=sys.stderr)


class RetryPolicy(Protocol):
    def delay(self, attempt: int) -> float: ...


class FixedDelay:
    """Same delay for every attempt."""

    def __init__(self, seconds: float = 5.0):
        self.seconds = seconds

    def delay(self, attempt: int) -> float:
        return self.seconds


class ExponentialBackoff:
    """base * factor**(attempt-1), capped at `maximum`."""

    def __init__(self, base: float = 5.0, factor: float = 2.0, maximum: float = 300.0):
        self.base = base
        self.factor = factor
        self.maximum = maximum

    def delay(self, attempt: int) -> float:
        return min(self.base * self.factor ** max(attempt - 1, 0), self.maximum)


class _GenerationEvents:
    """Event sink handed to one transport; drops events once it is superseded."""

    def __init__(self, manager: "SessionManager", generation: int):
        self._manager = manager
        self._generation = generation

    def _current(self) -> bool:
        return self._manager.generation == self._generation

    async def on_connection_update(self, update: ConnectionUpdate) -> None:
        if self._current():
            await self._manager.on_connection_update(update)

    async def on_credentials_update(self, update: CredentialsUpdate) -> None:
        # Persisted even from a superseded transport; the material stays valid.
        await self._manager.on_credentials_update(update)

    async def on_messages_upsert(self, upsert: MessagesUpsert) -> None:
        if self._current():
            await self._manager.on_messages_upsert(upsert)


class SessionManager:
    """Owns the Session: connect, classify disconnects, retry, route messages.

    The only writer of Session fields; StatusReporter reads the same object.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        credential_store: CredentialStore,
        dispatcher: CommandDispatcher,
        session: Optional[Session] = None,
        retry_policy: Optional[RetryPolicy] = None,
        notify_recipient: Optional[str] = None,
    ):
        self.session = session if session is not None else Session()
        self._factory = transport_factory
        self._store = credential_store
        self._dispatcher = dispatcher
        self._retry_policy = retry_policy or FixedDelay(5.0)
        self._notify_recipient = notify_recipient
        self._transport: Optional[MessagingTransport] = None
        self._generation = 0
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._reply_tasks: Set[asyncio.Task] = set()
        self._closing = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def transport(self) -> Optional[MessagingTransport]:
        return self._transport

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None

    # -- connect / retry --

    async def connect(self) -> None:
        """Start a fresh connection, superseding any previous one.

        Transport failures become a scheduled retry. Only an unreadable
        credential store raises.
        """
        self._cancel_retry()
        if self.session.state == ConnectionState.TERMINAL:
            _log("[session] logged out, refusing to reconnect until credentials are re-issued")
            return
        if self._closing:
            return

        self._generation += 1
        generation = self._generation
        await self._close_transport()

        self.session.state = ConnectionState.CONNECTING
        try:
            credentials = await self._store.load()
        except CredentialPersistenceError as e:
            self.session.credentials_healthy = False
            self.session.state = ConnectionState.TERMINAL
            _log(f"[session] FATAL: stored credentials unreadable: {e}")
            raise

        if credentials is None:
            _log("[session] no stored credentials, starting pairing flow")

        try:
            transport = self._factory(credentials, _GenerationEvents(self, generation))
            self._transport = transport
            await transport.open()
        except Exception as e:
            if generation != self._generation:
                return
            _log(f"[session] connect failed: {e}")
            self.session.state = ConnectionState.DISCONNECTED
            self._schedule_retry()

    def _schedule_retry(self):
        self._cancel_retry()
        if self._closing:
            return
        self.session.retry_count += 1
        delay = self._retry_policy.delay(self.session.retry_count)
        _log(f"[session] reconnecting in {delay:g} seconds (attempt {self.session.retry_count})")
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(delay, self._fire_retry)

    def _cancel_retry(self):
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _fire_retry(self):
        self._retry_handle = None
        self._connect_task = asyncio.create_task(self.connect())
        self._connect_task.add_done_callback(self._on_connect_done)

    @staticmethod
    def _on_connect_done(task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _log(f"[session] reconnect aborted: {exc}")

    async def _close_transport(self):
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            await transport.shutdown()
        except Exception as e:
            _log(f"[session] closing previous transport failed: {e}")

    # -- transport events --

    async def on_connection_update(self, update: ConnectionUpdate) -> None:
        if update.connection == "connecting":
            self.session.state = ConnectionState.CONNECTING
        elif update.connection == "open":
            self._on_open()
        elif update.connection == "close":
            self._on_close(update)

        # After _on_open: an open update may carry a fresh payload.
        if update.qr:
            self.session.pairing_payload = update.qr
            _log("===== SCAN THIS QR CODE =====")
            _log(update.qr)
            _log("=============================")

    def _on_open(self):
        self._cancel_retry()
        session = self.session
        session.state = ConnectionState.CONNECTED
        session.retry_count = 0
        session.pairing_payload = None
        session.identity = self._transport.identity if self._transport else None

        name = session.identity.name if session.identity else None
        ident = session.identity.id if session.identity else None
        _log("[session] connected successfully")
        _log(f"[session] user: {name or 'Unknown'}")
        _log(f"[session] id: {ident}")

        recipient = self._notify_recipient or ident
        if recipient:
            self._spawn_send(recipient, ready_message(self._dispatcher.context))

    def _on_close(self, update: ConnectionUpdate):
        session = self.session
        session.state = ConnectionState.DISCONNECTED
        session.last_disconnect = update.status_code
        _log(f"[session] connection closed (code={update.status_code}, error={update.error})")

        if update.status_code == DisconnectReason.LOGGED_OUT:
            self._cancel_retry()
            session.state = ConnectionState.TERMINAL
            _log("[session] logged out. Delete the auth directory and pair again.")
            return

        self._schedule_retry()

    async def on_credentials_update(self, update: CredentialsUpdate) -> None:
        """Persist new credential material before handling anything else."""
        try:
            await self._store.save(update.creds)
        except CredentialPersistenceError as e:
            self.session.credentials_healthy = False
            _log(f"[session] FATAL: credential write failed: {e}. "
                 "The next restart will require pairing again.")
            raise
        self.session.credentials_healthy = True

    async def on_messages_upsert(self, upsert: MessagesUpsert) -> None:
        for message in filter_upsert(upsert):
            _log(f"[session] message from {message.sender}: {message.text}")
            reply = self._dispatcher.dispatch(message)
            if reply is not None:
                self._spawn_send(reply.recipient, reply.text)

    # -- sending --

    def _spawn_send(self, recipient: str, text: str):
        task = asyncio.create_task(self.send(recipient, text))
        self._reply_tasks.add(task)
        task.add_done_callback(self._reply_tasks.discard)

    async def send(self, recipient: str, text: str) -> bool:
        """Send through the current transport. Failures are logged, never raised."""
        transport = self._transport
        if transport is None:
            _log(f"[session] no active connection, dropping message to {recipient}")
            return False
        try:
            await transport.send_message(recipient, text)
        except Exception as e:
            _log(f"[session] send to {recipient} failed: {e}")
            return False
        return True

    # -- shutdown --

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Stop retrying, let in-flight replies finish (best effort), then disconnect."""
        self._closing = True
        self._cancel_retry()
        if self._connect_task and not self._connect_task.done():
            self._connect_task.cancel()

        pending_replies = set(self._reply_tasks)
        if pending_replies:
            _, pending = await asyncio.wait(pending_replies, timeout=timeout)
            if pending:
                _log(f"[session] {len(pending)} replies still in flight at shutdown, cancelling")
                for task in pending:
                    task.cancel()

        self._generation += 1
        await self._close_transport()
        if self.session.state != ConnectionState.TERMINAL:
            self.session.state = ConnectionState.DISCONNECTED
