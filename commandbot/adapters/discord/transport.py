"""Discord transport — bridges discord.Client to the session manager.

One DiscordTransport is one connection attempt. discord.py's own reconnect
loop is disabled (`reconnect=False`) so the session manager decides when and
whether to reconnect.
"""

import asyncio
import sys
from typing import Any, Dict, Optional

import discord

from commandbot.domain.models import DisconnectReason, Identity
from commandbot.ports.inbound import (
    ConnectionUpdate,
    CredentialsUpdate,
    MessagesUpsert,
    RawMessage,
    TransportEvents,
)
from commandbot.ports.outbound import CredentialPersistenceError

MAX_MESSAGE_LENGTH = 2000


def _log(msg: str):
    print(msg, file=sys.stderr)


def to_raw_message(message: discord.Message, own_id: Optional[int]) -> RawMessage:
    """Convert a Discord message to a transport-agnostic RawMessage."""
    content = message.content or ""
    is_reply = message.reference is not None
    has_image = any(
        (attachment.content_type or "").startswith("image/")
        for attachment in message.attachments
    )
    return RawMessage(
        remote_id=str(message.channel.id),
        from_me=own_id is not None and message.author.id == own_id,
        has_payload=bool(content or message.attachments),
        conversation=content if content and not is_reply and not has_image else None,
        extended_text=content if content and is_reply else None,
        image_caption=content if content and has_image and not is_reply else None,
        message_id=str(message.id),
    )


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH):
    chunks = []
    while text:
        chunks.append(text[:limit])
        text = text[limit:]
    return chunks


class DiscordTransport(discord.Client):
    """MessagingTransport implementation on top of discord.Client."""

    def __init__(
        self,
        token: str,
        events: TransportEvents,
        stored_credentials: Optional[Dict[str, Any]] = None,
        **discord_kwargs,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents, **discord_kwargs)
        self._bot_token = token
        self._sink = events
        self._stored_credentials = stored_credentials or {}
        self._run_task: Optional[asyncio.Task] = None
        self._shutting_down = False
        self._warned_self_send = False

    @property
    def identity(self) -> Optional[Identity]:
        if not self.user:
            return None
        return Identity(id=str(self.user.id), name=self.user.name)

    async def open(self) -> None:
        await self._sink.on_connection_update(ConnectionUpdate(connection="connecting"))
        if not self._bot_token:
            await self._sink.on_connection_update(ConnectionUpdate(
                connection="close",
                status_code=DisconnectReason.LOGGED_OUT,
                error="no bot token configured (set DISCORD_BOT_TOKEN)",
            ))
            return
        self._run_task = asyncio.create_task(self._run())

    async def _run(self):
        try:
            await self.start(self._bot_token, reconnect=False)
        except discord.LoginFailure as e:
            await self._emit_close(DisconnectReason.LOGGED_OUT, str(e))
            return
        except Exception as e:
            await self._emit_close(DisconnectReason.CONNECTION_LOST, str(e))
            return
        await self._emit_close(DisconnectReason.CONNECTION_CLOSED, None)

    async def _emit_close(self, status_code: int, error: Optional[str]):
        if self._shutting_down:
            return
        await self._sink.on_connection_update(ConnectionUpdate(
            connection="close", status_code=status_code, error=error,
        ))

    async def on_ready(self):
        _log(f"[discord] logged in as {self.user}")
        qr = None
        if not self.guilds and self.application_id:
            # Not invited anywhere yet: the invite link is the pairing step.
            qr = discord.utils.oauth_url(
                self.application_id,
                permissions=discord.Permissions(send_messages=True, read_message_history=True),
            )
        # Open first: the gateway is live even if the credential write fails.
        await self._sink.on_connection_update(ConnectionUpdate(connection="open", qr=qr))

        creds = {
            "token": self._bot_token,
            "user_id": str(self.user.id),
            "application_id": str(self.application_id) if self.application_id else None,
        }
        if creds == self._stored_credentials:
            return
        try:
            await self._sink.on_credentials_update(CredentialsUpdate(creds=creds))
        except CredentialPersistenceError as e:
            _log(f"[discord] staying online with unsaved credentials: {e}")
            return
        self._stored_credentials = creds

    async def on_message(self, message: discord.Message):
        own_id = self.user.id if self.user else None
        raw = to_raw_message(message, own_id)
        await self._sink.on_messages_upsert(MessagesUpsert(type="notify", messages=[raw]))

    async def _resolve_target(self, target_id: int) -> discord.abc.Messageable:
        channel = self.get_channel(target_id)
        if channel is not None:
            return channel
        user = self.get_user(target_id)
        if user is not None:
            return user
        try:
            return await self.fetch_channel(target_id)
        except discord.NotFound:
            return await self.fetch_user(target_id)

    async def send_message(self, recipient: str, text: str) -> None:
        if self.user is not None and recipient == str(self.user.id):
            # Discord refuses DMs from a bot to itself.
            if not self._warned_self_send:
                _log("[discord] dropping message addressed to the bot itself; "
                     "set NOTIFY_RECIPIENT to a channel or user id to receive it")
                self._warned_self_send = True
            return
        target = await self._resolve_target(int(recipient))
        for chunk in split_message(text):
            await target.send(chunk)

    async def shutdown(self) -> None:
        self._shutting_down = True
        await self.close()
        if self._run_task is not None:
            try:
                await self._run_task
            except Exception as e:
                _log(f"[discord] runner ended with error: {e}")


def make_discord_factory(config_token: str = ""):
    """TransportFactory for the session manager.

    The configured token wins; otherwise the token persisted by a previous
    successful login is reused.
    """

    def factory(credentials: Optional[Dict[str, Any]], events: TransportEvents) -> DiscordTransport:
        token = config_token or (credentials or {}).get("token") or ""
        return DiscordTransport(token, events, stored_credentials=credentials)

    return factory
