"""Domain layer — pure Python, no framework dependencies."""

from commandbot.domain.models import (
    Command,
    ConnectionState,
    DisconnectReason,
    Identity,
    InboundMessage,
    OutboundReply,
    Session,
)
from commandbot.domain.message_filter import filter_message, filter_upsert
from commandbot.domain.status import StatusReporter
from commandbot.domain.commands import CommandContext, CommandDispatcher, parse_command

__all__ = [
    "Command",
    "ConnectionState",
    "DisconnectReason",
    "Identity",
    "InboundMessage",
    "OutboundReply",
    "Session",
    "filter_message",
    "filter_upsert",
    "StatusReporter",
    "CommandContext",
    "CommandDispatcher",
    "parse_command",
]
