"""Prefix command parsing and dispatch.

Commands are `!name args...`. The name is matched case-insensitively; the
arguments keep their original casing and spacing so `!echo` repeats text
verbatim.
"""

import re
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from commandbot.domain.models import Command, InboundMessage, OutboundReply
from commandbot.domain.status import StatusReporter

PREFIX = "!"

_WHITESPACE_RE = re.compile(r"\s+")


def _log(msg: str):
    print(msg, file=sys.stderr)


def parse_command(text: str, prefix: str = PREFIX) -> Optional[Command]:
    """Parse `!name args` into a Command, or None if `text` is not a command."""
    stripped = text.strip()
    if not stripped.startswith(prefix):
        return None
    body = stripped[len(prefix):]
    parts = _WHITESPACE_RE.split(body, maxsplit=1)
    name = parts[0].lower()
    rest = parts[1] if len(parts) > 1 else ""
    args = rest.split(" ") if rest else []
    return Command(name=name, args=args)


@dataclass
class CommandContext:
    """Everything a handler may read. Handlers never mutate it."""

    status: StatusReporter
    port: int
    platform_label: str = "local"
    library: str = "discord.py"
    now: Callable[[], datetime] = datetime.now
    memory_mb: Optional[Callable[[], float]] = None


def format_local_time(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def ready_message(context: CommandContext) -> str:
    """Self-notification sent once the connection opens."""
    return (
        "🤖 *Bot Online*\n\n"
        f"✅ Connected from {context.platform_label}\n"
        f"🕒 {format_local_time(context.now())}\n"
        f"🌐 Port: {context.port}"
    )


class CommandHandler(Protocol):
    def execute(self, args: List[str], context: CommandContext) -> str: ...


class PingCommand:
    def execute(self, args, context):
        return "🏓 Pong!"


HELP_TEXT = (
    "*🤖 Bot Commands*\n\n"
    "• `!ping` - Test connection\n"
    "• `!time` - Current time\n"
    "• `!info` - Bot information\n"
    "• `!status` - Check bot status\n"
    "• `!echo [text]` - Repeat text\n"
    "• `!help` - Show this menu"
)


class HelpCommand:
    def execute(self, args, context):
        return HELP_TEXT


class TimeCommand:
    def execute(self, args, context):
        return f"⏰ *Current Time*\n{format_local_time(context.now())}"


class InfoCommand:
    def execute(self, args, context):
        status = context.status
        return (
            "*Bot Information*\n\n"
            f"• Platform: {context.platform_label}\n"
            f"• Library: {context.library}\n"
            f"• Uptime: {int(status.uptime())}s\n"
            f"• Connected: {'Yes' if status.connected else 'No'}\n"
            f"• User: {status.identity_name or 'N/A'}"
        )


def _format_memory(context: CommandContext) -> str:
    if context.memory_mb is None:
        return "N/A"
    return f"{context.memory_mb():.2f} MB"


class StatusCommand:
    def execute(self, args, context):
        connection = "✅ Connected" if context.status.connected else "❌ Disconnected"
        return (
            "📊 *Status*\n\n"
            f"• Connection: {connection}\n"
            f"• Memory: {_format_memory(context)}\n"
            f"• Platform: {sys.platform}\n"
            f"• Port: {context.port}"
        )


class EchoCommand:
    def execute(self, args, context):
        if args:
            return " ".join(args)
        return "Usage: !echo [message]"


class UnknownCommand:
    def execute(self, args, context):
        return "Unknown command. Type `!help` for available commands."


def default_handlers() -> Dict[str, CommandHandler]:
    return {
        "ping": PingCommand(),
        "help": HelpCommand(),
        "time": TimeCommand(),
        "info": InfoCommand(),
        "status": StatusCommand(),
        "echo": EchoCommand(),
    }


class CommandDispatcher:
    """Maps a command name to its handler and builds the reply."""

    def __init__(
        self,
        context: CommandContext,
        handlers: Optional[Dict[str, CommandHandler]] = None,
        fallback: Optional[CommandHandler] = None,
        prefix: str = PREFIX,
    ):
        self._context = context
        self._handlers = handlers if handlers is not None else default_handlers()
        self._fallback = fallback or UnknownCommand()
        self._prefix = prefix

    @property
    def context(self) -> CommandContext:
        return self._context

    @property
    def command_names(self) -> List[str]:
        return list(self._handlers)

    def dispatch(self, message: InboundMessage) -> Optional[OutboundReply]:
        """Return the reply for `message`, or None when nothing should be sent."""
        command = parse_command(message.text, self._prefix)
        if command is None:
            return None

        handler = self._handlers.get(command.name, self._fallback)
        try:
            text = handler.execute(command.args, self._context)
        except Exception as e:
            _log(f"[dispatcher] !{command.name} failed: {e}")
            return None
        return OutboundReply(recipient=message.sender, text=text)
