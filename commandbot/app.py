"""Process entry point: wiring, HTTP server, graceful shutdown."""

import asyncio
import sys
from dataclasses import dataclass
from typing import Optional

import discord
import psutil
import uvicorn
from fastapi import FastAPI

from commandbot.adapters.discord.transport import make_discord_factory
from commandbot.adapters.storage.credential_store import JsonCredentialStore
from commandbot.adapters.web.server import create_app
from commandbot.config import AppConfig
from commandbot.domain.commands import CommandContext, CommandDispatcher
from commandbot.domain.models import Session
from commandbot.domain.session import ExponentialBackoff, FixedDelay, RetryPolicy, SessionManager
from commandbot.domain.status import StatusReporter
from commandbot.ports.outbound import CredentialPersistenceError, TransportFactory


def _log(msg: str):
    print(msg, file=sys.stderr)


def process_memory_mb() -> float:
    return psutil.Process().memory_info().rss / 1024 / 1024


def build_retry_policy(config: AppConfig) -> RetryPolicy:
    if config.reconnect_backoff == "exponential":
        return ExponentialBackoff(
            base=config.reconnect_delay_seconds,
            maximum=config.reconnect_max_delay_seconds,
        )
    return FixedDelay(config.reconnect_delay_seconds)


@dataclass
class Runtime:
    session: Session
    reporter: StatusReporter
    dispatcher: CommandDispatcher
    manager: SessionManager


def build_runtime(config: AppConfig, transport_factory: Optional[TransportFactory] = None) -> Runtime:
    """Wire the core components around one shared Session."""
    session = Session()
    reporter = StatusReporter(session)
    context = CommandContext(
        status=reporter,
        port=config.port,
        platform_label=config.platform_label,
        library=f"discord.py {discord.__version__}",
        memory_mb=process_memory_mb,
    )
    dispatcher = CommandDispatcher(context)
    manager = SessionManager(
        transport_factory or make_discord_factory(config.discord_token),
        JsonCredentialStore(config.auth_dir),
        dispatcher,
        session=session,
        retry_policy=build_retry_policy(config),
        notify_recipient=config.notify_recipient,
    )
    return Runtime(session=session, reporter=reporter, dispatcher=dispatcher, manager=manager)


async def serve(config: AppConfig) -> int:
    """Run until SIGTERM/SIGINT or an authorized /restart. Returns the exit code."""
    runtime = build_runtime(config)
    exit_code = 0
    server: Optional[uvicorn.Server] = None

    def request_restart():
        _log("Restart requested over HTTP, shutting down")
        server.should_exit = True

    app: FastAPI = create_app(runtime.reporter, config, request_restart)
    server = uvicorn.Server(uvicorn.Config(app, host=config.host, port=config.port, log_level="info"))

    def _on_connect_done(task: asyncio.Task):
        nonlocal exit_code
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, CredentialPersistenceError):
            _log(f"FATAL: {exc}")
            exit_code = 1
            server.should_exit = True
        elif exc is not None:
            _log(f"Initial connect crashed: {exc}")

    _log(f"Server running on port {config.port}")
    _log(f"Web interface: http://localhost:{config.port}")

    connect_task = asyncio.create_task(runtime.manager.connect())
    connect_task.add_done_callback(_on_connect_done)

    # uvicorn owns SIGTERM/SIGINT: the listener closes before serve() returns.
    await server.serve()
    _log("HTTP server closed")

    await runtime.manager.shutdown(timeout=config.shutdown_grace_seconds)
    _log("Session closed")
    return exit_code


def main():
    config = AppConfig.from_env()
    sys.exit(asyncio.run(serve(config)))


if __name__ == "__main__":
    main()
