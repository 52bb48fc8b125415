"""FastAPI status surface: health, pairing code, restart hook, dashboard.

Every route reads from the StatusReporter; none of them touch the session.
"""

import hmac
import html
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import BackgroundTasks, FastAPI
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel

from commandbot.config import AppConfig
from commandbot.domain.status import StatusReporter


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    service: str
    uptime: float


class StatusResponse(BaseModel):
    state: str
    connected: bool
    identity: Optional[str]
    lastDisconnect: Optional[int]
    retryCount: int
    pairingPending: bool
    credentialsHealthy: bool
    uptime: float


def _secret_matches(given: Optional[str], expected: Optional[str]) -> bool:
    if not expected or given is None:
        return False
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def create_app(
    reporter: StatusReporter,
    config: AppConfig,
    request_restart: Callable[[], None],
) -> FastAPI:
    app = FastAPI(title="Command Bot")

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Liveness probe. Never waits on the messaging connection."""
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            service=config.service_name,
            uptime=reporter.uptime(),
        )

    @app.get("/status", response_model=StatusResponse)
    async def status():
        snap = reporter.snapshot()
        return StatusResponse(
            state=snap["state"],
            connected=snap["connected"],
            identity=snap["identity"],
            lastDisconnect=snap["last_disconnect"],
            retryCount=snap["retry_count"],
            pairingPending=snap["pairing_pending"],
            credentialsHealthy=snap["credentials_healthy"],
            uptime=snap["uptime"],
        )

    @app.get("/qr", response_class=HTMLResponse)
    async def qr():
        return """
    <html>
      <body style="text-align:center; padding:50px;">
        <h1>Pairing Code</h1>
        <p>Check the process logs for the pairing code</p>
        <p>Look for "SCAN THIS QR CODE" in logs, or open <a href="/qrcode">/qrcode</a></p>
      </body>
    </html>
    """

    @app.get("/qrcode")
    async def qrcode():
        payload = reporter.pairing_payload
        if not payload:
            return PlainTextResponse("No QR code available. Check logs.")
        return HTMLResponse(f"""
    <html>
      <body style="text-align:center;">
        <h1>Scan QR Code</h1>
        <pre>{html.escape(payload)}</pre>
      </body>
    </html>
    """)

    @app.get("/restart")
    async def restart(background_tasks: BackgroundTasks, secret: Optional[str] = None):
        """Exit the process; an external supervisor is expected to restart it."""
        if not _secret_matches(secret, config.restart_secret):
            return PlainTextResponse("Unauthorized", status_code=403)
        background_tasks.add_task(request_restart)
        return PlainTextResponse("Restarting bot...")

    @app.get("/", response_class=HTMLResponse)
    async def root():
        """Web dashboard"""
        connection = "Connected" if reporter.connected else reporter.state.capitalize()
        identity = html.escape(reporter.identity_name or "N/A")
        warning = ""
        if not reporter.credentials_healthy:
            warning = '<p class="warn">Credential storage failed. Check logs before restarting.</p>'
        return f"""
    <!DOCTYPE html>
    <html>
      <head>
        <title>{html.escape(config.service_name)}</title>
        <style>
          body {{ font-family: Arial, sans-serif; text-align: center; padding: 50px; }}
          .status {{ padding: 20px; background: #f0f0f0; border-radius: 10px; margin: 20px auto; max-width: 500px; }}
          .warn {{ color: #c62828; }}
        </style>
      </head>
      <body>
        <h1>🤖 {html.escape(config.service_name)}</h1>
        <div class="status">
          <p>Status: <strong>Running</strong></p>
          <p>Connection: <strong>{connection}</strong></p>
          <p>User: {identity}</p>
          <p>Port: {config.port}</p>
          {warning}
        </div>
        <p><a href="/qr">View QR Code</a> | <a href="/health">Health Check</a> | <a href="/status">Status</a></p>
      </body>
    </html>
    """

    return app
