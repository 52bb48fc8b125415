"""JSON file-based credential storage — implements CredentialStore."""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from commandbot.ports.outbound import CredentialPersistenceError


class JsonCredentialStore:
    """Stores credential state as `<auth_dir>/creds.json`.

    Writes are serialized with an asyncio.Lock (FIFO) and replace the file
    atomically, so concurrent updates land in arrival order and a reader
    never sees a partial file.
    """

    def __init__(self, auth_dir: str = "auth_info", filename: str = "creds.json"):
        self._auth_dir = Path(auth_dir)
        self._path = self._auth_dir / filename
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> Optional[Dict[str, Any]]:
        """Return stored credentials, None if none were ever saved."""
        async with self._lock:
            return await asyncio.to_thread(self._read)

    async def save(self, creds: Dict[str, Any]) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, creds)

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CredentialPersistenceError(f"cannot read {self._path}: {e}") from e
        if not isinstance(raw, dict):
            raise CredentialPersistenceError(f"{self._path} does not hold a JSON object")
        return raw

    def _write(self, creds: Dict[str, Any]) -> None:
        try:
            content = json.dumps(creds, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise CredentialPersistenceError(f"credentials not serializable: {e}") from e
        try:
            self._auth_dir.mkdir(parents=True, exist_ok=True)
            # Atomic write
            fd, tmp_path = tempfile.mkstemp(dir=str(self._auth_dir), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, str(self._path))
            except BaseException:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
                raise
        except OSError as e:
            raise CredentialPersistenceError(f"cannot write {self._path}: {e}") from e
