"""Local filesystem implementation of the ticket store."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import StoreError
from ..models import Ticket, TicketKey
from .base import TicketStore

logger = logging.getLogger(__name__)


class FilesystemTicketStore(TicketStore):
    """Persist tickets as JSON files under a resource directory.

    A missing file or a missing directory reads as "no ticket"; the
    directory is created on first write.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, key: TicketKey) -> Path:
        return self.directory / key.name

    # ------------------------------------------------------------------
    # Blocking helpers, run in a worker thread
    def _read_text(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write_text(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Store API
    async def read(self, key: TicketKey) -> Optional[Ticket]:
        path = self.path_for(key)
        try:
            raw = await asyncio.to_thread(self._read_text, path)
        except OSError as exc:
            raise StoreError(f"Cannot read ticket file {path}: {exc}") from exc

        if raw is None:
            logger.debug(f"No ticket file at {path}")
            return None
        try:
            return Ticket.from_record(key, json.loads(raw))
        except ValueError as exc:
            raise StoreError(f"Corrupt ticket file {path}: {exc}") from exc

    async def write(self, key: TicketKey, ticket: Ticket) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(
                self._write_text, path, json.dumps(ticket.to_record())
            )
        except OSError as exc:
            raise StoreError(f"Cannot write ticket file {path}: {exc}") from exc
