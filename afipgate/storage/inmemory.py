"""In-memory implementation of the ticket store."""

from __future__ import annotations

import json
from typing import Dict, Optional

from ..errors import StoreError
from ..models import Ticket, TicketKey
from .base import TicketStore


class InMemoryTicketStore(TicketStore):
    """Store serialized tickets in local memory.

    Useful for tests or short-lived processes. Records are kept in their
    serialized form so reads go through the same decoding as other backends.
    """

    def __init__(self) -> None:
        self._records: Dict[str, str] = {}
        self.reads = 0
        self.writes = 0

    async def read(self, key: TicketKey) -> Optional[Ticket]:
        self.reads += 1
        raw = self._records.get(key.name)
        if raw is None:
            return None
        try:
            return Ticket.from_record(key, json.loads(raw))
        except ValueError as exc:
            raise StoreError(f"Corrupt ticket record {key.name}: {exc}") from exc

    async def write(self, key: TicketKey, ticket: Ticket) -> None:
        self.writes += 1
        self._records[key.name] = json.dumps(ticket.to_record())
