"""Ticket store abstraction."""

from __future__ import annotations

from typing import Optional, Protocol

from ..models import Ticket, TicketKey


class TicketStore(Protocol):
    """Protocol for ticket persistence backends.

    A missing ticket is not an error: ``read`` returns ``None``. Any other
    failure raises :class:`~afipgate.errors.StoreError`. Each ``write`` fully
    replaces the record at ``key``, so concurrent writers resolve to the
    last one.
    """

    async def read(self, key: TicketKey) -> Optional[Ticket]:
        """Return the ticket stored under ``key`` or ``None``."""

    async def write(self, key: TicketKey, ticket: Ticket) -> None:
        """Persist ``ticket`` under ``key``."""
