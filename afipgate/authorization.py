"""Ticket authorization lifecycle: reuse, refresh and persist WSAA tickets."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from .config import AfipConfig
from .constants import MAX_TICKET_ATTEMPTS, SAFETY_MARGIN
from .errors import AuthorizationError, IssuanceError
from .issuer import RemoteTokenIssuer
from .models import Ticket, TicketCredentials, TicketKey, build_login_ticket_request
from .signing import CredentialSigner, read_signing_material
from .storage import TicketStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketAuthorizationManager:
    """Hands out usable tickets, refreshing them through WSAA when needed.

    ``get_ticket`` makes at most ``MAX_TICKET_ATTEMPTS`` read-and-validate
    passes over the store with a single refresh between them. Refreshes for
    the same key are serialized in-process; a caller that waited for
    another caller's refresh reuses the ticket it stored.
    """

    def __init__(
        self,
        config: AfipConfig,
        store: TicketStore,
        signer: CredentialSigner,
        issuer: RemoteTokenIssuer,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._signer = signer
        self._issuer = issuer
        self._clock = clock or utcnow
        self._locks: Dict[TicketKey, asyncio.Lock] = {}
        self._refreshes: Dict[TicketKey, int] = {}

    @property
    def principal(self) -> str:
        return self._config.principal

    def key_for(self, service: str) -> TicketKey:
        return TicketKey(
            principal=self._config.principal,
            service=service,
            environment=self._config.environment,
        )

    def _lock_for(self, key: TicketKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _read_usable(self, key: TicketKey) -> Optional[Ticket]:
        ticket = await self._store.read(key)
        if ticket is None:
            logger.debug(f"No stored ticket for {key.name}")
            return None
        if not ticket.is_usable(self._clock(), SAFETY_MARGIN):
            logger.debug(f"Stored ticket for {key.name} expires at {ticket.expires_at.isoformat()}")
            return None
        return ticket

    async def get_ticket(self, service: str) -> TicketCredentials:
        """Return ``{token, sign}`` for ``service``.

        Raises:
            StoreError: If the store fails for a reason other than absence.
            CredentialError: If the certificate or key cannot be used.
            AuthorizationError: If no usable ticket could be obtained.
        """
        key = self.key_for(service)
        seen = self._refreshes.get(key, 0)

        ticket = await self._read_usable(key)
        if ticket is not None:
            logger.debug(f"Reusing ticket for {key.name}")
            return ticket.credentials()

        async with self._lock_for(key):
            for attempt in range(MAX_TICKET_ATTEMPTS):
                # Another caller refreshed while this one was reading or waiting.
                if attempt or self._refreshes.get(key, 0) != seen:
                    ticket = await self._read_usable(key)
                    if ticket is not None:
                        return ticket.credentials()
                if attempt < MAX_TICKET_ATTEMPTS - 1:
                    await self._refresh_locked(key)

        raise AuthorizationError(f"Error getting ticket authorization for {key.name}")

    async def refresh(self, service: str) -> Ticket:
        """Obtain and store a new ticket for ``service`` regardless of the stored one."""
        key = self.key_for(service)
        async with self._lock_for(key):
            return await self._refresh_locked(key)

    async def _refresh_locked(self, key: TicketKey) -> Ticket:
        logger.info(f"Requesting new ticket for {key.name}")
        document = build_login_ticket_request(key.service, self._clock())
        certificate, private_key = await read_signing_material(
            self._config.cert_path, self._config.key_path
        )
        signed = self._signer.sign(document, certificate, private_key)

        try:
            ticket = await self._issuer.issue(key.service, signed)
        except IssuanceError as exc:
            raise AuthorizationError(f"Error getting ticket authorization for {key.name}: {exc}") from exc

        await self._store.write(key, ticket)
        self._refreshes[key] = self._refreshes.get(key, 0) + 1
        logger.info(f"Stored ticket for {key.name}")
        return ticket
