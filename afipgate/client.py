"""Client facade wiring every component from one configuration."""

from __future__ import annotations

from typing import Optional

import httpx

from .authorization import Clock, TicketAuthorizationManager
from .config import AfipConfig
from .gateway import ServiceDescriptor, WebServiceGateway
from .issuer import RemoteTokenIssuer
from .services import ElectronicBilling, ExportElectronicBilling, GenericWebService
from .signing import CredentialSigner
from .storage import TicketStore, get_ticket_store


class AfipClient:
    """Entry point for applications talking to AFIP web services.

    Components receive the configuration explicitly; nothing is cached at
    module level. Use as an async context manager to close the HTTP client
    when the client created it.
    """

    def __init__(
        self,
        config: AfipConfig,
        store: Optional[TicketStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)

        self.store = store or get_ticket_store(config)
        self.issuer = RemoteTokenIssuer(
            config.principal,
            config.environment,
            config.wsaa_url,
            self._http,
            timeout=config.timeout,
        )
        self.authorization = TicketAuthorizationManager(
            config,
            self.store,
            CredentialSigner(config.key_passphrase),
            self.issuer,
            clock=clock,
        )
        self.gateway = WebServiceGateway(config, self.authorization, self._http)

        self.electronic_billing = ElectronicBilling(self.gateway)
        self.export_electronic_billing = ExportElectronicBilling(self.gateway)

    def web_service(self, descriptor: ServiceDescriptor) -> GenericWebService:
        """Register a service not covered by a dedicated adapter."""
        return GenericWebService(self.gateway, descriptor)

    def adapter(self, service: str):
        """Return the built-in adapter for ``service`` (``wsfe`` or ``wsfex``)."""
        for adapter in (self.electronic_billing, self.export_electronic_billing):
            if adapter.name == service:
                return adapter
        raise KeyError(f"No adapter for web service: {service}")

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "AfipClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
