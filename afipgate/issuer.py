"""WSAA login exchange: trades a signed request for a ticket."""

from __future__ import annotations

import logging

import httpx

from .constants import DEFAULT_TIMEOUT, SOAP_11, WSAA_NAMESPACE
from .errors import IssuanceError, TransportError
from .models import Environment, Ticket, TicketKey
from .soap import SoapClient, parse_xml

logger = logging.getLogger(__name__)


class RemoteTokenIssuer:
    """Calls ``loginCms`` on the WSAA endpoint of one environment."""

    def __init__(
        self,
        principal: str,
        environment: Environment,
        url: str,
        http_client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.principal = principal
        self.environment = environment
        self._soap = SoapClient(
            url,
            WSAA_NAMESPACE,
            http_client,
            soap_version=SOAP_11,
            timeout=timeout,
            action_prefix="",
        )

    @property
    def url(self) -> str:
        return self._soap.endpoint

    async def issue(self, service: str, signed_document: str) -> Ticket:
        """Exchange ``signed_document`` for a ticket for ``service``.

        Raises:
            IssuanceError: On any transport failure, SOAP fault, malformed
                response or missing field. No partial ticket is returned.
        """
        try:
            result = await self._soap.call("loginCms", {"in0": signed_document})
        except TransportError as exc:
            logger.warning(f"WSAA login for {service} failed: {exc}")
            raise IssuanceError(f"Login for service {service} failed: {exc}") from exc

        login_return = result.get("loginCmsReturn")
        if not login_return or not isinstance(login_return, str):
            raise IssuanceError(f"Login for service {service} returned no ticket")

        try:
            root, record = parse_xml(login_return, lowercase=True)
        except ValueError as exc:
            raise IssuanceError(f"Login for service {service} returned malformed XML") from exc
        if root != "loginticketresponse":
            raise IssuanceError(f"Unexpected login response element <{root}>")

        key = TicketKey(principal=self.principal, service=service, environment=self.environment)
        try:
            ticket = Ticket.from_record(key, record)
        except ValueError as exc:
            raise IssuanceError(f"Incomplete ticket for service {service}: {exc}") from exc

        logger.info(f"Issued ticket for {key.name} valid until {ticket.expires_at.isoformat()}")
        return ticket
