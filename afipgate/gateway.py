"""Generic executor for authenticated AFIP web-service operations."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .authorization import TicketAuthorizationManager
from .config import AfipConfig
from .constants import SOAP_12
from .errors import RemoteOperationError, TransportError
from .models import Environment, OperationError
from .soap import SoapClient

logger = logging.getLogger(__name__)


class ServiceFamily(str, Enum):
    """Groups of services sharing one error-reporting convention."""

    BILLING = "billing"
    EXPORT_BILLING = "export_billing"


class ServiceDescriptor(BaseModel):
    """Where a service lives and how it expects authentication.

    ``auth_extra_fields`` names, per operation, request fields that belong
    inside the auth block rather than beside it.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    family: ServiceFamily
    namespace: str
    url: str
    url_test: str
    soap_version: str = SOAP_12
    health_check_operation: Optional[str] = None
    auth_field: str = "Auth"
    auth_extra_fields: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)

    def endpoint(self, environment: Environment) -> str:
        return self.url if environment is Environment.PRODUCTION else self.url_test


def unwrap(value: Any) -> Any:
    """Reduce a list-shaped response node to its first element."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _first_error(entries: Any, code_field: str, message_field: str) -> Optional[OperationError]:
    if entries is None:
        return None
    if not isinstance(entries, list):
        entries = [entries]
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        error = OperationError(
            code=entry.get(code_field), message=entry.get(message_field) or ""
        )
        if error.is_error:
            return error
    return None


def extract_billing_error(result: Dict[str, Any]) -> Optional[OperationError]:
    """wsfe: observations on a non-approved detail, then the ``Errors`` list."""
    detail_response = result.get("FeDetResp")
    if isinstance(detail_response, dict):
        detail = unwrap(detail_response.get("FECAEDetResponse"))
        if isinstance(detail, dict) and detail.get("Resultado") != "A":
            observations = detail.get("Observaciones")
            if isinstance(observations, dict):
                error = _first_error(observations.get("Obs"), "Code", "Msg")
                if error is not None:
                    return error

    errors = result.get("Errors")
    if isinstance(errors, dict):
        return _first_error(errors.get("Err"), "Code", "Msg")
    return None


def extract_export_billing_error(result: Dict[str, Any]) -> Optional[OperationError]:
    """wsfex: a ``FEXErr`` object whose ``ErrCode`` is non-zero."""
    return _first_error(result.get("FEXErr"), "ErrCode", "ErrMsg")


ErrorExtractor = Callable[[Dict[str, Any]], Optional[OperationError]]

ERROR_EXTRACTORS: Dict[ServiceFamily, ErrorExtractor] = {
    ServiceFamily.BILLING: extract_billing_error,
    ServiceFamily.EXPORT_BILLING: extract_export_billing_error,
}


class WebServiceGateway:
    """Attaches tickets to requests and normalizes remote errors.

    Every registered service goes through the same path: auth injection,
    the SOAP call against the endpoint for the configured environment, and
    the error extractor of the service's family.
    """

    def __init__(
        self,
        config: AfipConfig,
        authorization: TicketAuthorizationManager,
        http_client: httpx.AsyncClient,
    ) -> None:
        self._config = config
        self._authorization = authorization
        self._http = http_client
        self._services: Dict[str, ServiceDescriptor] = {}
        self._clients: Dict[str, SoapClient] = {}

    def register(self, descriptor: ServiceDescriptor) -> ServiceDescriptor:
        self._services[descriptor.name] = descriptor
        self._clients.pop(descriptor.name, None)
        return descriptor

    def descriptor(self, service: str) -> ServiceDescriptor:
        try:
            return self._services[service]
        except KeyError:
            raise KeyError(f"Unknown web service: {service}") from None

    def _client_for(self, descriptor: ServiceDescriptor) -> SoapClient:
        client = self._clients.get(descriptor.name)
        if client is None:
            client = self._clients[descriptor.name] = SoapClient(
                descriptor.endpoint(self._config.environment),
                descriptor.namespace,
                self._http,
                soap_version=descriptor.soap_version,
                timeout=self._config.timeout,
            )
        return client

    async def _build_request(
        self, descriptor: ServiceDescriptor, operation: str, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        if operation == descriptor.health_check_operation:
            return params

        credentials = await self._authorization.get_ticket(descriptor.name)
        auth: Dict[str, Any] = {
            "Token": credentials.token,
            "Sign": credentials.sign,
            "Cuit": self._authorization.principal,
        }
        for field in descriptor.auth_extra_fields.get(operation, ()):
            if field in params:
                auth[field] = params.pop(field)
        # The services validate element order; the auth block comes first.
        return {descriptor.auth_field: auth, **params}

    async def execute_operation(
        self, service: str, operation: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Run ``operation`` on ``service`` and return its ``<operation>Result``.

        Raises:
            KeyError: If ``service`` was never registered.
            RemoteOperationError: If the response carries an error entry.
            TransportError: If the call fails or the result is missing.
            AuthorizationError: If no ticket could be obtained.
        """
        descriptor = self.descriptor(service)
        request = await self._build_request(descriptor, operation, dict(params or {}))

        logger.debug(f"Executing {service}.{operation}")
        response = await self._client_for(descriptor).call(operation, request)

        result_name = f"{operation}Result"
        if result_name not in response:
            raise TransportError(f"{service}.{operation} response has no {result_name}")
        result = response[result_name]

        inspected = unwrap(result)
        if isinstance(inspected, dict):
            error = ERROR_EXTRACTORS[descriptor.family](inspected)
            if error is not None:
                raise RemoteOperationError(error.code, error.message)
        return result
