"""Common base for service adapters."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from ..gateway import ServiceDescriptor, WebServiceGateway

_AFIP_DATE = re.compile(r"(\d{4})(\d{2})(\d{2})")


def format_date(value: Any) -> str:
    """Turn an AFIP ``yyyymmdd`` date into ``yyyy-mm-dd``."""
    return _AFIP_DATE.sub(r"\1-\2-\3", str(value))


class ServiceAdapter:
    """Binds a :class:`ServiceDescriptor` to the gateway.

    Subclasses set ``descriptor`` and shape domain parameters; the gateway
    takes care of tickets and error normalization.
    """

    descriptor: ServiceDescriptor

    def __init__(self, gateway: WebServiceGateway, descriptor: Optional[ServiceDescriptor] = None) -> None:
        if descriptor is not None:
            self.descriptor = descriptor
        self._gateway = gateway
        gateway.register(self.descriptor)

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def execute_request(self, operation: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._gateway.execute_operation(self.descriptor.name, operation, params)

    async def get_server_status(self) -> Dict[str, Any]:
        """Query the unauthenticated health-check operation."""
        if not self.descriptor.health_check_operation:
            raise ValueError(f"{self.name} has no health-check operation")
        return await self.execute_request(self.descriptor.health_check_operation)


class GenericWebService(ServiceAdapter):
    """Adapter for any service described at runtime."""

    def __init__(self, gateway: WebServiceGateway, descriptor: ServiceDescriptor) -> None:
        super().__init__(gateway, descriptor)
