"""Exception hierarchy for afipgate.

Only :class:`RemoteOperationError` is meant to be branched on by code; every
other error means the client could not talk to AFIP at all.
"""

from __future__ import annotations

from typing import Optional, Union

from .models import OperationError


class AfipGateError(Exception):
    """Base class for all afipgate errors."""


class CredentialError(AfipGateError):
    """Certificate or private key is missing, unreadable or mismatched."""


class StoreError(AfipGateError):
    """Ticket storage failed for a reason other than a missing record."""


class IssuanceError(AfipGateError):
    """The WSAA login exchange failed or returned an incomplete ticket."""


class AuthorizationError(AfipGateError):
    """No usable ticket could be obtained for a service."""


class TransportError(AfipGateError):
    """A web-service call failed below the business layer."""


class SoapFault(TransportError):
    """The remote endpoint answered with a SOAP fault."""

    def __init__(self, fault_code: str, fault_string: str) -> None:
        super().__init__(f"SOAP fault {fault_code}: {fault_string}")
        self.fault_code = fault_code
        self.fault_string = fault_string


class RemoteOperationError(AfipGateError):
    """AFIP rejected an operation with a business or validation error."""

    def __init__(self, code: Union[int, str, None], message: Optional[str] = None) -> None:
        self.error = OperationError(code=code, message=message or "")
        super().__init__(f"({self.error.code}) {self.error.message}")

    @property
    def code(self) -> Union[int, str]:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message


__all__ = [
    "AfipGateError",
    "AuthorizationError",
    "CredentialError",
    "IssuanceError",
    "RemoteOperationError",
    "SoapFault",
    "StoreError",
    "TransportError",
]
