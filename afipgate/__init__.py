"""afipgate: ticket authorization and web-service gateway for AFIP."""

from .authorization import TicketAuthorizationManager
from .client import AfipClient
from .config import AfipConfig, load_config
from .errors import (
    AfipGateError,
    AuthorizationError,
    CredentialError,
    IssuanceError,
    RemoteOperationError,
    SoapFault,
    StoreError,
    TransportError,
)
from .gateway import ServiceDescriptor, ServiceFamily, WebServiceGateway
from .issuer import RemoteTokenIssuer
from .models import Environment, Ticket, TicketCredentials, TicketKey
from .signing import CredentialSigner
from .storage import TicketStore, get_ticket_store

__version__ = "0.1.0"
__all__ = [
    "AfipClient",
    "AfipConfig",
    "AfipGateError",
    "AuthorizationError",
    "CredentialError",
    "CredentialSigner",
    "Environment",
    "IssuanceError",
    "RemoteOperationError",
    "RemoteTokenIssuer",
    "ServiceDescriptor",
    "ServiceFamily",
    "SoapFault",
    "StoreError",
    "Ticket",
    "TicketAuthorizationManager",
    "TicketCredentials",
    "TicketKey",
    "TicketStore",
    "TransportError",
    "WebServiceGateway",
    "get_ticket_store",
    "load_config",
]
