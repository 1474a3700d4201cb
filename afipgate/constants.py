"""Shared constants for the AFIP client core."""

from __future__ import annotations

from datetime import timedelta

WSAA_URL = "https://wsaa.afip.gov.ar/ws/services/LoginCms"
WSAA_URL_TEST = "https://wsaahomo.afip.gov.ar/ws/services/LoginCms"
WSAA_NAMESPACE = "http://wsaa.view.sua.dvadac.desein.afip.gov"

# A stored ticket is only handed out while it outlives this buffer.
SAFETY_MARGIN = timedelta(minutes=10)

# Generation/expiration skew around "now" in a login ticket request.
LOGIN_REQUEST_SKEW = timedelta(minutes=10)

MAX_TICKET_ATTEMPTS = 2

DEFAULT_TIMEOUT = 30.0

SOAP_11 = "1.1"
SOAP_12 = "1.2"
