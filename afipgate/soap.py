"""Minimal SOAP 1.1/1.2 client over httpx.

Requests are built from plain dicts and responses are decoded back into
plain dicts, so callers never deal with XML trees.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

import httpx

from .constants import DEFAULT_TIMEOUT, SOAP_11, SOAP_12
from .errors import SoapFault, TransportError

logger = logging.getLogger(__name__)

ENVELOPE_NAMESPACES = {
    SOAP_11: "http://schemas.xmlsoap.org/soap/envelope/",
    SOAP_12: "http://www.w3.org/2003/05/soap-envelope",
}


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].split(":")[-1]


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _append(parent: ET.Element, name: str, value: Any, namespace: str) -> None:
    if value is None:
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _append(parent, name, item, namespace)
        return
    element = ET.SubElement(parent, f"{{{namespace}}}{name}")
    if isinstance(value, dict):
        for child_name, child_value in value.items():
            _append(element, child_name, child_value, namespace)
    else:
        element.text = _text(value)


def element_to_python(element: ET.Element, lowercase: bool = False) -> Any:
    """Decode an element into nested dicts, lists and strings.

    Repeated children collapse into a list, leaves become stripped text and
    namespaces are dropped.
    """
    children = list(element)
    if not children:
        return (element.text or "").strip()

    result: Dict[str, Any] = {}
    for child in children:
        name = local_name(child.tag)
        if lowercase:
            name = name.lower()
        value = element_to_python(child, lowercase)
        if name in result:
            existing = result[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[name] = [existing, value]
        else:
            result[name] = value
    return result


def parse_xml(text: str | bytes, lowercase: bool = False) -> Tuple[str, Any]:
    """Parse an XML document into ``(root_name, decoded_root)``.

    Raises:
        ValueError: If ``text`` is not well-formed XML.
    """
    if isinstance(text, str):
        text = text.strip().encode("utf-8")
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ValueError(f"Malformed XML: {exc}") from exc
    name = local_name(root.tag)
    return (name.lower() if lowercase else name), element_to_python(root, lowercase)


def _fault_from(element: ET.Element) -> SoapFault:
    fault = element_to_python(element)
    if not isinstance(fault, dict):
        return SoapFault("", str(fault))
    if "faultcode" in fault or "faultstring" in fault:
        return SoapFault(str(fault.get("faultcode", "")), str(fault.get("faultstring", "")))
    code = fault.get("Code") or {}
    reason = fault.get("Reason") or {}
    code_value = code.get("Value", "") if isinstance(code, dict) else code
    reason_text = reason.get("Text", "") if isinstance(reason, dict) else reason
    if isinstance(reason_text, list):
        reason_text = reason_text[0]
    return SoapFault(str(code_value), str(reason_text))


class SoapClient:
    """Sends document/literal SOAP calls to a single endpoint."""

    def __init__(
        self,
        endpoint: str,
        namespace: str,
        http_client: httpx.AsyncClient,
        soap_version: str = SOAP_12,
        timeout: float = DEFAULT_TIMEOUT,
        action_prefix: Optional[str] = None,
    ) -> None:
        if soap_version not in ENVELOPE_NAMESPACES:
            raise ValueError(f"Unsupported SOAP version: {soap_version}")
        self.endpoint = endpoint
        self.namespace = namespace
        self.soap_version = soap_version
        self.timeout = timeout
        self.action_prefix = namespace if action_prefix is None else action_prefix
        self._http = http_client

    def build_envelope(self, operation: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        env_ns = ENVELOPE_NAMESPACES[self.soap_version]
        envelope = ET.Element(f"{{{env_ns}}}Envelope")
        body = ET.SubElement(envelope, f"{{{env_ns}}}Body")
        request = ET.SubElement(body, f"{{{self.namespace}}}{operation}")
        for name, value in (params or {}).items():
            _append(request, name, value, self.namespace)
        return ET.tostring(envelope, encoding="utf-8", xml_declaration=True)

    def _headers(self, operation: str) -> Dict[str, str]:
        action = f"{self.action_prefix}{operation}" if self.action_prefix else ""
        if self.soap_version == SOAP_11:
            return {
                "Content-Type": "text/xml; charset=utf-8",
                "SOAPAction": f'"{action}"',
            }
        content_type = "application/soap+xml; charset=utf-8"
        if action:
            content_type += f'; action="{action}"'
        return {"Content-Type": content_type}

    async def call(self, operation: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Invoke ``operation`` and return the children of its response element.

        Raises:
            SoapFault: If the endpoint answers with a SOAP fault.
            TransportError: On network errors, timeouts, HTTP errors or a
                malformed envelope.
        """
        payload = self.build_envelope(operation, params)
        logger.debug(f"SOAP {operation} -> {self.endpoint}")
        try:
            response = await self._http.post(
                self.endpoint,
                content=payload,
                headers=self._headers(operation),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{operation} request to {self.endpoint} failed: {exc}") from exc

        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as exc:
            if response.is_error:
                raise TransportError(
                    f"{operation} failed with HTTP {response.status_code}"
                ) from exc
            raise TransportError(f"{operation} returned malformed XML: {exc}") from exc

        body = next((child for child in root if local_name(child.tag) == "Body"), None)
        if body is None:
            raise TransportError(f"{operation} response has no SOAP body")

        fault = next((child for child in body if local_name(child.tag) == "Fault"), None)
        if fault is not None:
            raise _fault_from(fault)
        if response.is_error:
            raise TransportError(f"{operation} failed with HTTP {response.status_code}")

        content = next(iter(body), None)
        if content is None:
            return {}
        decoded = element_to_python(content)
        return decoded if isinstance(decoded, dict) else {}
