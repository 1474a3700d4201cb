"""Ticket, key and error models shared by every afipgate component."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from xml.sax.saxutils import escape

from pydantic import BaseModel, ConfigDict, field_validator

from .constants import LOGIN_REQUEST_SKEW, SAFETY_MARGIN


class Environment(str, Enum):
    """AFIP deployment target. Tickets are never shared between the two."""

    TEST = "test"
    PRODUCTION = "production"


def parse_timestamp(value: Any) -> datetime:
    """Parse an AFIP ISO-8601 timestamp into an aware datetime.

    Raises:
        ValueError: If ``value`` is not an ISO-8601 string.
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TicketKey(BaseModel):
    """Identity of a stored ticket: one per principal, service and environment."""

    model_config = ConfigDict(frozen=True)

    principal: str
    service: str
    environment: Environment = Environment.TEST

    @property
    def name(self) -> str:
        suffix = "-production" if self.environment is Environment.PRODUCTION else ""
        return f"TA-{self.principal}-{self.service}{suffix}.json"

    def __str__(self) -> str:
        return self.name


class TicketCredentials(BaseModel):
    """The part of a ticket that travels with every authenticated call."""

    model_config = ConfigDict(frozen=True)

    token: str
    sign: str


class Ticket(BaseModel):
    """Authorization ticket issued by WSAA for one service.

    Tickets are immutable; an expiring ticket is replaced, never updated.
    """

    model_config = ConfigDict(frozen=True)

    principal: str
    service: str
    environment: Environment = Environment.TEST
    token: str
    sign: str
    expires_at: datetime
    issued_at: Optional[datetime] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    unique_id: Optional[str] = None

    @property
    def key(self) -> TicketKey:
        return TicketKey(
            principal=self.principal,
            service=self.service,
            environment=self.environment,
        )

    def credentials(self) -> TicketCredentials:
        return TicketCredentials(token=self.token, sign=self.sign)

    def is_usable(self, now: datetime, margin=SAFETY_MARGIN) -> bool:
        """Return ``True`` while the ticket outlives ``now`` by more than ``margin``."""
        return now + margin < self.expires_at

    # ------------------------------------------------------------------
    # Persisted record

    def to_record(self) -> Dict[str, Any]:
        """Serialize in the layout of a parsed ``loginTicketResponse``."""
        header: Dict[str, Any] = {}
        if self.source is not None:
            header["source"] = self.source
        if self.destination is not None:
            header["destination"] = self.destination
        if self.unique_id is not None:
            header["uniqueid"] = self.unique_id
        if self.issued_at is not None:
            header["generationtime"] = self.issued_at.isoformat()
        header["expirationtime"] = self.expires_at.isoformat()
        return {
            "header": [{"version": "1.0"}, header],
            "credentials": {"token": self.token, "sign": self.sign},
        }

    @classmethod
    def from_record(cls, key: TicketKey, record: Dict[str, Any]) -> "Ticket":
        """Rebuild a ticket from its persisted record.

        Raises:
            ValueError: If the record lacks credentials or an expiration time.
        """
        if not isinstance(record, dict):
            raise ValueError("ticket record must be a JSON object")

        header = _flatten_header(record.get("header"))
        credentials = record.get("credentials")
        if not isinstance(credentials, dict):
            raise ValueError("ticket record has no credentials")

        token = credentials.get("token")
        sign = credentials.get("sign")
        expiration = header.get("expirationtime")
        if not token or not sign:
            raise ValueError("ticket record is missing token or sign")
        if not expiration:
            raise ValueError("ticket record is missing expirationtime")

        generation = header.get("generationtime")
        return cls(
            principal=key.principal,
            service=key.service,
            environment=key.environment,
            token=token,
            sign=sign,
            expires_at=parse_timestamp(expiration),
            issued_at=parse_timestamp(generation) if generation else None,
            source=header.get("source"),
            destination=header.get("destination"),
            unique_id=header.get("uniqueid"),
        )


def _flatten_header(header: Any) -> Dict[str, Any]:
    # The XML attribute map and the header element share the "header" key,
    # so older records hold a list of objects rather than a single one.
    if isinstance(header, dict):
        return header
    merged: Dict[str, Any] = {}
    if isinstance(header, list):
        for entry in header:
            if isinstance(entry, dict):
                merged.update(entry)
    return merged


class OperationError(BaseModel):
    """One error entry reported by a web service."""

    model_config = ConfigDict(frozen=True)

    code: Union[int, str] = 0
    message: str = ""

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> Union[int, str]:
        if value is None:
            return 0
        text = str(value).strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            # Non-numeric codes are kept as sent.
            return text

    @property
    def is_error(self) -> bool:
        return self.code != 0


class LoginTicketRequest(BaseModel):
    """Header values of a login ticket request (TRA)."""

    service: str
    unique_id: int
    generation_time: datetime
    expiration_time: datetime

    @classmethod
    def for_service(cls, service: str, now: datetime) -> "LoginTicketRequest":
        return cls(
            service=service,
            unique_id=int(now.timestamp()),
            generation_time=now - LOGIN_REQUEST_SKEW,
            expiration_time=now + LOGIN_REQUEST_SKEW,
        )

    def to_xml(self) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<loginTicketRequest version="1.0">'
            "<header>"
            f"<uniqueId>{self.unique_id}</uniqueId>"
            f"<generationTime>{_iso(self.generation_time)}</generationTime>"
            f"<expirationTime>{_iso(self.expiration_time)}</expirationTime>"
            "</header>"
            f"<service>{escape(self.service)}</service>"
            "</loginTicketRequest>"
        )


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec="seconds")


def build_login_ticket_request(service: str, now: datetime) -> str:
    """Render the XML document that is signed and exchanged for a ticket."""
    return LoginTicketRequest.for_service(service, now).to_xml()


__all__ = [
    "Environment",
    "LoginTicketRequest",
    "OperationError",
    "Ticket",
    "TicketCredentials",
    "TicketKey",
    "build_login_ticket_request",
    "parse_timestamp",
]
