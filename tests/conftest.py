"""Shared fixtures: throwaway credentials, a frozen clock and fake AFIP endpoints."""

from __future__ import annotations

import io
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from xml.sax.saxutils import escape

import httpx
import pytest
from botocore.exceptions import ClientError
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from afipgate.config import AfipConfig
from afipgate.models import TicketCredentials
from afipgate.soap import ENVELOPE_NAMESPACES, element_to_python, local_name

PRINCIPAL = "20111111112"


def generate_keys(common_name: str = "afipgate-test"):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return cert_pem, key_pem


@pytest.fixture(scope="session")
def key_pair():
    return generate_keys()


@pytest.fixture(scope="session")
def other_key_pair():
    return generate_keys("someone-else")


@pytest.fixture
def res_folder(tmp_path, key_pair):
    cert_pem, key_pem = key_pair
    folder = tmp_path / "afip_res"
    folder.mkdir()
    (folder / "cert").write_bytes(cert_pem)
    (folder / "key").write_bytes(key_pem)
    return folder


@pytest.fixture
def config(res_folder):
    return AfipConfig(principal=PRINCIPAL, res_folder=res_folder)


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


# ----------------------------------------------------------------------
# SOAP doubles

def soap_envelope(body_xml: str, version: str = "1.2") -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<soap:Envelope xmlns:soap="{ENVELOPE_NAMESPACES[version]}">'
        f"<soap:Body>{body_xml}</soap:Body></soap:Envelope>"
    )


def login_ticket_response(token: str, sign: str, generation: datetime, expiration: datetime) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<loginTicketResponse version="1.0"><header>'
        "<source>CN=wsaahomo, O=AFIP, C=AR, SERIALNUMBER=CUIT 33693450239</source>"
        f"<destination>SERIALNUMBER=CUIT {PRINCIPAL}, CN=afipgate-test</destination>"
        "<uniqueId>3476120871</uniqueId>"
        f"<generationTime>{generation.isoformat()}</generationTime>"
        f"<expirationTime>{expiration.isoformat()}</expirationTime>"
        "</header><credentials>"
        f"<token>{token}</token><sign>{sign}</sign>"
        "</credentials></loginTicketResponse>"
    )


def login_cms_envelope(ticket_xml: str) -> str:
    body = (
        '<loginCmsResponse xmlns="http://wsaa.view.sua.dvadac.desein.afip.gov">'
        f"<loginCmsReturn>{escape(ticket_xml)}</loginCmsReturn>"
        "</loginCmsResponse>"
    )
    return soap_envelope(body, "1.1")


class FakeSoapEndpoint:
    """Answers SOAP requests from canned per-operation responses."""

    def __init__(self) -> None:
        self.requests = []
        self._responses = {}

    def respond(self, operation: str, result_xml: str, namespace: str = "http://ar.gov.afip.dif.FEV1/") -> None:
        body = (
            f'<{operation}Response xmlns="{namespace}">'
            f"<{operation}Result>{result_xml}</{operation}Result>"
            f"</{operation}Response>"
        )
        self.respond_raw(operation, soap_envelope(body))

    def respond_raw(self, operation: str, content: str, status_code: int = 200) -> None:
        self._responses[operation] = (status_code, content)

    def calls(self, operation: str):
        return [r for r in self.requests if r.operation == operation]

    def handler(self, request: httpx.Request) -> httpx.Response:
        root = ET.fromstring(request.content)
        body = next(child for child in root if local_name(child.tag) == "Body")
        element = body[0]
        operation = local_name(element.tag)
        self.requests.append(
            SimpleNamespace(
                url=str(request.url),
                operation=operation,
                params=element_to_python(element),
                element=element,
                headers=request.headers,
            )
        )
        status_code, content = self._responses[operation]
        return httpx.Response(status_code, content=content.encode("utf-8"))


@pytest.fixture
def soap_endpoint():
    return FakeSoapEndpoint()


@pytest.fixture
def http_client(soap_endpoint):
    return httpx.AsyncClient(transport=httpx.MockTransport(soap_endpoint.handler))


# ----------------------------------------------------------------------
# S3 double

class FakeS3Client:
    """Mimics the boto3 S3 client calls used by the ticket store."""

    def __init__(self, fail_with: str | None = None) -> None:
        self.objects = {}
        self.fail_with = fail_with
        self.puts = []

    def _error(self, code: str, message: str, operation: str) -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": message}}, operation)

    def get_object(self, Bucket: str, Key: str):
        if self.fail_with:
            raise self._error(self.fail_with, "Access Denied", "GetObject")
        if (Bucket, Key) not in self.objects:
            raise self._error("NoSuchKey", "The specified key does not exist.", "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str):
        if self.fail_with:
            raise self._error(self.fail_with, "Access Denied", "PutObject")
        self.puts.append(Key)
        self.objects[(Bucket, Key)] = Body
        return {}


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def failing_s3_client():
    return FakeS3Client(fail_with="AccessDenied")


@pytest.fixture
def login_response():
    """Build a WSAA ``loginCms`` envelope carrying a ticket."""

    def _build(token: str, sign: str, generation: datetime, expiration: datetime) -> str:
        return login_cms_envelope(login_ticket_response(token, sign, generation, expiration))

    return _build


@pytest.fixture
def envelope():
    return soap_envelope


class StubAuthorization:
    """Hands out fixed credentials and records the services asked for."""

    principal = PRINCIPAL

    def __init__(self) -> None:
        self.requested = []

    async def get_ticket(self, service: str) -> TicketCredentials:
        self.requested.append(service)
        return TicketCredentials(token="T", sign="S")


@pytest.fixture
def authorization():
    return StubAuthorization()
