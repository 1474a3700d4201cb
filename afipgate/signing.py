"""CMS signing of login ticket requests."""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7

from .errors import CredentialError

logger = logging.getLogger(__name__)

PemInput = Union[str, bytes]


def _as_bytes(value: PemInput) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


async def read_signing_material(cert_path: Path, key_path: Path) -> Tuple[bytes, bytes]:
    """Read certificate and private key files without blocking the loop.

    Raises:
        CredentialError: If either file cannot be read.
    """
    try:
        cert, key = await asyncio.gather(
            asyncio.to_thread(Path(cert_path).read_bytes),
            asyncio.to_thread(Path(key_path).read_bytes),
        )
    except OSError as exc:
        raise CredentialError(f"Cannot read signing material: {exc}") from exc
    return cert, key


class CredentialSigner:
    """Produces base64 CMS (PKCS#7) signed-data over a login ticket request.

    The signer keeps no key material between calls; certificate and key are
    parsed inside :meth:`sign` and dropped when it returns. Signed
    attributes are content-type, message digest and signing time, with a
    SHA-256 digest. The certificate is embedded and the content attached,
    which is what WSAA's ``loginCms`` expects.
    """

    def __init__(self, passphrase: Optional[str] = None) -> None:
        self._passphrase = passphrase.encode("utf-8") if passphrase else None

    def sign(self, document: str, certificate: PemInput, private_key: PemInput) -> str:
        cert = self._load_certificate(certificate)
        key = self._load_private_key(private_key)
        self._check_pair(cert, key)

        try:
            signed = (
                pkcs7.PKCS7SignatureBuilder()
                .set_data(document.encode("utf-8"))
                .add_signer(cert, key, hashes.SHA256())
                .sign(
                    serialization.Encoding.DER,
                    [pkcs7.PKCS7Options.Binary, pkcs7.PKCS7Options.NoCapabilities],
                )
            )
        except (TypeError, ValueError) as exc:
            raise CredentialError(f"Cannot sign with the given key: {exc}") from exc

        logger.debug(f"Signed login request for certificate {cert.subject.rfc4514_string()}")
        return base64.b64encode(signed).decode("ascii")

    # ------------------------------------------------------------------
    @staticmethod
    def _load_certificate(certificate: PemInput) -> x509.Certificate:
        try:
            return x509.load_pem_x509_certificate(_as_bytes(certificate))
        except ValueError as exc:
            raise CredentialError(f"Invalid certificate: {exc}") from exc

    def _load_private_key(self, private_key: PemInput):
        try:
            return serialization.load_pem_private_key(
                _as_bytes(private_key), password=self._passphrase
            )
        except (TypeError, ValueError, UnsupportedAlgorithm) as exc:
            raise CredentialError(f"Invalid private key: {exc}") from exc

    @staticmethod
    def _check_pair(cert: x509.Certificate, key) -> None:
        spki = serialization.PublicFormat.SubjectPublicKeyInfo
        cert_public = cert.public_key().public_bytes(serialization.Encoding.DER, spki)
        key_public = key.public_key().public_bytes(serialization.Encoding.DER, spki)
        if cert_public != key_public:
            raise CredentialError("Certificate does not match private key")
