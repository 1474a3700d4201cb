"""Ticket persistence backends."""

from __future__ import annotations

from typing import Optional

from ..config import AfipConfig
from .base import TicketStore
from .filesystem import FilesystemTicketStore
from .inmemory import InMemoryTicketStore


def get_ticket_store(config: AfipConfig, backend: Optional[str] = None) -> TicketStore:
    """Factory function to obtain the configured ticket store.

    The backend is ``config.store.backend`` unless ``backend`` is given.
    The filesystem store defaults to the certificate resource folder.
    """

    backend = (backend or config.store.backend).lower()

    if backend == "filesystem":
        directory = config.store.filesystem.directory or config.res_folder
        return FilesystemTicketStore(directory)
    elif backend == "s3":
        from .s3 import S3TicketStore

        s3_conf = config.store.s3
        return S3TicketStore(
            bucket=s3_conf.bucket,
            prefix=s3_conf.prefix,
            region=s3_conf.region,
            access_key_id=s3_conf.access_key_id,
            secret_access_key=s3_conf.secret_access_key,
            endpoint_url=s3_conf.endpoint_url,
        )
    elif backend == "inmemory":
        return InMemoryTicketStore()
    else:
        raise ValueError(f"Unsupported ticket store backend: {backend}")


__all__ = [
    "TicketStore",
    "FilesystemTicketStore",
    "InMemoryTicketStore",
    "get_ticket_store",
]
