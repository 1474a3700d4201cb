"""S3 implementation of the ticket store."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import StoreError
from ..models import Ticket, TicketKey
from .base import TicketStore

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "NotFound", "404"}


class S3TicketStore(TicketStore):
    """Persist tickets as JSON objects in an S3 bucket.

    ``bucket`` and ``prefix`` are fixed at construction. Only a missing
    object reads as "no ticket"; every other S3 error becomes a
    :class:`StoreError`.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        client: Any = None,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> None:
        if not bucket:
            raise ValueError("S3TicketStore requires a bucket name")
        self.bucket = bucket
        self.prefix = prefix
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            endpoint_url=endpoint_url,
        )

    def object_key(self, key: TicketKey) -> str:
        return f"{self.prefix}{key.name}"

    # ------------------------------------------------------------------
    # Blocking helpers, run in a worker thread
    def _get(self, object_key: str) -> Optional[bytes]:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=object_key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in _MISSING_CODES:
                return None
            raise
        return response["Body"].read()

    def _put(self, object_key: str, body: bytes) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=object_key,
            Body=body,
            ContentType="application/json",
        )

    # ------------------------------------------------------------------
    # Store API
    async def read(self, key: TicketKey) -> Optional[Ticket]:
        object_key = self.object_key(key)
        try:
            raw = await asyncio.to_thread(self._get, object_key)
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(
                f"Cannot read s3://{self.bucket}/{object_key}: {exc}"
            ) from exc

        if not raw:
            # An empty object counts as no ticket.
            logger.debug(f"No ticket object at s3://{self.bucket}/{object_key}")
            return None
        try:
            return Ticket.from_record(key, json.loads(raw))
        except ValueError as exc:
            raise StoreError(
                f"Corrupt ticket object s3://{self.bucket}/{object_key}: {exc}"
            ) from exc

    async def write(self, key: TicketKey, ticket: Ticket) -> None:
        object_key = self.object_key(key)
        body = json.dumps(ticket.to_record()).encode("utf-8")
        try:
            await asyncio.to_thread(self._put, object_key, body)
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(
                f"Cannot write s3://{self.bucket}/{object_key}: {exc}"
            ) from exc
