"""S3-compatible object lister (AWS S3, MinIO, R2)."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from bucketindex.exceptions import ListingError
from bucketindex.services.datetime_service import normalize_timestamp
from bucketindex.storage.base import (
    ObjectDescriptor,
    ObjectLister,
    clean_checksum,
    coerce_size,
    normalize_prefix,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from bucketindex.config import Settings

log = logging.getLogger(__name__)


class S3ObjectLister(ObjectLister):
    """Lists a bucket with ``list_objects_v2``, one request per page.

    boto3 is blocking, so each page request runs in a worker thread.
    """

    def __init__(
        self,
        bucket_name: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
        page_size: int = 1000,
    ):
        self._bucket = bucket_name
        self._page_size = page_size

        kwargs: dict = {
            "config": Config(
                region_name=region,
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        }
        if aws_access_key_id and aws_secret_access_key:
            kwargs["aws_access_key_id"] = aws_access_key_id
            kwargs["aws_secret_access_key"] = aws_secret_access_key
        if aws_session_token:
            kwargs["aws_session_token"] = aws_session_token
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._client = boto3.client("s3", **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> S3ObjectLister:
        return cls(
            bucket_name=settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            aws_session_token=settings.s3_session_token,
            page_size=settings.s3_page_size,
        )

    def _fetch_page(self, prefix: str, token: str | None) -> dict[str, Any]:
        params: dict[str, Any] = {
            "Bucket": self._bucket,
            "Prefix": prefix,
            "MaxKeys": self._page_size,
        }
        if token:
            params["ContinuationToken"] = token
        return self._client.list_objects_v2(**params)

    async def iter_pages(self, prefix: str = "") -> AsyncIterator[list[ObjectDescriptor]]:
        normalized = normalize_prefix(prefix)
        token: str | None = None
        page_number = 0
        while True:
            try:
                response = await asyncio.to_thread(self._fetch_page, normalized, token)
            except (BotoCoreError, ClientError) as exc:
                log.error(
                    "Listing s3://%s/%s failed on page %d: %s",
                    self._bucket,
                    normalized,
                    page_number + 1,
                    exc,
                )
                raise ListingError(
                    f"Failed to list s3://{self._bucket}/{normalized} "
                    f"(page {page_number + 1}): {exc}"
                ) from exc
            page_number += 1

            page: list[ObjectDescriptor] = []
            for item in response.get("Contents", []):
                key = item.get("Key")
                if not key or key == normalized:
                    continue
                page.append(
                    ObjectDescriptor(
                        key=key,
                        size=coerce_size(item.get("Size")),
                        last_modified=normalize_timestamp(item.get("LastModified")),
                        checksum_tag=clean_checksum(item.get("ETag")),
                    )
                )
            yield page

            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                break
