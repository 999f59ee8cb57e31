"""Helpers for creating storage clients."""

from __future__ import annotations

from urllib.parse import urlparse

import anyio
import boto3
from botocore.client import BaseClient
from botocore.config import Config

from app.core.config import Settings


def _normalize_endpoint(endpoint_url: str | None) -> str | None:
    if endpoint_url:
        return endpoint_url.rstrip("/")
    return None


def _is_gcs_compat_endpoint(endpoint_url: str | None) -> bool:
    if not endpoint_url:
        return False
    hostname = (urlparse(endpoint_url).hostname or "").lower()
    return hostname == "storage.googleapis.com" or hostname.endswith(".storage.googleapis.com")


def _resolve_region(region: str | None, endpoint_url: str | None) -> str | None:
    selected = region or None
    if _is_gcs_compat_endpoint(endpoint_url) and (selected is None or selected == "us-east-1"):
        # GCS XML API expects region "auto" for SigV4 signing.
        return "auto"
    return selected


def _build_s3_config(url_style: str | None) -> Config | None:
    style = (url_style or "").strip().lower()
    if style in {"path", "virtual"}:
        return Config(s3={"addressing_style": style})
    return None


def get_s3_client(config: Settings) -> BaseClient:
    """Return a configured S3 client (supports S3-compatible endpoints)."""
    normalized_endpoint = _normalize_endpoint(config.S3_ENDPOINT_URL)
    return boto3.client(
        "s3",
        region_name=_resolve_region(config.S3_REGION, normalized_endpoint),
        aws_access_key_id=config.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=normalized_endpoint,
        config=_build_s3_config(config.S3_URL_STYLE),
    )


def public_object_url(public_base_url: str, key: str) -> str:
    return f"{public_base_url.rstrip('/')}/{key.lstrip('/')}"


class S3AssetStore:
    """Uploads generated assets and hands back a stable public URL."""

    def __init__(self, client: BaseClient, bucket: str, public_base_url: str) -> None:
        self._client = client
        self._bucket = bucket
        self._public_base_url = public_base_url

    async def put(self, key: str, body: bytes, content_type: str) -> str:
        # boto3 is blocking; keep the event loop free while uploading.
        await anyio.to_thread.run_sync(
            lambda: self._client.put_object(
                Bucket=self._bucket, Key=key, Body=body, ContentType=content_type
            )
        )
        return public_object_url(self._public_base_url, key)


def build_asset_store(config: Settings) -> S3AssetStore | None:
    if not config.video_rehost_configured:
        return None
    return S3AssetStore(
        get_s3_client(config),
        config.VIDEO_S3_BUCKET,
        config.VIDEO_PUBLIC_BASE_URL,
    )
