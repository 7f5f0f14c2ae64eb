"""Object storage for uploaded images.

Assets live in an S3 compatible bucket. Older uploads were written under a
different key prefix than current ones, so lookups go through an ordered list
of resolvers and the first one that finds the object wins.
"""
import logging
from typing import BinaryIO, List, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from picmarket.core.config import settings
from picmarket.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


class PrefixResolver:
    """Maps an item name to a key under a fixed prefix."""

    def __init__(self, prefix: str):
        self.prefix = prefix

    def key_for(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def __repr__(self):
        return f"PrefixResolver({self.prefix!r})"


class AssetStore:
    def __init__(self, client, bucket: str, resolvers: Sequence[PrefixResolver]):
        if not resolvers:
            raise ValueError("At least one asset resolver is required")
        self.client = client
        self.bucket = bucket
        self.resolvers: List[PrefixResolver] = list(resolvers)

    @property
    def upload_resolver(self) -> PrefixResolver:
        return self.resolvers[0]

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in MISSING_OBJECT_CODES:
                return False
            logger.error(f"Storage lookup failed for {key}: {code}")
            raise UpstreamFailure("Storage lookup failed") from e
        except BotoCoreError as e:
            logger.error(f"Storage lookup failed for {key}: {str(e)}")
            raise UpstreamFailure("Storage lookup failed") from e

    def resolve(self, name: str) -> Optional[str]:
        """Return the key of the first candidate location holding ``name``."""
        for resolver in self.resolvers:
            key = resolver.key_for(name)
            if self.exists(key):
                return key
            logger.debug(f"{name} not found via {resolver!r}")
        return None

    def signed_url(self, key: str, expires: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Could not sign URL for {key}: {str(e)}")
            raise UpstreamFailure("Could not create download URL") from e

    def upload(self, fileobj: BinaryIO, name: str, content_type: str) -> str:
        key = self.upload_resolver.key_for(name)
        try:
            self.client.upload_fileobj(
                fileobj,
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type}
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Upload of {key} failed: {str(e)}")
            raise UpstreamFailure("Image upload failed") from e
        return key


def create_s3_client():
    kwargs = {
        "region_name": settings.STORAGE_REGION,
        "config": Config(signature_version="s3v4"),
    }
    if settings.STORAGE_ENDPOINT_URL:
        kwargs["endpoint_url"] = settings.STORAGE_ENDPOINT_URL
    if settings.STORAGE_ACCESS_KEY_ID:
        kwargs["aws_access_key_id"] = settings.STORAGE_ACCESS_KEY_ID
        kwargs["aws_secret_access_key"] = settings.STORAGE_SECRET_ACCESS_KEY
    return boto3.client("s3", **kwargs)


_store: Optional[AssetStore] = None


def init_storage(client=None) -> AssetStore:
    global _store
    if _store is None:
        _store = AssetStore(
            client or create_s3_client(),
            settings.STORAGE_BUCKET,
            [PrefixResolver(prefix) for prefix in settings.ASSET_PREFIXES]
        )
    return _store


def get_storage() -> AssetStore:
    return init_storage()
