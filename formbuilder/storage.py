import logging
import uuid
from functools import lru_cache
from pathlib import PurePath
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import settings
from .errors import StorageError

logger = logging.getLogger(__name__)


def blob_name(filename: str) -> str:
    """Short random name keeping the uploaded file's extension."""
    return f"{uuid.uuid4().hex[:12]}{PurePath(filename or '').suffix}"


class BlobStorage:
    def __init__(self, client, bucket: str, public_base_url: Optional[str] = None, endpoint_url: Optional[str] = None):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url
        self.endpoint_url = endpoint_url

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.client.meta.region_name}.amazonaws.com/{key}"

    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        key = blob_name(filename)
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload of %s as %s failed: %s", filename, key, e)
            raise StorageError("Failed to upload images")
        logger.info("Uploaded %s as %s", filename, key)
        return self.url_for(key)


@lru_cache()
def get_storage() -> BlobStorage:
    s3_client = boto3.client(
        "s3",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        region_name=settings.AWS_REGION,
        endpoint_url=settings.S3_ENDPOINT_URL or None,
    )
    return BlobStorage(s3_client, settings.S3_BUCKET, settings.S3_PUBLIC_BASE_URL, settings.S3_ENDPOINT_URL or None)
