from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import settings
from errors import UploadTransportError
from logging_config import get_logger

logger = get_logger("storage")


class StorageClient:
    """S3 (or S3-compatible) object storage for record photographs"""

    def __init__(self, client=None, bucket_name: Optional[str] = None,
                 public_base_url: Optional[str] = None):
        self.client = client or boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
        )
        self.bucket_name = bucket_name or settings.S3_BUCKET_NAME
        self.public_base_url = public_base_url or settings.S3_PUBLIC_BASE_URL

    def upload_bytes(self, object_name: str, data: bytes,
                     content_type: Optional[str] = None) -> str:
        """
        Store a payload under object_name, replacing any object with that name

        Returns:
            Public URL of the stored object
        """
        extra_args = {}
        if content_type:
            extra_args['ContentType'] = content_type

        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=object_name,
                Body=data,
                **extra_args
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error uploading {object_name}: {e}", exc_info=True)
            raise UploadTransportError(f"Could not store '{object_name}'", path=object_name) from e

        logger.info(f"Uploaded object: {object_name}")
        return self.get_file_url(object_name)

    def delete_object(self, object_name: str) -> bool:
        """Remove an object, e.g. one orphaned by a failed record write"""
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=object_name)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error deleting {object_name}: {e}", exc_info=True)
            return False
        logger.info(f"Deleted object: {object_name}")
        return True

    def get_file_url(self, object_name: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{object_name}"
        if settings.S3_ENDPOINT_URL:
            return f"{settings.S3_ENDPOINT_URL.rstrip('/')}/{self.bucket_name}/{object_name}"
        return f"https://{self.bucket_name}.s3.{settings.AWS_REGION}.amazonaws.com/{object_name}"
