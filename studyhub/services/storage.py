"""S3 object storage for uploaded documents."""

import asyncio

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from studyhub.config import get_settings
from studyhub.errors import FetchError, StorageError, UploadError

settings = get_settings()


def document_path(user_id, folder_id, file_name: str) -> str:
    """Object key for a document: {user_id}/{folder_id}/{file_name}."""
    return f"{user_id}/{folder_id}/{file_name}"


class StorageService:
    """Service for reading and writing document bytes in S3."""

    def __init__(self):
        """Initialize S3 client with credentials from settings."""
        client_kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
            "region_name": settings.aws_s3_region,
        }
        # Support MinIO / LocalStack by pointing to a custom endpoint
        if settings.aws_s3_endpoint_url:
            client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)
        self.bucket = settings.aws_s3_bucket

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """
        Upload bytes to `path`, replacing any existing object.

        Raises:
            UploadError: If the S3 operation fails
        """
        extra = {"ContentType": content_type} if content_type else {}
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket,
                Key=path,
                Body=data,
                CacheControl="max-age=3600",
                **extra,
            )
        except (ClientError, BotoCoreError) as e:
            raise UploadError(f"Failed to upload {path} to storage: {e}", context={"path": path}) from e

    async def download(self, path: str) -> bytes:
        """
        Download the object at `path`.

        Raises:
            FetchError: If the S3 operation fails
        """
        try:
            return await asyncio.to_thread(self._read_object, path)
        except (ClientError, BotoCoreError) as e:
            raise FetchError(f"Failed to download {path} from storage: {e}", context={"path": path}) from e

    def _read_object(self, path: str) -> bytes:
        response = self.s3_client.get_object(Bucket=self.bucket, Key=path)
        return response["Body"].read()

    async def remove(self, path: str) -> None:
        """
        Delete the object at `path`.

        Raises:
            StorageError: If the S3 operation fails
        """
        try:
            await asyncio.to_thread(self.s3_client.delete_object, Bucket=self.bucket, Key=path)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to remove {path} from storage: {e}", context={"path": path}) from e

    def public_url(self, path: str) -> str:
        """Public URL for the object at `path`."""
        if settings.aws_s3_public_base_url:
            base = settings.aws_s3_public_base_url.rstrip("/")
        elif settings.aws_s3_endpoint_url:
            base = f"{settings.aws_s3_endpoint_url.rstrip('/')}/{self.bucket}"
        else:
            base = f"https://{self.bucket}.s3.{settings.aws_s3_region}.amazonaws.com"
        return f"{base}/{path}"


# Singleton instance
storage_service = StorageService()
