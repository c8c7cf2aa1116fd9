"""
Storage Service - document files in S3/MinIO

Files are opaque blobs keyed by `documents/{document_id}/{file_name}` and
handed to clients through presigned URLs.
"""

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
import asyncio
import hashlib
from functools import partial, wraps
from typing import Optional

from thesis_repository.core.config import settings
from thesis_repository.core.exceptions import StorageError
from thesis_repository.core.logging_config import logger


TRANSIENT_ERRORS = (ClientError, BotoCoreError, ConnectionError, TimeoutError)


def retry_with_backoff(max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 30.0):
    """
    Retry an async storage call with exponential backoff.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except TRANSIENT_ERRORS as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        logger.warning(
                            f"[S3-Retry] {func.__name__} attempt {attempt + 1}/{max_retries} failed: {e}. "
                            f"Retrying in {delay:.1f}s..."
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(f"[S3-Retry] {func.__name__}: all {max_retries} attempts failed: {e}")
            raise StorageError(f"Storage operation '{func.__name__}' failed: {last_exception}")
        return wrapper
    return decorator


class StorageService:
    """S3 / MinIO access for document files"""

    def __init__(self):
        self._client = None
        self._bucket_name = settings.effective_bucket_name
        self._initialized = False

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def _get_client(self):
        """Lazy initialization of S3/MinIO client"""
        if self._client is None:
            if settings.USE_MINIO:
                self._client = boto3.client(
                    's3',
                    endpoint_url=f"http://{settings.MINIO_ENDPOINT}",
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    config=Config(
                        signature_version='s3v4',
                        s3={'addressing_style': 'path'}
                    ),
                    region_name=settings.AWS_REGION
                )
            elif settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
                self._client = boto3.client(
                    's3',
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    region_name=settings.AWS_REGION
                )
            else:
                # IAM role credentials (ECS/EC2)
                self._client = boto3.client('s3', region_name=settings.AWS_REGION)
                logger.info("S3 client using IAM role credentials")

            self._ensure_bucket()

        return self._client

    def _ensure_bucket(self):
        """Create bucket if it doesn't exist"""
        if self._initialized:
            return

        try:
            self._client.head_bucket(Bucket=self._bucket_name)
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', '')
            if error_code not in ('404', 'NoSuchBucket'):
                logger.error(f"Error checking bucket '{self._bucket_name}': {e}")
                raise StorageError(f"Cannot access bucket '{self._bucket_name}'")

            if settings.USE_MINIO or settings.AWS_REGION == 'us-east-1':
                self._client.create_bucket(Bucket=self._bucket_name)
            else:
                self._client.create_bucket(
                    Bucket=self._bucket_name,
                    CreateBucketConfiguration={'LocationConstraint': settings.AWS_REGION}
                )
            logger.info(f"Created bucket '{self._bucket_name}'")

        self._initialized = True

    async def _run(self, func, *args, **kwargs):
        """Run a blocking boto3 call off the event loop"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    @staticmethod
    def calculate_hash(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()

    @staticmethod
    def generate_document_key(document_id: str, file_name: str) -> str:
        """Object key: documents/{document_id}/{file_name}"""
        name = file_name.replace("\\", "/").rsplit("/", 1)[-1].strip() or "document.pdf"
        return f"documents/{document_id}/{name}"

    @retry_with_backoff(max_retries=3)
    async def upload_file(self, key: str, content: bytes, content_type: str = 'application/pdf') -> dict:
        """
        Upload bytes under `key` (overwrites).

        Returns:
            dict with key, content_hash, size_bytes
        """
        content_hash = self.calculate_hash(content)
        client = self._get_client()

        await self._run(
            client.put_object,
            Bucket=self._bucket_name,
            Key=key,
            Body=content,
            ContentType=content_type,
            Metadata={'content_hash': content_hash},
        )
        logger.info(f"[S3-Upload] Uploaded: {key} ({len(content)} bytes)")

        return {
            'key': key,
            'content_hash': content_hash,
            'size_bytes': len(content),
        }

    @retry_with_backoff(max_retries=2)
    async def delete_file(self, key: str) -> bool:
        client = self._get_client()
        await self._run(client.delete_object, Bucket=self._bucket_name, Key=key)
        logger.info(f"Deleted file from S3: {key}")
        return True

    async def get_signed_url(
        self,
        key: str,
        expires_in: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """
        Presigned GET URL for `key`, or None when it cannot be produced
        within `timeout` seconds (FILE_URL_TIMEOUT_SECONDS by default).
        """
        expires_in = expires_in or settings.STORAGE_URL_EXPIRY
        timeout = timeout if timeout is not None else settings.FILE_URL_TIMEOUT_SECONDS

        try:
            client = self._get_client()
            return await asyncio.wait_for(
                self._run(
                    client.generate_presigned_url,
                    'get_object',
                    Params={'Bucket': self._bucket_name, 'Key': key},
                    ExpiresIn=expires_in,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[S3-URL] Timed out after {timeout}s signing {key}")
            return None
        except (StorageError, *TRANSIENT_ERRORS) as e:
            logger.error(f"[S3-URL] Failed to sign {key}: {e}")
            return None


# Singleton instance
storage_service = StorageService()
