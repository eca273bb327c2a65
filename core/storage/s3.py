"""S3-compatible blob storage (AWS S3 or MinIO)."""

import json
import logging
from typing import Optional

from aiobotocore.session import get_session
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}


def deny_anonymous_policy(bucket_name: str) -> dict:
    """Bucket policy denying every anonymous read, list, write and delete."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Sid": "DenyAnonymousAccess",
                "Effect": "Deny",
                "Principal": "*",
                "Action": [
                    "s3:GetObject",
                    "s3:ListBucket",
                    "s3:PutObject",
                    "s3:DeleteObject",
                ],
                "Resource": [
                    f"arn:aws:s3:::{bucket_name}",
                    f"arn:aws:s3:::{bucket_name}/*",
                ],
                "Condition": {"StringEquals": {"aws:PrincipalType": "Anonymous"}},
            }
        ],
    }


class S3Storage:
    """S3 storage handler for async operations."""

    def __init__(
        self,
        bucket_name: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
    ):
        """
        Initialize S3 storage.

        Args:
            bucket_name: Bucket holding every blob
            region: AWS region
            endpoint_url: Custom endpoint (MinIO); enables path-style addressing
            access_key: Access key id (default credential chain when omitted)
            secret_key: Secret access key
        """
        if not bucket_name:
            raise ValueError("S3 bucket name not provided")

        self.bucket_name = bucket_name
        self.endpoint_url = endpoint_url
        self.region = region
        self.access_key = access_key
        self.secret_key = secret_key
        self.session = get_session()
        self._config = Config(s3={"addressing_style": "path"}) if endpoint_url else None

    def _client(self):
        return self.session.create_client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            config=self._config,
        )

    async def upload(self, data: bytes, key: str, content_type: Optional[str] = None) -> str:
        """
        Upload bytes under ``key``.

        Args:
            data: File contents
            key: Object key
            content_type: MIME type stored with the object

        Returns:
            Object key
        """
        async with self._client() as client:
            upload_args = {"Bucket": self.bucket_name, "Key": key, "Body": data}
            if content_type:
                upload_args["ContentType"] = content_type
            await client.put_object(**upload_args)

        logger.info(f"Uploaded file to S3: {self.bucket_name}/{key}")
        return key

    async def download(self, key: str) -> bytes:
        async with self._client() as client:
            response = await client.get_object(Bucket=self.bucket_name, Key=key)
            async with response["Body"] as stream:
                data = await stream.read()

        logger.info(f"Downloaded file from S3: {self.bucket_name}/{key}")
        return data

    async def delete(self, key: str) -> None:
        async with self._client() as client:
            await client.delete_object(Bucket=self.bucket_name, Key=key)

        logger.info(f"Deleted file from S3: {self.bucket_name}/{key}")

    async def exists(self, key: str) -> bool:
        async with self._client() as client:
            try:
                await client.head_object(Bucket=self.bucket_name, Key=key)
                return True
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                    return False
                raise

    async def bucket_exists(self) -> bool:
        async with self._client() as client:
            try:
                await client.head_bucket(Bucket=self.bucket_name)
                return True
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                    return False
                raise

    async def ensure_bucket(self) -> None:
        """
        Create the bucket when missing and lock it against anonymous access.

        Called once at startup. Policy failures are logged; some S3-compatible
        servers do not implement bucket policies.
        """
        if not await self.bucket_exists():
            async with self._client() as client:
                await client.create_bucket(Bucket=self.bucket_name)
            logger.info(f"Created S3 bucket: {self.bucket_name}")

        async with self._client() as client:
            try:
                await client.put_bucket_policy(
                    Bucket=self.bucket_name,
                    Policy=json.dumps(deny_anonymous_policy(self.bucket_name)),
                )
            except ClientError as e:
                logger.warning(f"Could not apply bucket policy to {self.bucket_name}: {e}")
