"""
Object storage over the S3 API.

Works with AWS S3 and S3-compatible services (Backblaze B2, GCS interop,
MinIO). botocore errors are translated into the pipeline's failure kinds.
"""

import logging
from pathlib import Path
from typing import Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.client import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from videoproc.domain.exceptions import (
    AccessDeniedError,
    ObjectNotFoundError,
    PipelineError,
    TransientError,
)
from videoproc.domain.models import ObjectRef
from videoproc.shared.logging import get_logger

ALL_USERS_GROUP = "http://acs.amazonaws.com/groups/global/AllUsers"

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}
ACCESS_DENIED_CODES = {
    "403",
    "AccessDenied",
    "AllAccessDisabled",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "AccountProblem",
}


def translate_error(error: Exception, ref: ObjectRef, action: str) -> PipelineError:
    """Map a boto3/botocore exception onto a pipeline failure."""
    if isinstance(error, PipelineError):
        return error

    if isinstance(error, ClientError):
        code = str(error.response.get("Error", {}).get("Code", ""))
        if code in NOT_FOUND_CODES:
            return ObjectNotFoundError(f"{ref.uri} not found")
        if code in ACCESS_DENIED_CODES:
            return AccessDeniedError(f"Access denied to {action} {ref.uri}: {code}")
        return TransientError(f"Failed to {action} {ref.uri}: {error}")

    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return AccessDeniedError(f"No usable credentials to {action} {ref.uri}: {error}")

    if isinstance(error, S3UploadFailedError):
        message = str(error)
        if any(code in message for code in ("AccessDenied", "403")):
            return AccessDeniedError(f"Access denied to {action} {ref.uri}: {message}")
        if "NoSuchBucket" in message:
            return ObjectNotFoundError(f"Bucket {ref.bucket} not found")
        return TransientError(f"Failed to {action} {ref.uri}: {message}")

    # Endpoint errors, connect/read timeouts, dropped connections
    if isinstance(error, BotoCoreError):
        return TransientError(f"Failed to {action} {ref.uri}: {error}")

    return TransientError(f"Unexpected error trying to {action} {ref.uri}: {error}")


class S3ObjectStorage:
    """
    Storage capability backed by boto3.
    Implements IObjectStorage protocol.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: Optional[str] = None,
        connect_timeout: float = 10.0,
        read_timeout: float = 300.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize S3 storage.

        Args:
            endpoint: S3 endpoint URL (None for AWS default)
            access_key: Access key (None to use the default credential chain)
            secret_key: Secret key
            region: Optional region name
            connect_timeout: Seconds to wait for a connection
            read_timeout: Seconds to wait on a socket read
            logger: Logger instance
        """
        self.endpoint = endpoint
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self._logger = logger or get_logger(__name__)

        self._client = self._create_client()

        # Multipart transfers for large videos
        self._transfer_config = TransferConfig(
            multipart_threshold=50 * 1024 * 1024,
            multipart_chunksize=50 * 1024 * 1024,
            max_concurrency=4,
            use_threads=True
        )

    def _create_client(self):
        """Create S3 client; retries are left to the transfer component."""
        config = Config(
            signature_version='s3v4',
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            retries={'max_attempts': 1, 'mode': 'standard'}
        )

        kwargs = {'config': config}
        if self.endpoint:
            kwargs['endpoint_url'] = self.endpoint
        if self.access_key and self.secret_key:
            kwargs['aws_access_key_id'] = self.access_key
            kwargs['aws_secret_access_key'] = self.secret_key
        if self.region:
            kwargs['region_name'] = self.region

        return boto3.client('s3', **kwargs)

    def exists(self, ref: ObjectRef) -> bool:
        try:
            self._client.head_object(Bucket=ref.bucket.name, Key=ref.key)
            return True
        except Exception as e:
            error = translate_error(e, ref, "inspect")
            if isinstance(error, ObjectNotFoundError):
                return False
            raise error from e

    def download(self, ref: ObjectRef, destination: Path) -> Path:
        """Download an object to ``destination``."""
        self._logger.debug(f"Downloading {ref.uri} -> {destination}")

        try:
            self._client.head_object(Bucket=ref.bucket.name, Key=ref.key)
            self._client.download_file(
                ref.bucket.name,
                ref.key,
                str(destination),
                Config=self._transfer_config
            )
        except Exception as e:
            raise translate_error(e, ref, "download") from e

        return destination

    def upload(self, source: Path, ref: ObjectRef) -> int:
        """Upload ``source`` to ``ref``, replacing any existing object."""
        file_size = source.stat().st_size
        self._logger.debug(f"Uploading {source} ({file_size} bytes) -> {ref.uri}")

        try:
            self._client.upload_file(
                str(source),
                ref.bucket.name,
                ref.key,
                Config=self._transfer_config
            )
        except Exception as e:
            raise translate_error(e, ref, "upload") from e

        return file_size

    def set_public(self, ref: ObjectRef) -> None:
        try:
            self._client.put_object_acl(
                Bucket=ref.bucket.name,
                Key=ref.key,
                ACL='public-read'
            )
        except Exception as e:
            raise translate_error(e, ref, "make public") from e

    def is_public(self, ref: ObjectRef) -> bool:
        try:
            acl = self._client.get_object_acl(Bucket=ref.bucket.name, Key=ref.key)
        except Exception as e:
            raise translate_error(e, ref, "read ACL of") from e

        for grant in acl.get('Grants', []):
            grantee = grant.get('Grantee', {})
            if grantee.get('URI') == ALL_USERS_GROUP and grant.get('Permission') in ('READ', 'FULL_CONTROL'):
                return True
        return False
