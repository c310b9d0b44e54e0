from dataclasses import dataclass, field
from typing import Any, Iterable

import boto3
import botocore.exceptions

from .context import UploadContext
from .exceptions import RequiredBucketNotFoundException
from .logger import logger
from .models.abort_ack import AbortAck
from .models.completed_upload import CompletedUpload
from .models.part_receipt import PartReceipt
from .models.part_request import PartRequest
from .models.upload_session import UploadSession
from .retry import RetryPolicy, run_with_retry
from .url import build_url

DEFAULT_KEY_PREFIX = "multipart-upload/"
DEFAULT_REGION = "ap-northeast-1"


@dataclass(frozen=True)
class MultipartUploaderConfig:
    # pylint: disable=too-many-instance-attributes
    bucket: str
    s3_access_key: str
    s3_secret_key: str
    s3_region: str = DEFAULT_REGION
    s3_endpoint_url: str | None = None
    key_prefix: str = DEFAULT_KEY_PREFIX
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


class MultipartUploader:
    """
    Thin orchestrator over the store's four multipart primitives.

    Holds only the client and the immutable config. Receipts and session
    state belong to the caller (see `MultipartUploadSession`).
    """

    client: Any = None

    def __init__(self, config: MultipartUploaderConfig) -> None:
        self.config = config
        self.client = boto3.client(
            "s3",
            endpoint_url=config.s3_endpoint_url,
            region_name=config.s3_region,
            aws_access_key_id=config.s3_access_key,
            aws_secret_access_key=config.s3_secret_key,
        )
        logger.info(
            "Initiated client",
            extra={
                "endpoint_url": config.s3_endpoint_url,
                "region": config.s3_region,
                "bucket": config.bucket,
            },
        )

    @property
    def bucket(self) -> str:
        return self.config.bucket

    def has_bucket(self, bucket: str | None = None, throw: bool = False) -> bool:
        bucket = bucket or self.bucket
        try:
            self.client.head_bucket(Bucket=bucket)
            return True
        except botocore.exceptions.ClientError as exception:
            if throw:
                logger.exception("Bucket not found", extra={"bucket": bucket})
                raise RequiredBucketNotFoundException from exception
            return False

    def build_key(self, file_name: str) -> str:
        return self.config.key_prefix + file_name

    def create_multipart_upload(
        self, file_name: str, file_type: str, ctx: UploadContext | None = None
    ) -> UploadSession:
        """Open a new upload session. Never retried."""
        if not file_name:
            raise ValueError("file_name must not be empty")
        if not file_type:
            raise ValueError("file_type must not be empty")
        (ctx or UploadContext()).raise_if_cancelled()

        key = self.build_key(file_name)
        try:
            logger.debug(
                "Initiating multipart upload",
                extra={"bucket": self.bucket, "key": key, "content_type": file_type},
            )
            response = self.client.create_multipart_upload(
                Bucket=self.bucket, Key=key, ContentType=file_type
            )
        except Exception as exception:
            logger.exception(
                "Failed to initiate multipart upload",
                extra={"bucket": self.bucket, "key": key},
            )
            raise exception

        session = UploadSession(
            upload_key=response.get("Key", key),
            upload_id=response["UploadId"],
            bucket=self.bucket,
        )
        logger.info(
            "Multipart upload initiated",
            extra={"key": session.upload_key, "upload_id": session.upload_id},
        )
        return session

    def multipart_upload_part(
        self,
        upload_key: str,
        upload_id: str,
        content: bytes,
        part_number: int,
        ctx: UploadContext | None = None,
    ) -> PartReceipt:
        """Upload a single part, retrying the identical request on failure."""
        request = PartRequest(
            upload_key=upload_key,
            upload_id=upload_id,
            part_number=part_number,
            content=content,
        )
        extra = {"key": upload_key, "upload_id": upload_id, "part_number": part_number}

        def attempt() -> PartReceipt:
            logger.debug("Uploading part", extra=extra)
            response = self.client.upload_part(
                Body=request.content,
                Bucket=self.bucket,
                Key=request.upload_key,
                PartNumber=request.part_number,
                UploadId=request.upload_id,
                ContentLength=request.content_length,
            )
            logger.debug("Uploaded part", extra=extra)
            return PartReceipt(part_number=request.part_number, etag=response["ETag"])

        return run_with_retry(
            attempt, self.config.retry_policy, ctx or UploadContext(), extra=extra
        )

    def complete_multipart_upload(
        self,
        upload_key: str,
        upload_id: str,
        completed_parts: Iterable[PartReceipt],
        ctx: UploadContext | None = None,
    ) -> CompletedUpload:
        """
        Finalize the upload with the caller's receipts. Exactly one attempt.

        No deduplication or gap detection is done here: the store assembles
        whatever it is given by ascending part number.
        """
        parts = sorted(completed_parts, key=lambda part: part.part_number)
        if not parts:
            raise ValueError("Cannot complete multipart upload without parts")
        (ctx or UploadContext()).raise_if_cancelled()

        extra = {"key": upload_key, "upload_id": upload_id, "parts": len(parts)}
        try:
            logger.debug("Completing multipart upload", extra=extra)
            response = self.client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=upload_key,
                UploadId=upload_id,
                MultipartUpload={
                    "Parts": [part.to_completed_part() for part in parts]
                },
            )
        except Exception as exception:
            logger.exception("Failed to complete multipart upload", extra=extra)
            raise exception

        key = response.get("Key", upload_key)
        bucket = response.get("Bucket", self.bucket)
        completed = CompletedUpload(
            url=response.get("Location") or build_url(bucket, key),
            bucket=bucket,
            key=key,
            etag=response.get("ETag"),
            version_id=response.get("VersionId"),
        )
        logger.info("Multipart upload completed", extra={**extra, "url": completed.url})
        return completed

    def abort_multipart_upload(
        self, upload_key: str, upload_id: str, ctx: UploadContext | None = None
    ) -> AbortAck:
        """Release store-side parts of an unfinished upload. Never retried."""
        (ctx or UploadContext()).raise_if_cancelled()
        extra = {"key": upload_key, "upload_id": upload_id}
        try:
            logger.debug("Aborting multipart upload", extra=extra)
            self.client.abort_multipart_upload(
                Bucket=self.bucket, Key=upload_key, UploadId=upload_id
            )
        except Exception as exception:
            logger.exception("Failed to abort multipart upload", extra=extra)
            raise exception

        logger.info("Multipart upload aborted", extra=extra)
        return AbortAck(upload_key=upload_key, upload_id=upload_id)
