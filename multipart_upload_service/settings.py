from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

from .models.session_state import PostFailurePolicy
from .retry import BackoffStrategy, RetryPolicy
from .uploader import DEFAULT_KEY_PREFIX, DEFAULT_REGION, MultipartUploaderConfig

ENV_PATH = ".env"


class MultipartUploadSettings(BaseSettings):
    """
    Class for storing settings for the multipart uploader.
    """

    aws_access_key_id: str = Field(alias="AWS_ACCESS_KEY_ID", min_length=1)
    aws_secret_access_key: str = Field(alias="AWS_SECRET_ACCESS_KEY", min_length=1)
    bucket: str = Field(alias="S3_BUCKET", min_length=1)
    region: str = Field(default=DEFAULT_REGION, alias="AWS_REGION")
    endpoint_url: str | None = Field(
        default=None,
        alias="S3_ENDPOINT_URL",
        description="Custom endpoint for S3 compatible stores, e.g. MinIO.",
    )
    key_prefix: str = Field(default=DEFAULT_KEY_PREFIX, alias="S3_KEY_PREFIX")

    max_attempts: int = Field(
        default=3,
        ge=1,
        alias="UPLOAD_MAX_ATTEMPTS",
        description="Total attempts per part, including the first one.",
    )
    backoff: BackoffStrategy = Field(
        default=BackoffStrategy.NONE, alias="UPLOAD_BACKOFF"
    )
    backoff_sec: float = Field(default=0.0, ge=0, alias="UPLOAD_BACKOFF_SEC")
    post_failure_policy: PostFailurePolicy = Field(
        default=PostFailurePolicy.ABORT,
        alias="UPLOAD_POST_FAILURE_POLICY",
        description="What to do with the session after a part or completion failure.",
    )
    max_concurrency: int = Field(default=1, ge=1, alias="UPLOAD_MAX_CONCURRENCY")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            backoff=self.backoff,
            backoff_sec=self.backoff_sec,
        )

    def to_uploader_config(self) -> MultipartUploaderConfig:
        return MultipartUploaderConfig(
            bucket=self.bucket,
            s3_access_key=self.aws_access_key_id,
            s3_secret_key=self.aws_secret_access_key,
            s3_region=self.region,
            s3_endpoint_url=self.endpoint_url,
            key_prefix=self.key_prefix,
            retry_policy=self.retry_policy(),
        )


def init_settings(env_path: str = ENV_PATH) -> MultipartUploadSettings:
    load_dotenv(env_path)
    return MultipartUploadSettings()
