from unittest.mock import MagicMock, patch

import pytest
from faker import Faker
from multipart_upload_service.tests.fake_store import InMemoryObjectStore
from multipart_upload_service.uploader import MultipartUploader, MultipartUploaderConfig

fake = Faker()


@pytest.fixture
def uploader_config() -> MultipartUploaderConfig:
    return MultipartUploaderConfig(
        bucket=fake.user_name(),
        s3_access_key=fake.password(),
        s3_secret_key=fake.password(),
        s3_endpoint_url=fake.url(),
    )


@pytest.fixture(name="store")
def fixture_store(uploader_config: MultipartUploaderConfig) -> InMemoryObjectStore:
    return InMemoryObjectStore(buckets=[uploader_config.bucket])


@pytest.fixture(name="uploader")
@patch("boto3.client")
def fixture_uploader(
    boto_client: MagicMock,
    uploader_config: MultipartUploaderConfig,
    store: InMemoryObjectStore,
) -> MultipartUploader:
    boto_client.return_value = store
    return MultipartUploader(uploader_config)
