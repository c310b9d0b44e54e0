import argparse
import logging
import sys
from typing import Sequence

import botocore.exceptions
import prometheus_client
import pydantic

from .driver import UploadDriver
from .exceptions import MultipartUploadError, RequiredBucketNotFoundException
from .logger import logger
from .mock_data import DEFAULT_ROWS, iter_csv_parts
from .settings import ENV_PATH, init_settings
from .uploader import MultipartUploader

DEFAULT_FILE_NAME = "test.csv"
DEFAULT_FILE_TYPE = "csv"
DEFAULT_PARTS = 99


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upload generated CSV test data to S3 as a multipart upload."
    )
    parser.add_argument("--file-name", default=DEFAULT_FILE_NAME)
    parser.add_argument("--file-type", default=DEFAULT_FILE_TYPE)
    parser.add_argument("--parts", type=int, default=DEFAULT_PARTS)
    parser.add_argument("--rows", type=int, default=DEFAULT_ROWS, help="rows per part")
    parser.add_argument("--env-file", default=ENV_PATH)
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="serve prometheus metrics on this port while uploading",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = init_settings(args.env_file)
    except pydantic.ValidationError:
        setup_logging("INFO")
        logger.exception("Invalid settings", extra={"env_file": args.env_file})
        return 1
    setup_logging(settings.log_level)

    if args.metrics_port is not None:
        prometheus_client.start_http_server(args.metrics_port)
        logger.info("Serving metrics", extra={"port": args.metrics_port})

    try:
        uploader = MultipartUploader(settings.to_uploader_config())
        driver = UploadDriver(
            uploader,
            post_failure_policy=settings.post_failure_policy,
            max_concurrency=settings.max_concurrency,
        )
        uploader.has_bucket(throw=True)
        completed = driver.upload(
            args.file_name,
            args.file_type,
            iter_csv_parts(args.parts, args.rows),
        )
    except (
        MultipartUploadError,
        RequiredBucketNotFoundException,
        botocore.exceptions.BotoCoreError,
    ):
        logger.exception("Multipart upload failed")
        return 1

    logger.info("Multipart upload finished", extra={"url": completed.url})
    return 0


if __name__ == "__main__":
    sys.exit(main())
