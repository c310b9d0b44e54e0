from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Iterable

from .context import UploadContext
from .exceptions import (
    MultipartAbortError,
    MultipartCompletionError,
    MultipartCreationError,
    PartUploadError,
    PayloadSourceError,
    UploadCancelledError,
)
from .logger import logger
from .metrics import UPLOADS
from .models.completed_upload import CompletedUpload
from .models.session_state import PostFailurePolicy
from .session import MultipartUploadSession
from .uploader import MultipartUploader


class UploadDriver:
    """
    Runs a whole upload: create, parts 1..N, complete, and abort on failure.
    """

    def __init__(
        self,
        uploader: MultipartUploader,
        post_failure_policy: PostFailurePolicy = PostFailurePolicy.ABORT,
        max_concurrency: int = 1,
    ) -> None:
        """
        :param uploader: orchestrator used for every store call.
        :param post_failure_policy: what happens to the session after a part
            or completion failure.
        :param max_concurrency: number of parts in flight; 1 keeps the strictly
            sequential order.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.uploader = uploader
        self.post_failure_policy = post_failure_policy
        self.max_concurrency = max_concurrency

    def upload(
        self,
        file_name: str,
        file_type: str,
        parts: Iterable[bytes],
        ctx: UploadContext | None = None,
    ) -> CompletedUpload:
        ctx = ctx or UploadContext()
        try:
            session = MultipartUploadSession.create(
                self.uploader, file_name, file_type, ctx
            )
        except UploadCancelledError:
            raise
        except Exception as exception:
            UPLOADS.labels(outcome="failed").inc()
            raise MultipartCreationError(
                f"Failed to create multipart upload for {file_name}"
            ) from exception

        try:
            if self.max_concurrency == 1:
                self._upload_sequential(session, parts, ctx)
            else:
                self._upload_concurrent(session, parts, ctx)
        except PartUploadError:
            self._handle_failure(session, ctx)
            raise
        except UploadCancelledError:
            raise
        except Exception as exception:
            logger.exception(
                "Failed to read part contents",
                extra={"key": session.upload_key, "upload_id": session.upload_id},
            )
            self._handle_failure(session, ctx)
            raise PayloadSourceError(
                f"Payload source failed for multipart upload {session.upload_key}"
            ) from exception

        try:
            completed = session.complete(ctx=ctx)
        except UploadCancelledError:
            raise
        except Exception as exception:
            self._handle_failure(session, ctx)
            raise MultipartCompletionError(
                f"Failed to complete multipart upload {session.upload_key}"
            ) from exception

        UPLOADS.labels(outcome="completed").inc()
        return completed

    def _upload_sequential(
        self,
        session: MultipartUploadSession,
        parts: Iterable[bytes],
        ctx: UploadContext,
    ) -> None:
        for part_number, content in enumerate(parts, start=1):
            self._upload_one(session, content, part_number, ctx)

    def _upload_concurrent(
        self,
        session: MultipartUploadSession,
        parts: Iterable[bytes],
        ctx: UploadContext,
    ) -> None:
        in_flight: set[Future] = set()
        failure: BaseException | None = None

        with ThreadPoolExecutor(max_workers=self.max_concurrency) as pool:
            for part_number, content in enumerate(parts, start=1):
                in_flight.add(
                    pool.submit(self._upload_one, session, content, part_number, ctx)
                )
                if len(in_flight) >= self.max_concurrency:
                    done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
                    failure = failure or _first_exception(done)
                    if failure is not None:
                        break
            done, _ = wait(in_flight)
            failure = failure or _first_exception(done)

        if failure is not None:
            raise failure

    def _upload_one(
        self,
        session: MultipartUploadSession,
        content: bytes,
        part_number: int,
        ctx: UploadContext,
    ) -> None:
        try:
            session.upload_part(content, part_number, ctx)
        except UploadCancelledError:
            raise
        except Exception as exception:
            raise PartUploadError(part_number) from exception
        logger.info(
            "Uploaded part",
            extra={"key": session.upload_key, "part_number": part_number},
        )

    def _handle_failure(self, session: MultipartUploadSession, ctx: UploadContext) -> None:
        if self.post_failure_policy is PostFailurePolicy.LEAVE_ORPHANED:
            UPLOADS.labels(outcome="orphaned").inc()
            logger.warning(
                "Leaving incomplete multipart upload in the store",
                extra={"key": session.upload_key, "upload_id": session.upload_id},
            )
            return

        try:
            self.abort(session, ctx)
            UPLOADS.labels(outcome="aborted").inc()
        except MultipartAbortError:
            UPLOADS.labels(outcome="orphaned").inc()
            logger.exception(
                "Abort failed, incomplete multipart upload left in the store",
                extra={"key": session.upload_key, "upload_id": session.upload_id},
            )

    def abort(
        self, session: MultipartUploadSession, ctx: UploadContext | None = None
    ) -> None:
        try:
            session.abort(ctx)
        except Exception as exception:
            raise MultipartAbortError(
                f"Failed to abort multipart upload {session.upload_key}"
            ) from exception


def _first_exception(done: set[Future]) -> BaseException | None:
    for future in done:
        exception = future.exception()
        if exception is not None:
            return exception
    return None
