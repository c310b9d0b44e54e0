class RequiredBucketNotFoundException(Exception):
    """Target bucket does not exist or is not accessible with given credentials."""


class InvalidSessionStateError(Exception):
    """Operation is not allowed in the current state of the upload session."""


class UploadCancelledError(Exception):
    """Upload context was cancelled or its deadline has passed."""


class MultipartUploadError(Exception):
    """Base class for failures reported by the upload driver."""


class MultipartCreationError(MultipartUploadError):
    """Store rejected creation of the multipart upload session."""


class PartUploadError(MultipartUploadError):
    """Part could not be uploaded within its retry budget."""

    def __init__(self, part_number: int, message: str | None = None) -> None:
        self.part_number = part_number
        super().__init__(message or f"Failed to upload part {part_number}")


class MultipartCompletionError(MultipartUploadError):
    """Store rejected finalization of the multipart upload."""


class MultipartAbortError(MultipartUploadError):
    """Best-effort abort failed, the session is left orphaned in the store."""


class PayloadSourceError(MultipartUploadError):
    """Iterable of part contents raised before all parts were produced."""
