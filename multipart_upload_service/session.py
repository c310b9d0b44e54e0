from threading import Lock

from .context import UploadContext
from .exceptions import InvalidSessionStateError
from .logger import logger
from .models.abort_ack import AbortAck
from .models.completed_upload import CompletedUpload
from .models.part_receipt import PartReceipt
from .models.session_state import SessionState
from .models.upload_session import UploadSession
from .uploader import MultipartUploader

_OPEN_STATES = frozenset({SessionState.CREATED, SessionState.UPLOADING})

ALLOWED_TRANSITIONS: dict[str, frozenset[SessionState]] = {
    "upload_part": _OPEN_STATES,
    "complete": _OPEN_STATES,
    "abort": _OPEN_STATES,
}

CLOSING_OPERATIONS = frozenset({"complete", "abort"})


class MultipartUploadSession:
    """
    State-tagged handle over one multipart upload.

    Rejects out-of-order calls (e.g. `complete` after `abort`) before the store
    is contacted, and keeps the receipts of uploaded parts keyed by part number.
    """

    def __init__(self, uploader: MultipartUploader, session: UploadSession) -> None:
        self.uploader = uploader
        self.session = session
        self._state = SessionState.CREATED
        self._receipts: dict[int, PartReceipt] = {}
        self._closing: str | None = None
        self._lock = Lock()

    @classmethod
    def create(
        cls,
        uploader: MultipartUploader,
        file_name: str,
        file_type: str,
        ctx: UploadContext | None = None,
    ) -> "MultipartUploadSession":
        return cls(uploader, uploader.create_multipart_upload(file_name, file_type, ctx))

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def upload_key(self) -> str:
        return self.session.upload_key

    @property
    def upload_id(self) -> str:
        return self.session.upload_id

    @property
    def receipts(self) -> list[PartReceipt]:
        with self._lock:
            return sorted(self._receipts.values(), key=lambda r: r.part_number)

    def upload_part(
        self, content: bytes, part_number: int, ctx: UploadContext | None = None
    ) -> PartReceipt:
        self._begin("upload_part", SessionState.UPLOADING)
        receipt = self.uploader.multipart_upload_part(
            self.upload_key, self.upload_id, content, part_number, ctx
        )
        self.record_receipt(receipt)
        return receipt

    def record_receipt(self, receipt: PartReceipt) -> None:
        # Last write for a part number wins, same as in the store.
        with self._lock:
            if receipt.part_number in self._receipts:
                logger.debug(
                    "Replacing receipt for re-uploaded part",
                    extra={"key": self.upload_key, "part_number": receipt.part_number},
                )
            self._receipts[receipt.part_number] = receipt

    def complete(
        self,
        completed_parts: list[PartReceipt] | None = None,
        ctx: UploadContext | None = None,
    ) -> CompletedUpload:
        self._begin("complete")
        try:
            parts = self.receipts if completed_parts is None else completed_parts
            result = self.uploader.complete_multipart_upload(
                self.upload_key, self.upload_id, parts, ctx
            )
        except Exception:
            self._finish(None)
            raise
        self._finish(SessionState.COMPLETED)
        return result

    def abort(self, ctx: UploadContext | None = None) -> AbortAck:
        self._begin("abort")
        try:
            ack = self.uploader.abort_multipart_upload(
                self.upload_key, self.upload_id, ctx
            )
        except Exception:
            self._finish(None)
            raise
        self._finish(SessionState.ABORTED)
        return ack

    def _begin(self, operation: str, state: SessionState | None = None) -> None:
        """
        Check and move the state in one critical section.

        `complete` and `abort` hold the session closed until `_finish`, so no
        other operation passes the check while one of them is in flight.
        """
        with self._lock:
            current = self._state
            closing = self._closing
            allowed = current in ALLOWED_TRANSITIONS[operation] and closing is None
            if allowed:
                if state is not None:
                    self._state = state
                if operation in CLOSING_OPERATIONS:
                    self._closing = operation

        if not allowed:
            logger.error(
                "Operation not allowed in current session state",
                extra={
                    "operation": operation,
                    "state": current.value,
                    "closing": closing,
                    "key": self.upload_key,
                    "upload_id": self.upload_id,
                },
            )
            if closing is not None:
                raise InvalidSessionStateError(
                    f"Cannot {operation} a session while {closing} is in progress"
                )
            raise InvalidSessionStateError(
                f"Cannot {operation} a session in state '{current.value}'"
            )

    def _finish(self, state: SessionState | None) -> None:
        with self._lock:
            if state is not None:
                self._state = state
            self._closing = None
