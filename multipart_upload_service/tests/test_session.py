from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError
from faker import Faker
from multipart_upload_service.exceptions import InvalidSessionStateError
from multipart_upload_service.models.part_receipt import PartReceipt
from multipart_upload_service.models.session_state import SessionState
from multipart_upload_service.session import MultipartUploadSession
from multipart_upload_service.tests.fake_store import InMemoryObjectStore, client_error
from multipart_upload_service.uploader import MultipartUploader

fake = Faker()


@pytest.fixture(name="session")
def fixture_session(uploader: MultipartUploader) -> MultipartUploadSession:
    return MultipartUploadSession.create(uploader, fake.file_name(), "csv")


def test_new_session_is_created(session: MultipartUploadSession) -> None:
    assert session.state is SessionState.CREATED
    assert session.receipts == []
    assert session.upload_key.startswith("multipart-upload/")


def test_upload_and_complete(
    session: MultipartUploadSession, store: InMemoryObjectStore
) -> None:
    session.upload_part(b"hello ", 1)
    assert session.state is SessionState.UPLOADING
    session.upload_part(b"world", 2)

    completed = session.complete()

    assert session.state is SessionState.COMPLETED
    assert completed.key == session.upload_key
    assert store.objects[(session.session.bucket, session.upload_key)] == b"hello world"


def test_receipts_are_ordered_by_part_number(session: MultipartUploadSession) -> None:
    session.upload_part(b"c", 3)
    session.upload_part(b"a", 1)
    session.upload_part(b"b", 2)

    assert [receipt.part_number for receipt in session.receipts] == [1, 2, 3]


def test_reuploaded_part_replaces_receipt(
    session: MultipartUploadSession, store: InMemoryObjectStore
) -> None:
    first = session.upload_part(b"old", 1)
    second = session.upload_part(b"new", 1)

    assert session.receipts == [second]
    assert first != second

    session.complete()
    assert store.objects[(session.session.bucket, session.upload_key)] == b"new"


def test_complete_with_explicit_receipts(session: MultipartUploadSession) -> None:
    receipt = session.upload_part(b"kept", 1)
    session.upload_part(b"dropped", 2)

    completed = session.complete([receipt])

    assert completed.url


def test_complete_with_no_parts_fails_and_keeps_state(
    session: MultipartUploadSession,
) -> None:
    with pytest.raises(ValueError):
        session.complete()

    assert session.state is SessionState.CREATED
    session.abort()
    assert session.state is SessionState.ABORTED


def test_abort_created_session(
    session: MultipartUploadSession, store: InMemoryObjectStore
) -> None:
    ack = session.abort()

    assert ack.upload_id == session.upload_id
    assert session.state is SessionState.ABORTED
    assert session.upload_id not in store.uploads


@pytest.mark.parametrize("operation", ["upload_part", "complete", "abort"])
def test_aborted_session_rejects_everything(
    session: MultipartUploadSession, store: InMemoryObjectStore, operation: str
) -> None:
    session.abort()
    calls_before = len(store.upload_part_calls)

    with pytest.raises(InvalidSessionStateError):
        if operation == "upload_part":
            session.upload_part(b"x", 1)
        else:
            getattr(session, operation)()

    assert len(store.upload_part_calls) == calls_before
    assert session.state is SessionState.ABORTED


@pytest.mark.parametrize("operation", ["upload_part", "complete", "abort"])
def test_completed_session_rejects_everything(
    session: MultipartUploadSession, operation: str
) -> None:
    session.upload_part(b"x", 1)
    session.complete()

    with pytest.raises(InvalidSessionStateError):
        if operation == "upload_part":
            session.upload_part(b"y", 2)
        else:
            getattr(session, operation)()

    assert session.state is SessionState.COMPLETED


def test_failed_part_does_not_record_receipt(
    session: MultipartUploadSession, store: InMemoryObjectStore
) -> None:
    session.upload_part(b"ok", 1)
    store.part_failures = [
        client_error("InternalError", "UploadPart", status=500) for _ in range(3)
    ]

    with pytest.raises(ClientError):
        session.upload_part(b"lost", 2)

    assert [receipt.part_number for receipt in session.receipts] == [1]
    assert session.state is SessionState.UPLOADING


def test_failed_complete_allows_abort(session: MultipartUploadSession) -> None:
    session.upload_part(b"x", 1)

    with pytest.raises(ClientError):
        session.complete([PartReceipt(part_number=1, etag="not-the-etag")])

    assert session.state is SessionState.UPLOADING
    session.abort()
    assert session.state is SessionState.ABORTED


def test_session_is_closed_while_complete_is_in_flight(
    session: MultipartUploadSession, uploader: MultipartUploader
) -> None:
    session.upload_part(b"x", 1)
    original = uploader.complete_multipart_upload
    rejected = []

    def complete_with_interleaved_calls(*args, **kwargs):
        for operation in (
            lambda: session.upload_part(b"late", 2),
            session.complete,
            session.abort,
        ):
            with pytest.raises(InvalidSessionStateError, match="in progress"):
                operation()
            rejected.append(operation)
        return original(*args, **kwargs)

    with patch.object(
        uploader, "complete_multipart_upload", side_effect=complete_with_interleaved_calls
    ):
        session.complete()

    assert len(rejected) == 3
    assert session.state is SessionState.COMPLETED
    assert [receipt.part_number for receipt in session.receipts] == [1]


def test_upload_part_does_not_reopen_finished_session(
    session: MultipartUploadSession, uploader: MultipartUploader
) -> None:
    original = uploader.abort_multipart_upload

    def abort_with_late_part(*args, **kwargs):
        ack = original(*args, **kwargs)
        with pytest.raises(InvalidSessionStateError):
            session.upload_part(b"late", 1)
        return ack

    with patch.object(uploader, "abort_multipart_upload", side_effect=abort_with_late_part):
        session.abort()

    assert session.state is SessionState.ABORTED
