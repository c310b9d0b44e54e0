from enum import Enum


class SessionState(Enum):
    CREATED = "created"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ABORTED = "aborted"


class PostFailurePolicy(Enum):
    ABORT = "abort"
    LEAVE_ORPHANED = "leave_orphaned"
