from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class UploadSession:
    upload_key: str
    upload_id: str
    bucket: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
