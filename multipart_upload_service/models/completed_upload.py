from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CompletedUpload:
    url: str
    bucket: str
    key: str
    etag: Optional[str] = None
    version_id: Optional[str] = None
