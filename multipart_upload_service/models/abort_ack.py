from dataclasses import dataclass


@dataclass(frozen=True)
class AbortAck:
    upload_key: str
    upload_id: str
