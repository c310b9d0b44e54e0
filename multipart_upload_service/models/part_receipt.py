from dataclasses import dataclass


@dataclass(frozen=True)
class PartReceipt:
    part_number: int
    etag: str

    def to_completed_part(self) -> dict[str, str | int]:
        return {"PartNumber": self.part_number, "ETag": self.etag}
