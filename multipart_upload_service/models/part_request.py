from dataclasses import dataclass

MIN_PART_NUMBER = 1
MAX_PART_NUMBER = 10000


@dataclass(frozen=True)
class PartRequest:
    upload_key: str
    upload_id: str
    part_number: int
    content: bytes

    def __post_init__(self) -> None:
        if not MIN_PART_NUMBER <= self.part_number <= MAX_PART_NUMBER:
            raise ValueError(
                f"Invalid part number {self.part_number}, "
                f"must be between {MIN_PART_NUMBER} and {MAX_PART_NUMBER}"
            )
        if not self.content:
            raise ValueError("Part content must not be empty")

    @property
    def content_length(self) -> int:
        return len(self.content)
