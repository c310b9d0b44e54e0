import csv
import io
from typing import Iterator

COLUMNS = 10
DEFAULT_ROWS = 1_000_000


def generate_csv_part(part_number: int, rows: int = DEFAULT_ROWS) -> bytes:
    """
    Build one CSV part of test data, encoded as UTF-8 with a BOM.

    Row `i` holds `c * part_number + i * 10` for columns `c` = 1..10, so every
    part is distinct and easy to verify after assembly.

    :param part_number: 1-based number of the part being generated
    :param rows: number of rows in the part
    :return: the encoded CSV payload
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in range(rows):
        writer.writerow(
            [column * part_number + row * 10 for column in range(1, COLUMNS + 1)]
        )
    return buffer.getvalue().encode("utf-8-sig")


def iter_csv_parts(count: int, rows: int = DEFAULT_ROWS) -> Iterator[bytes]:
    # Lazy, so at most one generated part is held in memory by the sequential driver.
    for part_number in range(1, count + 1):
        yield generate_csv_part(part_number, rows)
