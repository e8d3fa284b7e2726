"""
Trade Import - Delimited Record Reader.

============================================================
RESPONSIBILITY
============================================================
Turns uploaded bytes into header + numbered raw rows.

- Decodes text (BOM tolerant)
- Splits on \\n, \\r\\n and \\r line endings
- Skips blank lines without renumbering later rows
- Splits each line on ";" (no quoting support)
- Drops one trailing empty field left by a trailing delimiter

Rows with the wrong number of fields are still emitted so every
line of the file is accounted for in the import result.

============================================================
"""

import logging
from typing import List

from trade_import.errors import UnreadableFileError
from trade_import.types import COLUMN_COUNT, DELIMITER, RawRow, RecordSet


logger = logging.getLogger(__name__)


class DelimitedRecordReader:
    """Reads NT8 semicolon separated exports."""

    def __init__(self, encoding: str = "utf-8-sig", expected_columns: int = COLUMN_COUNT):
        self._encoding = encoding
        self._expected_columns = expected_columns

    def decode(self, data: bytes) -> str:
        """
        Decode uploaded bytes into text.

        Raises:
            UnreadableFileError: empty, binary or undecodable input
        """
        if not data:
            raise UnreadableFileError("File is empty", file_size=0)
        if b"\x00" in data:
            raise UnreadableFileError("File is not a text file", file_size=len(data))
        try:
            text = data.decode(self._encoding)
        except UnicodeDecodeError as e:
            raise UnreadableFileError(
                f"File is not valid {self._encoding} text",
                file_size=len(data),
                cause=e,
            ) from e
        if not text.strip():
            raise UnreadableFileError("File is empty", file_size=len(data))
        return text

    def split_fields(self, line: str) -> List[str]:
        fields = line.split(DELIMITER)
        if len(fields) == self._expected_columns + 1 and not fields[-1].strip():
            fields.pop()
        return fields

    def read(self, data: bytes) -> RecordSet:
        """
        Read a whole file.

        Args:
            data: Raw uploaded bytes

        Returns:
            RecordSet with the header fields and numbered data rows
        """
        text = self.decode(data)

        header = None
        rows: List[RawRow] = []
        # splitlines() also splits on form feeds and unicode separators
        lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")

        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            fields = self.split_fields(line)
            if header is None:
                header = tuple(f.strip() for f in fields)
                continue
            rows.append(RawRow(row_number=line_number, fields=tuple(fields), line=line))

        record_set = RecordSet(header=header or (), rows=tuple(rows))
        if not record_set.header_matches:
            logger.warning(f"Unexpected header with {len(record_set.header)} columns: {record_set.header[:5]}...")

        logger.debug(f"Read {len(rows)} data rows")
        return record_set
