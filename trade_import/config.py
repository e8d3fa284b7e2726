"""
Trade Import - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the NT8 import pipeline.

Values come from the environment (optionally a .env file):

    TRADE_IMPORT_TIMEZONE            IANA zone of the export (default UTC)
    TRADE_IMPORT_ENCODING            Text encoding (default utf-8-sig)
    TRADE_IMPORT_MAX_FILE_BYTES      Upload limit (default 10 MiB)
    TRADE_IMPORT_ESTIMATE_COMMISSION Fill empty commissions from the
                                     broker schedule (default false)

============================================================
"""

import codecs
import os
from dataclasses import dataclass
from datetime import tzinfo

from dotenv import load_dotenv

from trade_import.errors import InvalidConfigError
from trade_import.normalizers.timestamps import resolve_zone


DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ImportConfig:
    """
    Import pipeline configuration.
    """

    timezone: str = "UTC"
    """Zone in which the export's wall-clock times were recorded."""

    encoding: str = "utf-8-sig"
    """Encoding used to decode uploaded bytes."""

    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    """Largest accepted upload."""

    estimate_missing_commission: bool = False
    """Estimate commission from the schedule when the column is empty or zero."""

    def __post_init__(self):
        resolve_zone(self.timezone)
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise InvalidConfigError("encoding", self.encoding, "unknown encoding") from e
        if self.max_file_bytes <= 0:
            raise InvalidConfigError("max_file_bytes", self.max_file_bytes, "must be positive")

    @property
    def zone(self) -> tzinfo:
        return resolve_zone(self.timezone)

    @classmethod
    def from_env(cls) -> "ImportConfig":
        """Build configuration from environment variables."""
        load_dotenv()

        raw_size = os.getenv("TRADE_IMPORT_MAX_FILE_BYTES", str(DEFAULT_MAX_FILE_BYTES))
        try:
            max_file_bytes = int(raw_size)
        except ValueError as e:
            raise InvalidConfigError("TRADE_IMPORT_MAX_FILE_BYTES", raw_size, "not an integer") from e

        raw_flag = os.getenv("TRADE_IMPORT_ESTIMATE_COMMISSION", "false").strip().lower()
        if raw_flag in _TRUE_VALUES:
            estimate = True
        elif raw_flag in _FALSE_VALUES:
            estimate = False
        else:
            raise InvalidConfigError("TRADE_IMPORT_ESTIMATE_COMMISSION", raw_flag, "not a boolean")

        return cls(
            timezone=os.getenv("TRADE_IMPORT_TIMEZONE", "UTC"),
            encoding=os.getenv("TRADE_IMPORT_ENCODING", "utf-8-sig"),
            max_file_bytes=max_file_bytes,
            estimate_missing_commission=estimate,
        )
