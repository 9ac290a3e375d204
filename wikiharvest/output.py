"""
Output Streamer
===============
Writes harvested records into one JSON array file, one record at a time.

Layout on disk::

    [
    {"function":{...},"realms":["Client"],"kind":"Function"},
    {"enum":{...},"realms":[],"kind":"Enum"}
    ]

The file is flushed after every token, so between writes it is always a
valid JSON-array prefix: appending ``]`` yields parseable JSON. A run that
dies before ``close_array`` therefore leaves a recoverable file.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional, TextIO, Union

logger = logging.getLogger(__name__)

ARRAY_OPEN = "[\n"
ARRAY_SEPARATOR = ",\n"
ARRAY_CLOSE = "\n]"


def serialize_record(record: Any) -> str:
    """Compact single-line JSON for one record."""
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))


class JsonArrayWriter:
    """
    Append-only writer for the output artifact.

    ``append`` is atomic per call: the separator and the record go out in a
    single write under a lock, so concurrent harvest tasks never interleave.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._file: Optional[TextIO] = None
        self._lock = threading.Lock()
        self._count = 0
        self._closed_array = False

    @property
    def count(self) -> int:
        """Number of records written so far."""
        return self._count

    def open_array(self) -> None:
        """Create the parent directory, truncate the file and write ``[``."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._file = open(self.path, 'w', encoding='utf-8', newline='\n')
            self._count = 0
            self._closed_array = False
            self._write(ARRAY_OPEN)
        logger.debug(f"Opened {self.path.absolute()}")

    def append(self, record: Any) -> int:
        """
        Serialize and append one record.

        Returns:
            The record's 1-based position in the file
        """
        line = serialize_record(record)
        with self._lock:
            if self._file is None or self._closed_array:
                raise RuntimeError(f"{self.path} is not open for appending")
            self._write(line if self._count == 0 else ARRAY_SEPARATOR + line)
            self._count += 1
            return self._count

    def close_array(self) -> None:
        """Write ``]``; the file is complete JSON afterwards."""
        with self._lock:
            if self._file is None:
                raise RuntimeError(f"{self.path} is not open")
            self._write(ARRAY_CLOSE)
            self._closed_array = True
        logger.info(f"Wrote {self._count} records to {self.path.absolute()}")

    def close(self) -> None:
        """Close the file handle; does not write ``]``."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def _write(self, text: str) -> None:
        self._file.write(text)
        self._file.flush()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
