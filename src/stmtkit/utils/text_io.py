"""Reading and writing raw statement content."""

import logging
import sys
from pathlib import Path
from typing import Optional

from stmtkit.domain.errors import StatementIOError

logger = logging.getLogger(__name__)

# Russian bank exports are frequently produced in the Windows code page
FALLBACK_ENCODING = "cp1251"


def decode_content(data: bytes) -> str:
    """Decode statement bytes, trying UTF-8 (BOM tolerant) before cp1251."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.info("Content is not valid UTF-8, decoding as %s", FALLBACK_ENCODING)
    try:
        return data.decode(FALLBACK_ENCODING)
    except UnicodeDecodeError as e:
        raise StatementIOError(f"Could not decode statement content: {e}") from e


def read_text(path: Optional[str] = None) -> str:
    """Read statement content from a file, or stdin when path is None.

    Raises:
        StatementIOError: If the source cannot be read
    """
    try:
        if path is None:
            return decode_content(sys.stdin.buffer.read())
        return decode_content(Path(path).read_bytes())
    except OSError as e:
        source = path or "stdin"
        raise StatementIOError(f"Could not read '{source}': {e}") from e


def write_text(text: str, path: Optional[str] = None) -> None:
    """Write serialized content to a file, or stdout when path is None.

    Raises:
        StatementIOError: If the sink cannot be written
    """
    try:
        if path is None:
            sys.stdout.write(text)
            sys.stdout.flush()
        else:
            Path(path).write_text(text, encoding="utf-8")
    except OSError as e:
        sink = path or "stdout"
        raise StatementIOError(f"Could not write '{sink}': {e}") from e
