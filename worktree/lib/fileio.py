"""
Crash-safe file writes.

Content goes to a temp file in the target directory and is renamed over the
target, so readers see either the old file or the new one, never a partial
write.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write text to path via temp file + os.replace.

    On failure the temp file is removed and the original error re-raised.
    """
    path = Path(path)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        except OSError as cleanup_error:
            logger.warning(f"Failed to remove temp file {tmp_path}: {cleanup_error}")
        raise
    logger.debug(f"Wrote {path}")


async def atomic_write_text_async(path: Path, content: str) -> None:
    """Non-blocking form of atomic_write_text."""
    await asyncio.to_thread(atomic_write_text, path, content)
