"""
All-or-nothing output files.

The crawl result is written to a hidden temporary sibling of the target and
renamed over it once flushed to disk, so a reader never sees a partial array
and a failed run leaves any previous output in place.
"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


def _discard(temp_path: Optional[Path]) -> None:
    if temp_path is None or not temp_path.exists():
        return
    try:
        temp_path.unlink()
    except OSError as e:
        logger.warning("Could not remove temporary output", path=str(temp_path), error=str(e))


def atomic_write_text(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Replace ``target_path`` with ``content`` in one step.

    Raises:
        OSError: the temporary file could not be written or moved into place
    """
    target = Path(target_path)
    target.parent.mkdir(parents=True, exist_ok=True)

    temp_path: Optional[Path] = None
    try:
        # The rename is only atomic within one filesystem, hence the target's directory.
        fd, name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".part")
        temp_path = Path(name)
        with os.fdopen(fd, "w", encoding=encoding) as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())

        try:
            os.replace(temp_path, target)
        except OSError as e:
            logger.warning("Rename failed, moving output instead", target=str(target), error=str(e))
            shutil.move(str(temp_path), str(target))
    except Exception as e:
        _discard(temp_path)
        raise OSError(f"Could not write {target}: {e}") from e

    logger.debug("Output written", target=str(target), size=len(content))


def dumps_json(data: Any) -> str:
    """Render ``data`` in the published format: two-space indent, non-ASCII kept."""
    try:
        return json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Output is not JSON serializable: {e}") from e


def atomic_write_json(target_path: Path, data: Any) -> None:
    """Write ``data`` as a JSON document followed by a newline."""
    atomic_write_text(target_path, dumps_json(data) + "\n")
