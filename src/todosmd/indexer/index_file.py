"""
Index persistence.

The index is written as pretty-printed camelCase JSON. Reading checks the
version field before validating anything else, so an index produced by an
older release fails with a clear message instead of a schema dump.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from todosmd.errors import IndexFormatError, IndexVersionError
from todosmd.models.index import INDEX_VERSION, TaskIndex

log = logging.getLogger(__name__)


def write_index_file(index: TaskIndex, path: Union[str, Path]) -> Path:
    """Write ``index`` to ``path``, creating parent directories. Returns the path."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(index.to_json() + "\n", encoding="utf-8")
    log.info("Wrote index (%d tasks) to %s", len(index.tasks), out)
    return out


def read_index_file(path: Union[str, Path]) -> Optional[TaskIndex]:
    """
    Load a previously written index.

    Returns:
        The TaskIndex, or None when the file does not exist

    Raises:
        IndexVersionError: the file was written with another schema version
        IndexFormatError: the file is not valid JSON or does not match the schema
    """
    p = Path(path)
    if not p.exists():
        return None

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise IndexFormatError(f"{p}: invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise IndexFormatError(f"{p}: expected a JSON object at the top level")

    version = data.get("version")
    if version != INDEX_VERSION:
        raise IndexVersionError(version, INDEX_VERSION)

    try:
        return TaskIndex.model_validate(data)
    except ValidationError as e:
        raise IndexFormatError(f"{p}: index does not match schema: {e}") from e
