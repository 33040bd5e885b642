from .indexer import (
    IndexerResult,
    IndexStats,
    IndexWarning,
    TaskCounts,
    build_index,
    index_parsed_files,
    make_section_id,
)
from .index_file import read_index_file, write_index_file

__all__ = [
    "IndexerResult",
    "IndexStats",
    "IndexWarning",
    "TaskCounts",
    "build_index",
    "index_parsed_files",
    "make_section_id",
    "read_index_file",
    "write_index_file",
]
