from .metadata import MetadataParseResult, parse_metadata_block, serialize_metadata
from .frontmatter import parse_frontmatter
from .markdown_parser import parse_content, parse_file
from .hierarchy import build_hierarchy

__all__ = [
    "MetadataParseResult",
    "parse_metadata_block",
    "serialize_metadata",
    "parse_frontmatter",
    "parse_content",
    "parse_file",
    "build_hierarchy",
]
