"""
Trailing ``[key:value ...]`` metadata block codec.

Only the last bracket group on a line counts, so text like
``Fix [brackets] in docs [id:1]`` keeps its inner brackets. Malformed tokens
are dropped here without complaint; reporting them is a lint concern.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

METADATA_BLOCK_RE = re.compile(r"\[([^\]]+)\]\s*$")


@dataclass
class MetadataParseResult:
    metadata: Dict[str, str] = field(default_factory=dict)
    text_without_metadata: str = ""
    has_metadata: bool = False


def parse_metadata_block(line: str) -> MetadataParseResult:
    """
    Split a line into its text and trailing metadata block.

    Each whitespace-separated token inside the block is split at its first
    ``:``. Tokens with no colon, an empty key, or an empty value are skipped.
    A later duplicate key overwrites an earlier one.

    Returns:
        MetadataParseResult; ``has_metadata`` is False when no block matched
    """
    m = METADATA_BLOCK_RE.search(line)
    if not m:
        return MetadataParseResult(metadata={}, text_without_metadata=line, has_metadata=False)

    metadata: Dict[str, str] = {}
    for token in m.group(1).split():
        key, sep, value = token.partition(":")
        if not sep or not key or not value:
            continue
        metadata[key] = value

    return MetadataParseResult(
        metadata=metadata,
        text_without_metadata=line[: m.start()].rstrip(),
        has_metadata=True,
    )


def serialize_metadata(metadata: Mapping[str, Optional[str]]) -> str:
    """
    Render a metadata map as ``[k:v ...]`` in the mapping's own order.

    None and empty values are omitted. Returns an empty string when nothing
    is left to render.
    """
    pairs = [f"{key}:{value}" for key, value in metadata.items() if value]
    return f"[{' '.join(pairs)}]" if pairs else ""
