from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Union

import structlog

from textus.models import TextPart

logger = structlog.get_logger()

PartLike = Union[TextPart, Mapping[str, Any]]


@dataclass
class TextChunk:
    offset: int
    text: str

    @property
    def end(self) -> int:
        return self.offset + len(self.text)

    def to_record(self, text_id: str) -> Dict[str, Any]:
        return {
            "textId": text_id,
            "text": self.text,
            "start": self.offset,
            "end": self.end,
        }


def _part_field(part: PartLike, name: str):
    if isinstance(part, Mapping):
        return part[name]
    return getattr(part, name)


def merge_parts(parts: Iterable[PartLike]) -> str:
    """Join text parts in ascending sequence order; ties keep input order."""
    ordered = sorted(parts, key=lambda part: _part_field(part, "sequence"))
    return "".join(_part_field(part, "text") for part in ordered)


def _chunk_length(remaining: str, max_size: int) -> int:
    if len(remaining) <= max_size:
        return len(remaining)
    idx = remaining.rfind(" ", 0, max_size)
    if idx != -1:
        return idx + 1
    # Single token longer than max_size: keep it whole, trailing space included.
    idx = remaining.find(" ", max_size)
    return len(remaining) if idx == -1 else idx + 1


def split_text(parts: Iterable[PartLike], max_size: int) -> List[TextChunk]:
    """Merge ordered text parts and split them into contiguous chunks.

    Each chunk ends on a space and is at most ``max_size`` characters long,
    except when a single token is longer than ``max_size``.
    """
    if max_size < 1:
        raise ValueError("max_size must be >= 1")

    remaining = merge_parts(parts)
    chunks: List[TextChunk] = []
    offset = 0
    while remaining:
        length = _chunk_length(remaining, max_size)
        chunks.append(TextChunk(offset=offset, text=remaining[:length]))
        remaining = remaining[length:]
        offset += length

    logger.info("text_chunked", chunks=len(chunks), length=offset)
    return chunks
