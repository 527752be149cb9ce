"""Overlap queries over offset-tagged records and reassembly of text ranges.

Chunks and annotations carry half-open ``[start, end)`` character offsets.
A stored range intersects a requested window when ``start < window_end`` and
``end >= window_start``. A chunk that ends exactly where the window starts
therefore still matches; reconstruction trims it away.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from textus.config import settings
from textus.datastore.base import MatchClause, QuerySpec, RangeClause
from textus.exceptions import ContiguityError
from textus.models import TextRange


def build_overlap_query(
    text_id: str,
    start: int,
    end: int,
    index: Optional[str] = None,
    size: Optional[int] = None,
) -> QuerySpec:
    """Select records of ``text_id`` that overlap ``[start, end)``.

    Results beyond ``size`` are silently dropped by the store.
    """
    return QuerySpec(
        must=[
            MatchClause("textId", text_id),
            RangeClause("start", lt=end),
            RangeClause("end", gte=start),
        ],
        size=size if size is not None else settings.max_query_size,
        index=index or settings.store_index,
    )


def build_text_query(
    text_id: str, index: Optional[str] = None, size: Optional[int] = None
) -> QuerySpec:
    """Select every record belonging to ``text_id``."""
    return QuerySpec(
        must=[MatchClause("textId", text_id)],
        size=size if size is not None else settings.max_query_size,
        index=index or settings.store_index,
    )


def _sorted_by_start(records: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    return sorted(records, key=lambda record: record["start"])


def check_contiguity(
    records: Sequence[Mapping[str, Any]],
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> None:
    """Raise ContiguityError if sorted records leave a gap or overlap.

    When a window is given, the records must also cover all of ``[start, end)``.
    """
    ordered = _sorted_by_start(records)
    if start is not None and ordered and ordered[0]["start"] > start:
        raise ContiguityError(
            f"No chunk covers offset {start}; first chunk starts at {ordered[0]['start']}"
        )
    if end is not None and ordered and ordered[-1]["end"] < end:
        raise ContiguityError(
            f"No chunk covers offset {end - 1}; last chunk ends at {ordered[-1]['end']}"
        )
    for previous, current in zip(ordered, ordered[1:]):
        if current["start"] != previous["end"]:
            raise ContiguityError(
                f"Chunk at {current['start']} does not follow chunk ending at {previous['end']}"
            )


def reconstruct_range(
    start: Optional[int],
    end: Optional[int],
    records: Sequence[Mapping[str, Any]],
    verify_contiguity: bool = False,
) -> TextRange:
    """Join an unordered set of chunks and trim it to ``[start, end)``.

    Args:
        start: First character offset of the result, or None for no trim.
        end: Offset one past the last character, or None for no trim.
        records: ``{text, start, end}`` mappings that together cover the
            window contiguously. Contiguity is only checked when
            ``verify_contiguity`` is set.

    Returns:
        The trimmed text with the requested offsets, or the whole joined
        text without offsets when both bounds are None.
    """
    if (start is None) != (end is None):
        raise ValueError("start and end must both be set or both be None")
    if not records:
        return TextRange(text="", start=0, end=0)
    if verify_contiguity:
        check_contiguity(records, start, end)

    ordered = _sorted_by_start(records)
    joined = "".join(record["text"] for record in ordered)
    if start is None:
        return TextRange(text=joined)

    skip = max(0, start - ordered[0]["start"])
    return TextRange(text=joined[skip:skip + (end - start)], start=start, end=end)
